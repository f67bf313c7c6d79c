"""Append-only rating entries."""

from decimal import Decimal

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from medislot.db.base import Base, TimestampMixin
from medislot.models.provider import RATING_PRECISION


class RatingEntry(Base, TimestampMixin):
    """A single score left by a requester. Never edited after creation."""

    __tablename__ = "rating_entries"

    provider_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requester_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    score: Mapped[Decimal] = mapped_column(RATING_PRECISION, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<RatingEntry {self.provider_id} {self.score}>"
