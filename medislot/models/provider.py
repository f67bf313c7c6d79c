"""Provider model with the running rating aggregate."""

from decimal import Decimal

from sqlalchemy import Integer, Numeric, String, case
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column

from medislot.db.base import BaseNoId, TimestampMixin

# Fixed-point accumulator for score sums; scores carry at most 4 decimals
RATING_PRECISION = Numeric(12, 4)


class Provider(BaseNoId, TimestampMixin):
    """The supplying party in a scheduling relationship.

    Keyed by the principal id issued by the identity service. The rating is
    stored as a fixed-point sum plus a count so the mean never drifts.
    """

    __tablename__ = "providers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    rating_total: Mapped[Decimal] = mapped_column(
        RATING_PRECISION,
        default=Decimal("0"),
        nullable=False,
    )
    rating_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    @hybrid_property
    def rating(self) -> Decimal:
        """Mean score, defined as 0 before the first rating."""
        if not self.rating_count:
            return Decimal("0")
        return Decimal(self.rating_total) / self.rating_count

    @rating.inplace.expression
    @classmethod
    def _rating_expression(cls):
        return case(
            (cls.rating_count == 0, 0),
            else_=cls.rating_total / cls.rating_count,
        )

    def __repr__(self) -> str:
        return f"<Provider {self.id}>"
