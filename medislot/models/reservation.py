"""Reservation model."""

import datetime
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, String, Time
from sqlalchemy.orm import Mapped, mapped_column

from medislot.db.base import Base, TimestampMixin


class ReservationStatus(str, Enum):
    """Lifecycle state of a reservation."""

    BOOKED = "booked"
    COMPLETED = "completed"


class Reservation(Base, TimestampMixin):
    """A booked unit of capacity.

    Stands apart from the window and slot rows: cancelling or editing a
    window does not touch reservations unless the ledger applies its
    cancellation policy.
    """

    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_provider_date_time", "provider_id", "date", "time"),
    )

    provider_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    requester_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ReservationStatus.BOOKED.value,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Reservation {self.provider_id} {self.date} {self.time:%H:%M}>"
