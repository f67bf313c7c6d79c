"""Availability windows and the slots they contain."""

import datetime

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medislot.db.base import Base, TimestampMixin


class AvailabilityWindow(Base, TimestampMixin):
    """A provider's bookable capacity for one calendar date.

    Capacity is never stored per slot. Occupancy is derived by counting
    reservations whose time falls inside a slot's interval.
    """

    __tablename__ = "availability_windows"
    __table_args__ = (
        UniqueConstraint("provider_id", "date", name="uq_availability_windows_provider_date"),
        CheckConstraint("max_bookings_per_slot > 0", name="max_bookings_positive"),
    )

    provider_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    max_bookings_per_slot: Mapped[int] = mapped_column(
        Integer,
        default=5,
        nullable=False,
    )

    slots: Mapped[list["Slot"]] = relationship(
        "Slot",
        back_populates="window",
        cascade="all, delete-orphan",
        order_by="Slot.start_time",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<AvailabilityWindow {self.provider_id} {self.date}>"


class Slot(Base):
    """A half-open ``[start_time, end_time)`` interval within a window."""

    __tablename__ = "slots"
    __table_args__ = (
        UniqueConstraint("window_id", "start_time", name="uq_slots_window_start"),
        CheckConstraint("start_time < end_time", name="start_before_end"),
    )

    window_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("availability_windows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[datetime.time] = mapped_column(Time, nullable=False)

    window: Mapped["AvailabilityWindow"] = relationship(
        "AvailabilityWindow",
        back_populates="slots",
    )

    def __repr__(self) -> str:
        return f"<Slot {self.start_time:%H:%M}-{self.end_time:%H:%M}>"
