"""Inspection schedule model."""

from datetime import datetime, tzinfo

from sqlalchemy import Column, String, DateTime, Text, Integer, Date, Time, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class InspectionSchedule(Base):
    """A dated inspection window for one APAR, optionally assigned to a teknisi."""

    __tablename__ = "inspection_schedules"

    id = Column(Integer, primary_key=True, index=True)
    apar_id = Column(Integer, ForeignKey("apars.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Window, in the application timezone
    scheduled_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    frequency = Column(String(20), nullable=False, default="monthly")  # daily, weekly, monthly, quarterly, semiannual
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_completed = Column(Boolean, default=False, nullable=False, index=True)
    notes = Column(Text)

    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    apar = relationship("Apar", lazy="selectin")
    assigned_user = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<InspectionSchedule {self.id} apar={self.apar_id} {self.scheduled_date}>"

    def window(self, tz: tzinfo) -> tuple[datetime, datetime]:
        from app.services.eligibility import schedule_window

        return schedule_window(self.scheduled_date, self.start_time, self.end_time, tz)

    def status_at(self, now: datetime, tz: tzinfo) -> str:
        """inactive, completed, overdue, ongoing or upcoming relative to ``now``."""
        if not self.is_active:
            return "inactive"
        if self.is_completed:
            return "completed"
        start, end = self.window(tz)
        if now > end:
            return "overdue"
        if now >= start:
            return "ongoing"
        return "upcoming"
