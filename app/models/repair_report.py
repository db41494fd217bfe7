"""Repair report model - field evidence that an approved repair was carried out."""

from sqlalchemy import Column, DateTime, Text, Integer, Float, String, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class RepairReport(Base):
    """Before/after photos and notes filed against an approved repair. One per approval."""

    __tablename__ = "repair_reports"

    id = Column(Integer, primary_key=True, index=True)
    repair_approval_id = Column(
        Integer, ForeignKey("repair_approvals.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    reported_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    repair_description = Column(Text, nullable=False)
    before_photo_url = Column(String(500))
    after_photo_url = Column(String(500))
    repair_lat = Column(Float)
    repair_lng = Column(Float)
    repair_completed_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    repair_approval = relationship("RepairApproval", back_populates="repair_report", lazy="selectin")
    reporter = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<RepairReport {self.id} approval={self.repair_approval_id}>"
