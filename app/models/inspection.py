"""Inspection and repair approval models."""

from sqlalchemy import Column, String, DateTime, Text, Integer, Float, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base

REPAIR_CONDITIONS = ("needs_refill", "expired", "damaged")


class Inspection(Base):
    """One recorded inspection of an APAR. Created once per accepted submission."""

    __tablename__ = "inspections"

    id = Column(Integer, primary_key=True, index=True)
    apar_id = Column(Integer, ForeignKey("apars.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    schedule_id = Column(Integer, ForeignKey("inspection_schedules.id", ondelete="SET NULL"), nullable=True, index=True)

    condition = Column(String(20), nullable=False)  # good, needs_refill, expired, damaged
    notes = Column(Text)

    # Evidence
    photo_url = Column(String(500))
    selfie_url = Column(String(500))
    inspection_lat = Column(Float)
    inspection_lng = Column(Float)
    location_valid = Column(Boolean, default=True, nullable=False)

    status = Column(String(20), nullable=False, default="completed")

    # Repair workflow
    requires_repair = Column(Boolean, default=False, nullable=False)
    repair_status = Column(String(20), nullable=False, default="none")  # none, pending_approval, approved, rejected, completed
    repair_notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    apar = relationship("Apar", lazy="selectin")
    user = relationship("User", lazy="selectin")
    schedule = relationship("InspectionSchedule", lazy="selectin")
    repair_approval = relationship(
        "RepairApproval",
        back_populates="inspection",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Inspection {self.id} apar={self.apar_id} {self.condition}>"


class RepairApproval(Base):
    """Supervisor/admin decision on an inspection that found a defect."""

    __tablename__ = "repair_approvals"

    id = Column(Integer, primary_key=True, index=True)
    inspection_id = Column(
        Integer, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, approved, rejected, completed
    admin_notes = Column(Text)
    repair_notes = Column(Text)
    approved_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    inspection = relationship("Inspection", back_populates="repair_approval", lazy="selectin")
    approver = relationship("User", lazy="selectin")
    repair_report = relationship(
        "RepairReport",
        back_populates="repair_approval",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<RepairApproval {self.id} {self.status}>"
