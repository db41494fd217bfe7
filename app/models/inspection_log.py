"""Audit trail of QR scans and inspection submissions."""

from sqlalchemy import Column, String, DateTime, Text, Integer, Float, Boolean, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class InspectionLog(Base):
    """One audited action: scan_qr, start_inspection, validation_failed or submit_inspection."""

    __tablename__ = "inspection_logs"

    id = Column(Integer, primary_key=True, index=True)
    apar_id = Column(Integer, ForeignKey("apars.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    inspection_id = Column(Integer, ForeignKey("inspections.id", ondelete="SET NULL"), nullable=True)

    action = Column(String(50), nullable=False, index=True)
    lat = Column(Float)
    lng = Column(Float)
    ip_address = Column(String(45))
    user_agent = Column(Text)
    device_info = Column(JSON)
    details = Column(Text)
    is_successful = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    apar = relationship("Apar", lazy="selectin")
    user = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<InspectionLog {self.action} apar={self.apar_id}>"
