"""APAR (fire extinguisher) asset model."""

from sqlalchemy import Column, String, DateTime, Text, Integer, Float, Date
from sqlalchemy.sql import func

from app.database import Base


class Apar(Base):
    """A fire extinguisher under inspection.

    ``fixed`` units with coordinates are geofenced to ``valid_radius`` meters;
    ``mobile`` units (e.g. mounted on vehicles) are never geofenced.
    """

    __tablename__ = "apars"

    id = Column(Integer, primary_key=True, index=True)

    # Identification
    serial_number = Column(String(100), unique=True, nullable=False, index=True)
    qr_code = Column(String(100), unique=True, nullable=False, index=True)  # e.g. "APAR-X8K2M9QZ1B"

    # Location
    location_type = Column(String(20), nullable=False, default="fixed", index=True)  # fixed, mobile
    location_name = Column(String(255), nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)
    valid_radius = Column(Integer, nullable=False, default=30)  # meters

    # Unit details
    capacity = Column(Integer, nullable=False, default=1)  # kg
    manufactured_date = Column(Date)
    expired_at = Column(Date)

    status = Column(String(20), nullable=False, default="active", index=True)  # active, refill, expired, damaged, inactive
    notes = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Apar {self.serial_number} ({self.qr_code})>"
