"""APAR schemas for request/response validation."""

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from typing import Optional, Literal
from datetime import date, datetime

from app.schemas.validators import reject_null


LocationType = Literal["fixed", "mobile"]
AparStatus = Literal["active", "refill", "expired", "damaged", "inactive"]


class AparBase(BaseModel):
    serial_number: str = Field(..., min_length=1, max_length=100)
    location_type: LocationType = "fixed"
    location_name: str = Field(..., min_length=1, max_length=255)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    valid_radius: Optional[int] = Field(None, ge=1, le=10_000)
    capacity: int = Field(1, ge=1)
    manufactured_date: Optional[date] = None
    expired_at: Optional[date] = None
    notes: Optional[str] = None


class AparCreate(AparBase):
    """Schema for registering an APAR. The QR code is generated server-side."""

    status: AparStatus = "active"

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class AparUpdate(BaseModel):
    """Schema for updating an APAR (all fields optional)."""

    serial_number: Optional[str] = Field(None, min_length=1, max_length=100)
    location_type: Optional[LocationType] = None
    location_name: Optional[str] = Field(None, min_length=1, max_length=255)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    valid_radius: Optional[int] = Field(None, ge=1, le=10_000)
    capacity: Optional[int] = Field(None, ge=1)
    manufactured_date: Optional[date] = None
    expired_at: Optional[date] = None
    status: Optional[AparStatus] = None
    notes: Optional[str] = None

    @field_validator("serial_number", "location_type", "location_name", "valid_radius", "capacity", "status")
    @classmethod
    def required_not_null(cls, value):
        return reject_null(value)


class AparResponse(AparBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    qr_code: str
    valid_radius: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AparSummary(BaseModel):
    """Compact APAR reference embedded in other resources."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    serial_number: str
    qr_code: str
    location_name: str
    location_type: str
    status: str


class AparListResponse(BaseModel):
    items: list[AparResponse]
    total: int
    page: int
    per_page: int
