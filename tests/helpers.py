"""Shared helpers for API tests."""

import io
from datetime import date, datetime, time, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import create_access_token, get_password_hash
from app.models.apar import Apar
from app.models.inspection_schedule import InspectionSchedule
from app.models.user import User

# 2025-01-01 08:00 UTC
FIXED_NOW = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)

TEST_PASSWORD = "testpassword123"  # noqa: S105

# Monas, Jakarta
FIXED_LAT = -6.175392
FIXED_LNG = 106.827153


async def create_user(db: AsyncSession, name: str, email: str, role: str, is_active: bool = True) -> User:
    user = User(
        name=name,
        email=email,
        hashed_password=get_password_hash(TEST_PASSWORD),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


async def make_schedule(
    db: AsyncSession,
    apar: Apar,
    user: User | None,
    scheduled_date: date,
    start: time,
    end: time,
    **extra,
) -> InspectionSchedule:
    schedule = InspectionSchedule(
        apar_id=apar.id,
        assigned_user_id=user.id if user else None,
        scheduled_date=scheduled_date,
        start_time=start,
        end_time=end,
        frequency=extra.pop("frequency", "monthly"),
        is_active=extra.pop("is_active", True),
        is_completed=extra.pop("is_completed", False),
        **extra,
    )
    db.add(schedule)
    await db.commit()
    await db.refresh(schedule)
    return schedule


def image_files(content_type: str = "image/jpeg") -> dict:
    """Multipart photo and selfie uploads."""
    return {
        "photo": ("photo.jpg", io.BytesIO(b"\xff\xd8\xff\xe0fake-jpeg-photo"), content_type),
        "selfie": ("selfie.jpg", io.BytesIO(b"\xff\xd8\xff\xe0fake-jpeg-selfie"), content_type),
    }


def inspection_form(apar: Apar, **overrides) -> dict:
    form = {
        "apar_id": str(apar.id),
        "apar_qrCode": apar.qr_code,
        "condition": "good",
        "notes": "Pressure gauge in the green",
    }
    form.update({k: str(v) for k, v in overrides.items()})
    return form
