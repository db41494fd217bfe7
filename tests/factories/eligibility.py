"""
Eligibility snapshot factories.

Defaults describe a geofenced APAR with a 08:00-10:00 window on
2025-01-01 assigned to teknisi #1, so most tests only override what
they exercise.
"""

from datetime import date, time

import factory
from faker import Faker

from app.services.eligibility import AssetSnapshot, ScheduleSnapshot, Submission, UserSnapshot

fake = Faker()

ASSET_LAT = -6.175392
ASSET_LNG = 106.827153


class AssetSnapshotFactory(factory.Factory):
    class Meta:
        model = AssetSnapshot

    id = 1
    qr_code = factory.LazyFunction(lambda: "APAR-" + fake.bothify("??########").upper())
    location_type = "fixed"
    valid_radius = 30
    status = "active"
    latitude = ASSET_LAT
    longitude = ASSET_LNG


class MobileAssetSnapshotFactory(AssetSnapshotFactory):
    location_type = "mobile"
    latitude = None
    longitude = None


class ScheduleSnapshotFactory(factory.Factory):
    class Meta:
        model = ScheduleSnapshot

    id = factory.Sequence(lambda n: n + 1)
    apar_id = 1
    scheduled_date = date(2025, 1, 1)
    start_time = time(8, 0)
    end_time = time(10, 0)
    assigned_user_id = 1
    is_active = True
    is_completed = False


class UserSnapshotFactory(factory.Factory):
    class Meta:
        model = UserSnapshot

    id = 1
    role = "teknisi"
    is_active = True


class SubmissionFactory(factory.Factory):
    """Submission matching ``asset``; pass ``asset=`` to bind id and QR code."""

    class Meta:
        model = Submission
        exclude = ("asset",)

    asset = factory.SubFactory(AssetSnapshotFactory)
    asset_id = factory.LazyAttribute(lambda o: o.asset.id)
    qr_code = factory.LazyAttribute(lambda o: o.asset.qr_code)
    latitude = ASSET_LAT
    longitude = ASSET_LNG
    condition = "good"
    notes = factory.LazyFunction(lambda: fake.sentence())
    has_photo = True
    has_selfie = True
