"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .user import UserFactory, TeknisiFactory, SupervisorFactory, AdminFactory
from .eligibility import (
    SubmissionFactory,
    AssetSnapshotFactory,
    MobileAssetSnapshotFactory,
    ScheduleSnapshotFactory,
    UserSnapshotFactory,
)

__all__ = [
    "UserFactory",
    "TeknisiFactory",
    "SupervisorFactory",
    "AdminFactory",
    # Eligibility snapshots
    "SubmissionFactory",
    "AssetSnapshotFactory",
    "MobileAssetSnapshotFactory",
    "ScheduleSnapshotFactory",
    "UserSnapshotFactory",
]
