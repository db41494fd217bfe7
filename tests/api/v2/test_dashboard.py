"""
Tests for the dashboard statistics endpoint.
"""

import pytest
from datetime import date, datetime, time, timezone
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inspection import Inspection
from tests.helpers import auth_headers, image_files, inspection_form, make_schedule

URL = "/api/v2/dashboard/stats"


async def _inspect(client: AsyncClient, user, apar, condition="good") -> dict:
    response = await client.post(
        "/api/v2/inspections",
        data=inspection_form(apar, condition=condition),
        files=image_files(),
        headers=auth_headers(user),
    )
    assert response.status_code == 201, response.text
    return response.json()["inspection"]


async def _backdate(db: AsyncSession, inspection_id: int, when: datetime) -> None:
    await db.execute(update(Inspection).where(Inspection.id == inspection_id).values(created_at=when))
    await db.commit()


class TestDashboardStats:

    @pytest.mark.asyncio
    async def test_counters_and_charts(
        self, client: AsyncClient, test_db: AsyncSession, supervisor, teknisi, fixed_apar, mobile_apar
    ):
        await _inspect(client, supervisor, mobile_apar, condition="needs_refill")
        await _inspect(client, supervisor, fixed_apar)
        await make_schedule(test_db, fixed_apar, teknisi, date(2024, 12, 20), time(8, 0), time(9, 0))

        response = await client.get(URL, headers=auth_headers(supervisor))

        assert response.status_code == 200
        data = response.json()
        assert data["stats"] == {
            "total_apar": 2,
            "active_apar": 1,
            "pending_repairs": 1,
            "expired_apar": 0,
            "inactive_apar": 0,
            "overdue_inspections": 1,
        }
        assert data["apar_status_chart"]["refill"] == 1
        assert data["repair_status_chart"] == {"pending": 1, "approved": 0, "rejected": 0, "completed": 0}
        assert len(data["recent_inspections"]) == 2

    @pytest.mark.asyncio
    async def test_defaults_to_current_week(self, client: AsyncClient, supervisor):
        # FIXED_NOW is Wednesday 2025-01-01
        response = await client.get(URL, headers=auth_headers(supervisor))

        data = response.json()
        assert data["date_range"] == {"start": "2024-12-30", "end": "2025-01-05"}
        days = data["inspections_by_date"]
        assert [d["date"] for d in days][:3] == ["2024-12-30", "2024-12-31", "2025-01-01"]
        assert days[0]["day"] == "Mon"
        assert len(days) == 7

    @pytest.mark.asyncio
    async def test_inspections_bucketed_by_day(
        self, client: AsyncClient, test_db: AsyncSession, supervisor, fixed_apar, mobile_apar
    ):
        damaged = await _inspect(client, supervisor, mobile_apar, condition="damaged")
        good = await _inspect(client, supervisor, fixed_apar)
        outside = await _inspect(client, supervisor, fixed_apar)
        await _backdate(test_db, damaged["id"], datetime(2024, 12, 31, 10, 0, tzinfo=timezone.utc))
        await _backdate(test_db, good["id"], datetime(2024, 12, 31, 15, 0, tzinfo=timezone.utc))
        await _backdate(test_db, outside["id"], datetime(2024, 12, 1, 9, 0, tzinfo=timezone.utc))

        response = await client.get(URL, headers=auth_headers(supervisor))

        by_day = {d["date"]: d for d in response.json()["inspections_by_date"]}
        assert by_day["2024-12-31"] == {
            "date": "2024-12-31",
            "day": "Tue",
            "good": 1,
            "needs_repair": 1,
            "total": 2,
        }
        assert sum(d["total"] for d in by_day.values()) == 2

    @pytest.mark.asyncio
    async def test_custom_range(self, client: AsyncClient, supervisor):
        response = await client.get(
            URL,
            params={"start_date": "2024-12-01", "end_date": "2024-12-03"},
            headers=auth_headers(supervisor),
        )

        assert response.status_code == 200
        assert len(response.json()["inspections_by_date"]) == 3

    @pytest.mark.asyncio
    async def test_inverted_range_rejected(self, client: AsyncClient, supervisor):
        response = await client.get(
            URL,
            params={"start_date": "2025-01-05", "end_date": "2025-01-01"},
            headers=auth_headers(supervisor),
        )

        assert response.status_code == 422
        assert response.json()["code"] == "BIZ_001"

    @pytest.mark.asyncio
    async def test_teknisi_forbidden(self, client: AsyncClient, teknisi):
        response = await client.get(URL, headers=auth_headers(teknisi))
        assert response.status_code == 403
