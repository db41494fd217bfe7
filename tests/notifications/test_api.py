"""
Tests for Notification API endpoints.

Tests listing, filtering, mark-read and bulk sending.
"""

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification
from app.models.user import User
from tests.helpers import auth_headers


async def _notify(db: AsyncSession, user: User, title: str, read: bool = False, type: str = "system"):
    notification = Notification(
        user_id=user.id,
        type=type,
        title=title,
        message=f"{title} body",
        read=read,
    )
    db.add(notification)
    await db.commit()
    await db.refresh(notification)
    return notification


class TestListNotifications:
    """Tests for GET /api/v2/notifications"""

    @pytest.mark.asyncio
    async def test_list_notifications_unauthenticated(self, client: AsyncClient):
        response = await client.get("/api/v2/notifications")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_notifications_empty(self, client: AsyncClient, teknisi: User):
        response = await client.get("/api/v2/notifications", headers=auth_headers(teknisi))
        assert response.status_code == 200
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0

    @pytest.mark.asyncio
    async def test_only_own_notifications(
        self, client: AsyncClient, test_db: AsyncSession, teknisi: User, other_teknisi: User
    ):
        await _notify(test_db, teknisi, "Mine")
        await _notify(test_db, other_teknisi, "Theirs")

        response = await client.get("/api/v2/notifications", headers=auth_headers(teknisi))

        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["title"] == "Mine"

    @pytest.mark.asyncio
    async def test_filter_unread(self, client: AsyncClient, test_db: AsyncSession, teknisi: User):
        await _notify(test_db, teknisi, "Already read", read=True)
        await _notify(test_db, teknisi, "Not read yet")

        response = await client.get(
            "/api/v2/notifications", params={"unread_only": "true"}, headers=auth_headers(teknisi)
        )

        assert response.status_code == 200
        titles = [n["title"] for n in response.json()["items"]]
        assert titles == ["Not read yet"]

    @pytest.mark.asyncio
    async def test_unread_badge(self, client: AsyncClient, test_db: AsyncSession, teknisi: User):
        for i in range(3):
            await _notify(test_db, teknisi, f"Notification {i}", read=(i == 0))

        response = await client.get("/api/v2/notifications/unread", headers=auth_headers(teknisi))

        data = response.json()
        assert data["count"] == 2
        assert len(data["items"]) == 2


class TestGetNotificationStats:

    @pytest.mark.asyncio
    async def test_get_stats(self, client: AsyncClient, test_db: AsyncSession, teknisi: User):
        for i in range(3):
            await _notify(test_db, teknisi, f"Notification {i}", read=(i % 2 == 0))

        response = await client.get("/api/v2/notifications/stats", headers=auth_headers(teknisi))

        assert response.status_code == 200
        assert response.json() == {"total": 3, "unread": 1}


class TestMarkNotificationRead:

    @pytest_asyncio.fixture
    async def unread_notification(self, test_db: AsyncSession, teknisi: User):
        return await _notify(test_db, teknisi, "Jadwal inspeksi baru", type="schedule")

    @pytest.mark.asyncio
    async def test_mark_read(self, client: AsyncClient, teknisi: User, unread_notification):
        response = await client.patch(
            f"/api/v2/notifications/{unread_notification.id}/mark-read",
            headers=auth_headers(teknisi),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["read"] is True
        assert data["read_at"].startswith("2025-01-01T08:00:00")

    @pytest.mark.asyncio
    async def test_mark_read_other_users_notification(
        self, client: AsyncClient, other_teknisi: User, unread_notification
    ):
        response = await client.patch(
            f"/api/v2/notifications/{unread_notification.id}/mark-read",
            headers=auth_headers(other_teknisi),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_mark_all_read(self, client: AsyncClient, test_db: AsyncSession, teknisi: User):
        await _notify(test_db, teknisi, "One")
        await _notify(test_db, teknisi, "Two")

        response = await client.patch("/api/v2/notifications/mark-all-read", headers=auth_headers(teknisi))

        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 2}
        stats = await client.get("/api/v2/notifications/stats", headers=auth_headers(teknisi))
        assert stats.json()["unread"] == 0


class TestBulkNotifications:

    @pytest.mark.asyncio
    async def test_bulk_by_role(
        self, client: AsyncClient, test_db: AsyncSession, admin: User, teknisi: User, other_teknisi: User
    ):
        response = await client.post(
            "/api/v2/notifications/bulk",
            json={"title": "Pelatihan APAR", "message": "Jumat 09:00 di aula", "role": "teknisi"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 201
        assert response.json()["count"] == 2
        recipients = (
            await test_db.execute(select(Notification.user_id).where(Notification.title == "Pelatihan APAR"))
        ).scalars().all()
        assert sorted(recipients) == sorted([teknisi.id, other_teknisi.id])

    @pytest.mark.asyncio
    async def test_bulk_by_user_ids(self, client: AsyncClient, admin: User, teknisi: User):
        response = await client.post(
            "/api/v2/notifications/bulk",
            json={"title": "Hi", "message": "Only you", "user_ids": [teknisi.id, 9999]},
            headers=auth_headers(admin),
        )

        assert response.json()["count"] == 1

    @pytest.mark.asyncio
    async def test_bulk_requires_target(self, client: AsyncClient, admin: User):
        response = await client.post(
            "/api/v2/notifications/bulk",
            json={"title": "Hi", "message": "Nobody"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_bulk_forbidden_for_supervisor(self, client: AsyncClient, supervisor: User):
        response = await client.post(
            "/api/v2/notifications/bulk",
            json={"title": "Hi", "message": "All", "role": "teknisi"},
            headers=auth_headers(supervisor),
        )
        assert response.status_code == 403
