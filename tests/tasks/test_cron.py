import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from app.rollcall.db.db_client import StoreUnavailableError
from app.rollcall.tasks.cron import deactivate_expired_sessions_task


@pytest.mark.asyncio
class TestDeactivateExpiredSessionsTask:

    async def test_closes_only_expired_sessions(self, store, doctor, course):
        now = datetime.now(timezone.utc)
        expired = await store.insert_session(course.id, 1, "OLD001", now.date(), doctor.id, now - timedelta(minutes=5))
        live = await store.insert_session(course.id, 2, "NEW001", now.date(), doctor.id, now + timedelta(minutes=5))

        closed = await deactivate_expired_sessions_task(store)

        assert closed == 1
        assert store.sessions[expired.id].is_active is False
        assert store.sessions[live.id].is_active is True

    async def test_nothing_to_close(self, store):
        assert await deactivate_expired_sessions_task(store) == 0

    async def test_store_failure_is_logged_not_raised(self, caplog):
        mock_db_client = AsyncMock()
        mock_db_client.deactivate_expired_sessions.side_effect = StoreUnavailableError("down")

        closed = await deactivate_expired_sessions_task(mock_db_client)

        assert closed == 0
        assert "Failed to deactivate expired sessions" in caplog.text
