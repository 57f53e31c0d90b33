"""
Tests for the live change feed, per-user subscriptions, and the live
dashboard WebSocket.
"""
import asyncio
import threading

import pytest
from fastapi import status
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
from starlette.websockets import WebSocketDisconnect

from backend import schemas
from backend.api.board import GestureSession
from backend.models.db.database import Base
from backend.services import application_tracker
from backend.services.live_feed import ApplicationSubscription, ChangeFeed


def run(coro):
    return asyncio.run(asyncio.wait_for(coro, timeout=5))


class CountingLoader:
    """Snapshot loader returning how many times it has been called."""

    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return [self.calls]


class TestApplicationSubscription:

    def test_first_snapshot_is_current_state(self):
        feed, loader = ChangeFeed(), CountingLoader()

        async def scenario():
            async with ApplicationSubscription("u1", loader, feed=feed) as subscription:
                snapshots = subscription.__aiter__()
                return await snapshots.__anext__()

        assert run(scenario()) == [1]

    def test_publish_delivers_a_fresh_snapshot(self):
        feed, loader = ChangeFeed(), CountingLoader()

        async def scenario():
            async with ApplicationSubscription("u1", loader, feed=feed) as subscription:
                snapshots = subscription.__aiter__()
                await snapshots.__anext__()
                feed.publish("u1")
                return await snapshots.__anext__()

        assert run(scenario()) == [2]

    def test_publish_from_another_thread(self):
        feed, loader = ChangeFeed(), CountingLoader()

        async def scenario():
            async with ApplicationSubscription("u1", loader, feed=feed) as subscription:
                snapshots = subscription.__aiter__()
                await snapshots.__anext__()
                writer = threading.Thread(target=feed.publish, args=("u1",))
                writer.start()
                writer.join()
                return await snapshots.__anext__()

        assert run(scenario()) == [2]

    def test_burst_of_changes_is_coalesced(self):
        feed, loader = ChangeFeed(), CountingLoader()

        async def scenario():
            async with ApplicationSubscription("u1", loader, feed=feed) as subscription:
                snapshots = subscription.__aiter__()
                await snapshots.__anext__()
                for _ in range(3):
                    feed.publish("u1")
                latest = await snapshots.__anext__()
                with pytest.raises(asyncio.TimeoutError):
                    await asyncio.wait_for(snapshots.__anext__(), timeout=0.2)
                return latest

        assert run(scenario()) == [2]
        assert loader.calls == 2

    def test_other_users_changes_are_not_delivered(self):
        feed, loader = ChangeFeed(), CountingLoader()

        async def scenario():
            async with ApplicationSubscription("u1", loader, feed=feed) as subscription:
                snapshots = subscription.__aiter__()
                await snapshots.__anext__()
                feed.publish("u2")
                with pytest.raises(asyncio.TimeoutError):
                    await asyncio.wait_for(snapshots.__anext__(), timeout=0.2)

        run(scenario())
        assert loader.calls == 1

    def test_leaving_the_block_unregisters(self):
        feed, loader = ChangeFeed(), CountingLoader()
        subscription = ApplicationSubscription("u1", loader, feed=feed)

        async def scenario():
            async with subscription:
                assert subscription.active
                assert feed.listener_count("u1") == 1

        run(scenario())
        assert not subscription.active
        assert feed.listener_count("u1") == 0
        # No listeners left: publishing is a no-op
        feed.publish("u1")
        assert loader.calls == 0

    def test_unregisters_on_error(self):
        feed = ChangeFeed()

        async def scenario():
            async with ApplicationSubscription("u1", CountingLoader(), feed=feed):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            run(scenario())
        assert feed.listener_count("u1") == 0

    def test_iterating_before_entering_fails(self):
        subscription = ApplicationSubscription("u1", CountingLoader(), feed=ChangeFeed())

        async def scenario():
            await subscription.__aiter__().__anext__()

        with pytest.raises(RuntimeError):
            run(scenario())


class TestLiveWebSocket:

    def test_rejects_missing_token(self, test_client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with test_client.websocket_connect("/api/applications/live"):
                pass
        assert exc_info.value.code == status.WS_1008_POLICY_VIOLATION

    def test_rejects_unknown_view(self, test_client, access_token):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with test_client.websocket_connect(f"/api/applications/live?token={access_token}&view=calendar"):
                pass
        assert exc_info.value.code == status.WS_1008_POLICY_VIOLATION

    def test_list_view_follows_writes(self, test_client, auth_headers, access_token, create_application):
        existing = create_application(companyName="Existing", appliedDate="2024-01-01")

        with test_client.websocket_connect(f"/api/applications/live?token={access_token}") as ws:
            first = ws.receive_json()
            assert first["type"] == "snapshot"
            assert first["view"] == "list"
            assert [a["id"] for a in first["data"]] == [existing["id"]]

            added = create_application(companyName="Added", appliedDate="2024-02-01")
            assert [a["companyName"] for a in ws.receive_json()["data"]] == ["Added", "Existing"]

            test_client.delete(f"/api/applications/{existing['id']}", headers=auth_headers)
            assert [a["id"] for a in ws.receive_json()["data"]] == [added["id"]]

    def test_list_view_applies_filters(self, test_client, access_token, create_application):
        create_application(companyName="Globex", status="applied")
        create_application(companyName="Initech", status="offered")

        with test_client.websocket_connect(f"/api/applications/live?token={access_token}&status=offered") as ws:
            assert [a["companyName"] for a in ws.receive_json()["data"]] == ["Initech"]

    def test_board_and_analytics_views(self, test_client, auth_headers, access_token, create_application):
        card = create_application(status="interview")

        with test_client.websocket_connect(f"/api/applications/live?token={access_token}&view=board") as ws:
            board = ws.receive_json()["data"]
            assert [c["count"] for c in board["columns"]] == [0, 0, 1, 0, 0]

            test_client.delete(f"/api/applications/{card['id']}", headers=auth_headers)
            board = ws.receive_json()["data"]
            assert all(c["applications"] == [] for c in board["columns"])

        with test_client.websocket_connect(f"/api/applications/live?token={access_token}&view=analytics") as ws:
            summary = ws.receive_json()["data"]
            assert summary["total"] == 0
            assert summary["interviewRate"] == "0.0"

    def test_other_users_writes_are_invisible(
        self, test_client, access_token, other_auth_headers, create_application
    ):
        with test_client.websocket_connect(f"/api/applications/live?token={access_token}") as ws:
            assert ws.receive_json()["data"] == []
            create_application(headers=other_auth_headers, companyName="Theirs")
            mine = create_application(companyName="Mine")
            # The first snapshot after the initial one already reflects only our write
            assert [a["id"] for a in ws.receive_json()["data"]] == [mine["id"]]


class TestLongLivedSessionsReleaseConnections:
    """Open subscriptions and gesture sockets must not pin a pooled connection."""

    @pytest.fixture
    def single_connection_sessions(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'tracker.db'}",
            connect_args={"check_same_thread": False},
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=0,
            pool_timeout=1,
        )
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
        engine.dispose()

    @staticmethod
    def _add_application(Session, user_id="user-1"):
        with Session() as db:
            return application_tracker.create_application_for_user(
                db,
                schemas.ApplicationCreate(companyName="Acme", position="Engineer", appliedDate="2024-01-15"),
                user_id,
            )

    def test_subscription_between_snapshots(self, single_connection_sessions):
        Session = single_connection_sessions
        live_db = Session()

        async def scenario():
            async with application_tracker.subscribe(live_db, "user-1") as subscription:
                snapshots = subscription.__aiter__()
                assert await snapshots.__anext__() == []

                # Would time out if the subscription still held the only connection
                record = self._add_application(Session)

                assert [a.id for a in await snapshots.__anext__()] == [record.id]

        try:
            run(scenario())
        finally:
            live_db.close()

    def test_gesture_session_between_messages(self, single_connection_sessions):
        Session = single_connection_sessions
        record = self._add_application(Session)
        board_db = Session()
        try:
            gestures = GestureSession(board_db, "user-1", drag_threshold_px=10)
            reply = gestures.handle({"type": "pointer", "event": "drag_start", "applicationId": record.id})
            assert reply["state"] == "dragging"

            with Session() as other:
                assert other.execute(text("SELECT 1")).scalar() == 1
        finally:
            board_db.close()
