"""Tests for DeliveryBridge fan-out."""

import uuid
from unittest.mock import MagicMock

from src.modules.auth.auth import AuthenticatedUser
from src.modules.realtime.delivery import DeliveryBridge
from src.modules.realtime.rooms import ADMIN_ROOM, ConversationRoom


def _user(name="Alice", role="student"):
    return AuthenticatedUser(id=uuid.uuid4(), name=name, role=role)


class TestPushToRoom:
    def test_push_reaches_every_member(self, delivery, recording_connection, drain):
        room = ConversationRoom(uuid.uuid4())
        first = delivery.registry.register(recording_connection(), _user())
        second = delivery.registry.register(recording_connection(), _user("Bob"))
        delivery.registry.join(first, room)
        delivery.registry.join(second, room)

        delivered = delivery.push_to_room(room, "new_message", {"chatId": "c1"})

        assert delivered == 2
        assert drain(first) == [{"type": "new_message", "data": {"chatId": "c1"}}]
        assert drain(second) == [{"type": "new_message", "data": {"chatId": "c1"}}]

    def test_push_to_empty_room_is_a_no_op(self, delivery):
        assert delivery.push_to_room(ConversationRoom(uuid.uuid4()), "new_message", {}) == 0

    def test_exclude_skips_the_originating_session(self, delivery, recording_connection, drain):
        room = ConversationRoom(uuid.uuid4())
        typist = delivery.registry.register(recording_connection(), _user())
        reader = delivery.registry.register(recording_connection(), _user("Bob"))
        delivery.registry.join(typist, room)
        delivery.registry.join(reader, room)

        delivered = delivery.push_to_room(room, "user_typing", {"userName": "Alice"}, exclude=typist)

        assert delivered == 1
        assert drain(typist) == []
        assert drain(reader)[0]["type"] == "user_typing"

    def test_push_order_matches_call_order(self, delivery, recording_connection, drain):
        room = ConversationRoom(uuid.uuid4())
        session = delivery.registry.register(recording_connection(), _user())
        delivery.registry.join(session, room)

        for n in range(3):
            delivery.push_to_room(room, "new_message", {"n": n})

        assert [f["data"]["n"] for f in drain(session)] == [0, 1, 2]

    def test_failing_session_does_not_block_others(self, delivery, recording_connection, drain):
        room = ConversationRoom(uuid.uuid4())
        broken = delivery.registry.register(recording_connection(), _user())
        healthy = delivery.registry.register(recording_connection(), _user("Bob"))
        delivery.registry.join(broken, room)
        delivery.registry.join(healthy, room)
        broken.enqueue = MagicMock(side_effect=RuntimeError("boom"))

        delivered = delivery.push_to_room(room, "new_message", {})

        assert delivered == 1
        assert len(drain(healthy)) == 1

    def test_registry_failure_is_absorbed(self):
        registry = MagicMock()
        registry.members.side_effect = RuntimeError("boom")
        bridge = DeliveryBridge(registry)

        assert bridge.push_to_room(ADMIN_ROOM, "admin_notification", {}) == 0


class TestPushToUser:
    def test_reaches_all_sessions_of_the_user(self, delivery, recording_connection, drain):
        user = _user()
        first = delivery.registry.register(recording_connection(), user)
        second = delivery.registry.register(recording_connection(), user)
        delivery.registry.register(recording_connection(), _user("Bob"))

        delivered = delivery.push_to_user(user.id, "new_notification", {"notification": {}})

        assert delivered == 2
        assert len(drain(first)) == 1
        assert len(drain(second)) == 1


class TestAdminRoom:
    def test_push_after_disconnect_reaches_nobody(self, delivery, recording_connection):
        admin = delivery.registry.register(recording_connection(), _user(role="admin"))
        delivery.registry.join(admin, ADMIN_ROOM)
        assert delivery.push_to_room(ADMIN_ROOM, "admin_notification", {}) == 1

        delivery.registry.unregister(admin)

        assert delivery.push_to_room(ADMIN_ROOM, "admin_notification", {}) == 0


class TestBroadcastAll:
    def test_reaches_every_session(self, delivery, recording_connection, drain):
        sessions = [
            delivery.registry.register(recording_connection(), _user(f"user{n}")) for n in range(3)
        ]

        delivered = delivery.broadcast_all("system_notification", {"notification": {"title": "Hi"}})

        assert delivered == 3
        for session in sessions:
            assert drain(session)[0]["type"] == "system_notification"
