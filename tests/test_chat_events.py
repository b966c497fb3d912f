"""
tests.test_chat_events
~~~~~~~~~~~~~~~~~~~~~~

WebSocket 帧模型测试：入站解析与出站字段命名。
"""
from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from app.schemas.chat_events import (
    ChatMessage,
    JoinRequest,
    NewMessageEvent,
    PostRequest,
    UserJoinedEvent,
    parse_inbound,
)


class TestParseInbound:
    """测试入站帧的解析与校验。"""

    def test_join(self) -> None:
        request = parse_inbound('{"type": "join", "roomId": "r1", "userId": "u1"}')

        assert isinstance(request, JoinRequest)
        assert (request.room_id, request.user_id) == ("r1", "u1")

    def test_message_keeps_payload_opaque(self) -> None:
        request = parse_inbound('{"type": "message", "encrypted": {"iv": "x", "ct": "y"}}')

        assert isinstance(request, PostRequest)
        assert request.encrypted == {"iv": "x", "ct": "y"}

    def test_extra_fields_are_ignored(self) -> None:
        request = parse_inbound('{"type": "join", "roomId": "r1", "userId": "u1", "x": 1}')

        assert isinstance(request, JoinRequest)

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[]",
            '{"roomId": "r1"}',
            '{"type": "leave"}',
            '{"type": "message"}',
            '{"type": "join", "roomId": 5, "userId": "u1"}',
        ],
    )
    def test_invalid_frames_raise(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            parse_inbound(raw)


class TestOutboundEncoding:
    """测试出站帧使用 camelCase 字段。"""

    def test_new_message_event(self) -> None:
        message = ChatMessage(
            id=1,
            user_id="u1",
            user_number=3,
            encrypted="cipher",
            timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

        data = json.loads(NewMessageEvent(message=message).encode())

        assert data["type"] == "message"
        assert data["message"] == {
            "id": 1,
            "userId": "u1",
            "userNumber": 3,
            "encrypted": "cipher",
            "timestamp": "2026-01-01T00:00:00Z",
        }

    def test_user_joined_only_exposes_number(self) -> None:
        assert json.loads(UserJoinedEvent(user_number=2).encode()) == {
            "type": "user_joined",
            "userNumber": 2,
        }

    def test_chat_message_is_immutable(self) -> None:
        message = ChatMessage(
            id=1, user_id="u1", user_number=1, encrypted="c",
            timestamp=datetime.now(timezone.utc),
        )

        with pytest.raises(ValidationError):
            message.encrypted = "tampered"
