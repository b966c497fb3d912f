"""
app.services.dispatcher
~~~~~~~~~~~~~~~~~~~~~~~

连接事件分发器 —— 解析入站帧，按类型路由到注册表 / 房间。

每个 WebSocket 连接对应一个 ``ConnectionDispatcher``，
持有唯一的可变绑定 ``(room, user_id)``，入房成功后设置，断开时清除。
"""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from app.core.exceptions import AlreadyJoinedError, ChatRelayError, RoomFullError
from app.core.logging import get_logger
from app.schemas.chat_events import ErrorEvent, JoinRequest, PostRequest, parse_inbound
from app.services.connection import ClientConnection
from app.services.registry import RoomRegistry
from app.services.room import Room

logger = get_logger(__name__)

# 房间已满时关闭连接使用的关闭码（Policy Violation）
ROOM_FULL_CLOSE_CODE: int = 1008


class ConnectionDispatcher:
    """单个连接的事件分发器。

    Attributes:
        registry: 房间注册表。
        connection: 本连接。
        room: 当前所在房间，未加入时为 None。
        user_id: 当前 userId，未加入时为 None。
    """

    def __init__(self, registry: RoomRegistry, connection: ClientConnection) -> None:
        self.registry = registry
        self.connection = connection
        self.room: Room | None = None
        self.user_id: str | None = None

    @property
    def is_bound(self) -> bool:
        return self.room is not None and self.user_id is not None

    def handle_frame(self, raw: str | bytes) -> None:
        """处理一帧入站数据。格式错误的帧只记日志，不回复客户端。"""
        try:
            request = parse_inbound(raw)
        except ValidationError as e:
            logger.warning("忽略无法解析的入站帧: %s", e.errors(include_url=False))
            return

        if isinstance(request, JoinRequest):
            self.join(request.room_id, request.user_id)
        elif isinstance(request, PostRequest):
            self.message(request.encrypted)

    def join(self, room_id: str, user_id: str) -> None:
        """加入房间。每个连接只能加入一次。"""
        if self.is_bound:
            logger.warning(
                "连接已在房间中，拒绝重复加入 | room=%s | 目标=%s",
                self.room.room_id, room_id,
            )
            self._send_error(AlreadyJoinedError())
            return

        room = self.registry.get_or_create(room_id)
        try:
            room.admit(self.connection, user_id)
        except RoomFullError as e:
            self._send_error(e)
            self.connection.close(code=ROOM_FULL_CLOSE_CODE)
            return

        self.room = room
        self.user_id = user_id

    def message(self, encrypted: Any) -> None:
        """在当前房间发送消息；未加入房间时忽略。"""
        if not self.is_bound:
            return
        self.room.post_message(self.user_id, encrypted, self.connection)

    def disconnect(self) -> None:
        """连接断开：离开当前房间并解除绑定。可重复调用。"""
        room, user_id = self.room, self.user_id
        self.room = None
        self.user_id = None
        if room is not None and user_id is not None:
            room.dismiss(user_id, self.connection)

    def _send_error(self, error: ChatRelayError) -> None:
        self.connection.send_text(ErrorEvent(message=error.client_message).encode())
