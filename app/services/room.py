"""
app.services.room
~~~~~~~~~~~~~~~~~

聊天房间领域模型 —— 有上限的成员表 + 有上限的历史消息 + 广播。

所有方法都是同步的（内部没有 ``await``），在单个事件循环中天然原子，
因此无需加锁；真正的网络写入由各连接的出站队列异步完成。
"""
from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from app.core.exceptions import RoomFullError
from app.core.logging import get_logger
from app.schemas.chat_events import (
    ChatMessage,
    HistoryEvent,
    JoinedEvent,
    NewMessageEvent,
    OutboundEvent,
    UserCountEvent,
    UserJoinedEvent,
    UserLeftEvent,
)
from app.schemas.room_info import RoomInfoData
from app.services.session import MemberSession, MessageSink

logger = get_logger(__name__)

DEFAULT_MAX_MEMBERS: int = 4
DEFAULT_HISTORY_LIMIT: int = 100
DEFAULT_TRIM_KEEP: int = 50


class Room:
    """一个聊天房间。

    生命周期: 首个成员加入前创建（Empty）→ 有 1~N 名成员（Active）
    → 最后一名成员离开时触发 ``on_empty``，由注册表移除（Destroyed）。

    Attributes:
        room_id: 房间唯一标识。
        max_members: 最大在线人数。
        members: userId → 成员会话。
        join_counter: 已分配的最大 userNumber（只增不减）。
    """

    def __init__(
        self,
        room_id: str,
        *,
        max_members: int = DEFAULT_MAX_MEMBERS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        on_empty: Callable[[Room], None] | None = None,
    ) -> None:
        self.room_id = room_id
        self.max_members = max_members
        self.members: dict[str, MemberSession] = {}
        self.join_counter: int = 0
        self._history: deque[ChatMessage] = deque(maxlen=history_limit)
        self._on_empty = on_empty
        self._last_message_id: int = 0

    # ── 只读属性 ──────────────────────────────────────────────────────

    @property
    def user_count(self) -> int:
        """当前在线人数。"""
        return len(self.members)

    @property
    def is_empty(self) -> bool:
        return not self.members

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.max_members

    @property
    def history(self) -> list[ChatMessage]:
        """历史消息快照（由旧到新）。"""
        return list(self._history)

    def info(self) -> RoomInfoData:
        """返回房间摘要信息。"""
        return RoomInfoData(
            room_id=self.room_id,
            user_count=self.user_count,
            max_members=self.max_members,
            message_count=len(self._history),
        )

    # ── 成员管理 ──────────────────────────────────────────────────────

    def admit(self, connection: MessageSink, user_id: str) -> MemberSession:
        """接纳新成员。

        成功后依次: 私发 ``joined`` 与历史快照，再向全房间广播
        ``user_count`` 和 ``user_joined``。

        Args:
            connection: 新成员的连接。
            user_id: 客户端自报的 userId。

        Returns:
            新建的成员会话。

        Raises:
            RoomFullError: 房间已满，此时成员表不会被修改。
        """
        if self.is_full:
            logger.warning(
                "房间已满，拒绝加入 | room=%s | 在线: %d", self.room_id, self.user_count,
            )
            raise RoomFullError(self.room_id, self.max_members)

        self.join_counter += 1
        session = MemberSession(connection, user_id, self.join_counter)
        self.members[user_id] = session

        connection.send_text(
            JoinedEvent(
                user_id=user_id, user_number=session.user_number, room_id=self.room_id,
            ).encode(),
        )
        connection.send_text(HistoryEvent(messages=self.history).encode())

        self.broadcast(UserCountEvent(count=self.user_count))
        self.broadcast(UserJoinedEvent(user_number=session.user_number))

        logger.info(
            "成员加入 | room=%s | user_number=%d | 在线: %d",
            self.room_id, session.user_number, self.user_count,
        )
        return session

    def _owned_session(
        self, user_id: str, connection: MessageSink | None,
    ) -> MemberSession | None:
        """查找成员会话；指定 ``connection`` 时，会话必须属于该连接。

        同一 userId 重复加入会覆盖旧会话，旧连接不能再操作新会话。
        """
        session = self.members.get(user_id)
        if session is None or (connection is not None and session.connection is not connection):
            return None
        return session

    def dismiss(self, user_id: str, connection: MessageSink | None = None) -> None:
        """移除成员；最后一人离开时通知注册表销毁本房间。

        Args:
            user_id: 离开的成员。
            connection: 发起离开的连接，传入时只移除属于该连接的会话。
        """
        session = self._owned_session(user_id, connection)
        if session is None:
            return
        del self.members[user_id]

        self.broadcast(UserCountEvent(count=self.user_count))
        self.broadcast(UserLeftEvent(user_number=session.user_number))
        logger.info(
            "成员离开 | room=%s | user_number=%d | 在线: %d",
            self.room_id, session.user_number, self.user_count,
        )

        # 先广播，再销毁
        if self.is_empty and self._on_empty is not None:
            self._on_empty(self)

    # ── 消息 ──────────────────────────────────────────────────────────

    def post_message(
        self, author_user_id: str, payload: Any, connection: MessageSink | None = None,
    ) -> ChatMessage | None:
        """记录一条消息并广播给全房间。

        非成员（或会话已被同名新连接覆盖的旧连接）发送的消息直接忽略。

        Returns:
            新消息；作者不在房间内时返回 None。
        """
        author = self._owned_session(author_user_id, connection)
        if author is None:
            return None

        message = ChatMessage(
            id=self._next_message_id(),
            user_id=author.user_id,
            user_number=author.user_number,
            encrypted=payload,
            timestamp=datetime.now(timezone.utc),
        )
        # deque(maxlen) 自动淘汰最旧的消息
        self._history.append(message)

        self.broadcast(NewMessageEvent(message=message))
        return message

    def periodic_trim(self, keep: int = DEFAULT_TRIM_KEEP) -> int:
        """把历史消息裁剪到最近 ``keep`` 条。

        Returns:
            被丢弃的消息条数。
        """
        dropped = 0
        while len(self._history) > keep:
            self._history.popleft()
            dropped += 1
        return dropped

    def _next_message_id(self) -> int:
        """毫秒时间戳；同一毫秒内的后续消息顺延 +1，保证房间内严格递增。"""
        now_ms = time.time_ns() // 1_000_000
        self._last_message_id = max(now_ms, self._last_message_id + 1)
        return self._last_message_id

    # ── 广播 ──────────────────────────────────────────────────────────

    def broadcast(self, event: OutboundEvent) -> None:
        """向所有在线成员广播事件。连接已关闭的成员直接跳过。"""
        frame = event.encode()
        for session in self.members.values():
            if session.connection.is_open:
                session.connection.send_text(frame)

    def __repr__(self) -> str:
        return f"Room(room_id={self.room_id!r}, members={self.user_count})"
