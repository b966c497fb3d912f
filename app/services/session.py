"""
app.services.session
~~~~~~~~~~~~~~~~~~~~

房间成员会话 —— 一个连接在某个房间内的身份信息。
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class MessageSink(Protocol):
    """房间向成员下发帧所需的最小接口（``ClientConnection`` 满足该接口）。"""

    @property
    def is_open(self) -> bool: ...

    def send_text(self, frame: str) -> None: ...


class MemberSession:
    """房间成员会话，入房成功时创建，离开房间时丢弃。

    Attributes:
        connection: 对应的客户端连接（非拥有引用）。
        user_id: 客户端自报的 userId。
        user_number: 房间内分配的序号（单调递增，不复用）。
        joined_at: 入房时间（UTC）。
    """

    def __init__(self, connection: MessageSink, user_id: str, user_number: int) -> None:
        self.connection = connection
        self.user_id = user_id
        self.user_number = user_number
        self.joined_at: datetime = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"MemberSession(user_id={self.user_id!r}, user_number={self.user_number})"
