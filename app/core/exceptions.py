"""
app.core.exceptions
~~~~~~~~~~~~~~~~~~~

聊天中继的领域异常。

异常只在单个连接或单个房间范围内生效，不会影响整个进程。
"""
from __future__ import annotations


class ChatRelayError(Exception):
    """所有领域异常的基类。

    Attributes:
        client_message: 可以直接下发给客户端的错误描述。
    """

    client_message: str = "Internal error"

    def __init__(self, client_message: str | None = None) -> None:
        if client_message is not None:
            self.client_message = client_message
        super().__init__(self.client_message)


class RoomFullError(ChatRelayError):
    """房间人数已满，拒绝新成员加入。"""

    def __init__(self, room_id: str, max_members: int) -> None:
        self.room_id = room_id
        self.max_members = max_members
        super().__init__(f"Room is full (max {max_members} users)")


class AlreadyJoinedError(ChatRelayError):
    """同一连接重复发送 join。"""

    client_message = "Already joined a room"
