"""
app.schemas.chat_events
~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 帧的 Pydantic 模型（客户端 ⇄ 服务端）。

线上格式统一使用 camelCase 字段名（``roomId`` / ``userNumber`` …），
Python 侧使用 snake_case，通过 ``alias_generator`` 自动转换。

入站帧:
  - ``{"type": "join", "roomId": str, "userId": str}``
  - ``{"type": "message", "encrypted": <任意 JSON>}``

出站帧:
  - ``joined`` / ``messages`` / ``user_count`` / ``user_joined``
  - ``user_left`` / ``message`` / ``error``
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """所有线上模型的公共配置。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── 消息实体 ──────────────────────────────────────────────────────────

class ChatMessage(_WireModel):
    """房间内的一条聊天消息，创建后不可变。

    ``encrypted`` 由客户端加密，服务端不解析，原样转发。
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True,
    )

    id: int = Field(..., description="消息 ID（毫秒时间戳，房间内严格递增）")
    user_id: str = Field(..., description="发送者 userId")
    user_number: int = Field(..., description="发送者在房间内的序号")
    encrypted: Any = Field(..., description="客户端加密后的负载（不透明）")
    timestamp: datetime = Field(..., description="创建时间（UTC）")


# ── 入站帧 ────────────────────────────────────────────────────────────

class JoinRequest(_WireModel):
    """加入房间请求。"""

    type: Literal["join"]
    room_id: str
    user_id: str


class PostRequest(_WireModel):
    """发送消息请求。"""

    type: Literal["message"]
    encrypted: Any


InboundFrame = Annotated[Union[JoinRequest, PostRequest], Field(discriminator="type")]

_inbound_adapter: TypeAdapter[JoinRequest | PostRequest] = TypeAdapter(InboundFrame)


def parse_inbound(raw: str | bytes) -> JoinRequest | PostRequest:
    """解析一帧入站 JSON。

    Raises:
        pydantic.ValidationError: JSON 非法、``type`` 未知或缺少字段。
    """
    return _inbound_adapter.validate_json(raw)


# ── 出站帧 ────────────────────────────────────────────────────────────

class OutboundEvent(_WireModel):
    """出站事件基类。"""

    def encode(self) -> str:
        """序列化为线上 JSON 文本。"""
        return self.model_dump_json(by_alias=True)


class JoinedEvent(OutboundEvent):
    """私发给新成员的入房确认。"""

    type: Literal["joined"] = "joined"
    user_id: str
    user_number: int
    room_id: str


class HistoryEvent(OutboundEvent):
    """私发给新成员的历史消息快照。"""

    type: Literal["messages"] = "messages"
    messages: list[ChatMessage]


class UserCountEvent(OutboundEvent):
    type: Literal["user_count"] = "user_count"
    count: int


class UserJoinedEvent(OutboundEvent):
    # 只公开 userNumber，不泄露 userId
    type: Literal["user_joined"] = "user_joined"
    user_number: int


class UserLeftEvent(OutboundEvent):
    type: Literal["user_left"] = "user_left"
    user_number: int


class NewMessageEvent(OutboundEvent):
    type: Literal["message"] = "message"
    message: ChatMessage


class ErrorEvent(OutboundEvent):
    """私发给客户端的错误提示。"""

    type: Literal["error"] = "error"
    message: str
