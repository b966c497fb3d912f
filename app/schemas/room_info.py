"""
app.schemas.room_info
~~~~~~~~~~~~~~~~~~~~~

房间相关的 REST 响应模型。
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class RoomInfoData(BaseModel):
    """房间摘要信息数据类型"""

    room_id: str = Field(..., description="房间唯一标识")
    user_count: int = Field(..., description="当前在线人数")
    max_members: int = Field(..., description="房间人数上限")
    message_count: int = Field(..., description="当前保留的历史消息条数")
