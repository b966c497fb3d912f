"""
app.schemas
~~~~~~~~~~~
Pydantic schemas for the REST API and the WebSocket wire format.
"""
from app.schemas.api_response import ApiResponse
from app.schemas.chat_events import (
    ChatMessage,
    ErrorEvent,
    HistoryEvent,
    JoinedEvent,
    JoinRequest,
    NewMessageEvent,
    OutboundEvent,
    PostRequest,
    UserCountEvent,
    UserJoinedEvent,
    UserLeftEvent,
    parse_inbound,
)
from app.schemas.room_info import RoomInfoData

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()
