"""
app.api.room
~~~~~~~~~~~~

房间 REST 接口 —— 只读快照，不会创建或修改房间。

路由前缀 ``/api``。

端点:
  - ``GET /rooms``           → 获取活跃房间列表
  - ``GET /rooms/{room_id}`` → 获取房间详情（不存在返回 404）
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_registry
from app.schemas.api_response import ApiResponse
from app.schemas.room_info import RoomInfoData
from app.services.registry import RoomRegistry

router: APIRouter = APIRouter()


@router.get("/rooms", summary="获取活跃房间列表")
async def list_rooms(
    registry: RoomRegistry = Depends(get_registry),
) -> ApiResponse[list[RoomInfoData]]:
    """返回所有活跃房间（至少有一名成员）的摘要。"""
    return ApiResponse.ok(data=registry.list_rooms())


@router.get(
    "/rooms/{room_id}",
    summary="获取房间详情",
    response_model=ApiResponse[RoomInfoData],
)
async def room_info(
    room_id: str,
    registry: RoomRegistry = Depends(get_registry),
) -> ApiResponse[RoomInfoData] | JSONResponse:
    """返回指定房间的在线人数和历史消息条数。

    Args:
        room_id: 房间唯一标识。
    """
    room = registry.get(room_id)
    if room is None:
        response = ApiResponse.fail(msg="Room not found", code=404)
        return JSONResponse(status_code=404, content=response.model_dump())
    return ApiResponse.ok(data=room.info())
