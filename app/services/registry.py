"""
app.services.registry
~~~~~~~~~~~~~~~~~~~~~

房间注册表 —— 管理所有聊天房间的生命周期。

- 首次加入某个 room_id 时懒创建房间
- 房间最后一名成员离开时立即移除
- 后台协程定时裁剪所有房间的历史消息

注册表实例在 FastAPI lifespan 中创建并挂载到 ``app.state.registry``，
通过参数显式传给需要它的对象，不使用模块级全局变量。
"""
from __future__ import annotations

import asyncio

from app.core.logging import get_logger
from app.schemas.room_info import RoomInfoData
from app.services.room import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_MAX_MEMBERS,
    DEFAULT_TRIM_KEEP,
    Room,
)

logger = get_logger(__name__)


class RoomRegistry:
    """room_id → Room 的目录。

    Attributes:
        max_members: 新建房间的人数上限。
        history_limit: 新建房间的历史消息上限。
        trim_keep: 定时裁剪后保留的消息条数。
    """

    def __init__(
        self,
        *,
        max_members: int = DEFAULT_MAX_MEMBERS,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        trim_keep: int = DEFAULT_TRIM_KEEP,
    ) -> None:
        self.max_members = max_members
        self.history_limit = history_limit
        self.trim_keep = trim_keep
        self._rooms: dict[str, Room] = {}

    def get_or_create(self, room_id: str) -> Room:
        """获取指定房间（不存在则自动创建）。"""
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(
                room_id,
                max_members=self.max_members,
                history_limit=self.history_limit,
                on_empty=self._on_room_empty,
            )
            self._rooms[room_id] = room
            logger.info("房间已创建 | room=%s | 房间总数: %d", room_id, len(self._rooms))
        return room

    def get(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def destroy(self, room_id: str, room: Room | None = None) -> bool:
        """移除房间，可重复调用。

        传入 ``room`` 时，只有注册表中的实例仍是该对象才会移除，
        避免误删同 id 的新房间。

        Returns:
            是否真的移除了房间。
        """
        current = self._rooms.get(room_id)
        if current is None or (room is not None and current is not room):
            return False
        del self._rooms[room_id]
        logger.info("房间已销毁 | room=%s | 房间总数: %d", room_id, len(self._rooms))
        return True

    def _on_room_empty(self, room: Room) -> None:
        self.destroy(room.room_id, room)

    def list_rooms(self) -> list[RoomInfoData]:
        """列出所有活跃房间的摘要信息。"""
        return [room.info() for room in self._rooms.values()]

    def trim_histories(self) -> int:
        """裁剪所有房间的历史消息，返回丢弃的总条数。"""
        dropped = 0
        for room in list(self._rooms.values()):
            dropped += room.periodic_trim(self.trim_keep)
        return dropped

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms


async def run_periodic_trim(registry: RoomRegistry, interval_seconds: float) -> None:
    """后台任务：每隔 ``interval_seconds`` 秒裁剪一次所有房间的历史消息。

    与消息处理运行在同一个事件循环上，``trim_histories()`` 是同步调用，
    不会与其他事件处理交错。取消即退出。
    """
    logger.info("历史消息定时清理已启动 | interval=%ss", interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        dropped = registry.trim_histories()
        if dropped:
            logger.info("定时清理历史消息 | 丢弃 %d 条 | 房间数: %d", dropped, len(registry))
