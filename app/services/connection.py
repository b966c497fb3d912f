"""
app.services.connection
~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 连接封装 —— 单个客户端的出站队列与全局在线连接列表。

房间逻辑全部是同步代码，不能在广播途中 ``await``。因此每个连接持有一个
出站队列：``send_text()`` 只负责入队（fire-and-forget），由独立的
``writer_loop()`` 协程按 FIFO 顺序真正写入 socket。
"""
from __future__ import annotations

import asyncio

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from app.core.logging import get_logger

logger = get_logger(__name__)


class ClientConnection:
    """一个客户端的 WebSocket 连接。

    Attributes:
        websocket: 底层连接（生命周期由传输层管理）。
        close_code: 请求关闭时使用的关闭码，未请求关闭时为 None。
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self.close_code: int | None = None
        self._outbox: asyncio.Queue[str | None] = asyncio.Queue()

    @property
    def closing(self) -> bool:
        """是否已请求关闭。"""
        return self.close_code is not None

    @property
    def is_open(self) -> bool:
        """连接是否仍可发送（双方均为 CONNECTED 且未请求关闭）。"""
        return (
            not self.closing
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def send_text(self, frame: str) -> None:
        """将一帧放入出站队列；连接不可用时静默丢弃。"""
        if not self.is_open:
            logger.debug("连接不可用，丢弃出站帧")
            return
        self._outbox.put_nowait(frame)

    def close(self, code: int = 1000) -> None:
        """请求关闭连接。已入队的帧会先发送完，再关闭 socket。"""
        if self.closing:
            return
        self.close_code = code
        self._outbox.put_nowait(None)

    async def writer_loop(self) -> None:
        """按入队顺序把出站帧写入 socket，直到收到关闭信号或写入失败。"""
        while True:
            frame = await self._outbox.get()
            if frame is None:
                break
            try:
                await self.websocket.send_text(frame)
            except Exception as e:
                logger.debug("发送失败，停止写入: %s", e)
                return

        if (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        ):
            try:
                await self.websocket.close(code=self.close_code or 1000)
            except Exception as e:
                logger.debug("关闭 WebSocket 失败: %s", e)


class ConnectionManager:
    """在线连接管理器。

    只负责接受连接和统计在线数，房间成员关系由 ``Room`` 维护。

    Attributes:
        active_connections: 当前在线的所有连接。
    """

    def __init__(self) -> None:
        self.active_connections: set[ClientConnection] = set()

    async def connect(self, websocket: WebSocket) -> ClientConnection:
        """接受新连接并加入在线集合。"""
        await websocket.accept()
        connection = ClientConnection(websocket)
        self.active_connections.add(connection)
        return connection

    def disconnect(self, connection: ClientConnection) -> None:
        """从在线集合移除断开的连接。"""
        self.active_connections.discard(connection)

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return len(self.active_connections)
