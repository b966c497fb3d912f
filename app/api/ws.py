"""
app.api.ws
~~~~~~~~~~

WebSocket 聊天中继端点。

一个连接同时运行两条执行流:
  - 接收循环: 逐帧读取客户端数据，交给 ``ConnectionDispatcher`` 同步处理
  - 写入协程: ``ClientConnection.writer_loop()``，按顺序把出站帧写回客户端

连接断开（或被服务端关闭）时，在 ``finally`` 中离开房间并等待写入协程结束。
"""
from __future__ import annotations

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.core.logging import get_logger
from app.services.connection import ConnectionManager
from app.services.dispatcher import ConnectionDispatcher
from app.services.registry import RoomRegistry

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/")
@router.websocket("/ws")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket 聊天端点。

    消息协议（JSON 文本帧）:
      - ``{"type": "join", "roomId", "userId"}`` —— 加入房间
      - ``{"type": "message", "encrypted"}`` —— 在当前房间发送消息

    Args:
        websocket: FastAPI WebSocket 连接对象。
    """
    registry: RoomRegistry = websocket.app.state.registry
    manager: ConnectionManager = websocket.app.state.connections

    connection = await manager.connect(websocket)
    dispatcher = ConnectionDispatcher(registry, connection)
    writer = asyncio.create_task(connection.writer_loop())
    logger.info("客户端已连接 | 在线连接: %d", manager.online_count)

    try:
        while not connection.closing:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            # 文本帧与二进制帧都按 JSON 解析
            raw = message.get("text")
            dispatcher.handle_frame(raw if raw is not None else message.get("bytes") or b"")
    except WebSocketDisconnect:
        pass  # 正常断开
    except Exception as e:
        logger.error("WebSocket 接收异常: %s", e, exc_info=True)
    finally:
        dispatcher.disconnect()
        manager.disconnect(connection)
        connection.close()
        await writer
        logger.info("客户端已断开 | 在线连接: %d", manager.online_count)
