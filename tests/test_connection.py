"""
tests.test_connection
~~~~~~~~~~~~~~~~~~~~~

ClientConnection / ConnectionManager 单元测试。

使用 AsyncMock 代替真实 WebSocket，只验证出站队列与关闭流程。
"""
from __future__ import annotations

from unittest.mock import AsyncMock, call

import pytest
from starlette.websockets import WebSocketState

from app.services.connection import ClientConnection, ConnectionManager


def mock_websocket(
    client_state: WebSocketState = WebSocketState.CONNECTED,
    application_state: WebSocketState = WebSocketState.CONNECTED,
) -> AsyncMock:
    ws = AsyncMock()
    ws.client_state = client_state
    ws.application_state = application_state
    return ws


class TestClientConnection:
    """测试出站队列的顺序、丢弃与关闭语义。"""

    def test_is_open_requires_both_sides_connected(self) -> None:
        assert ClientConnection(mock_websocket()).is_open
        assert not ClientConnection(
            mock_websocket(client_state=WebSocketState.DISCONNECTED),
        ).is_open
        assert not ClientConnection(
            mock_websocket(application_state=WebSocketState.DISCONNECTED),
        ).is_open

    @pytest.mark.asyncio
    async def test_frames_are_flushed_in_order_before_close(self) -> None:
        ws = mock_websocket()
        conn = ClientConnection(ws)

        conn.send_text("a")
        conn.send_text("b")
        conn.close(code=1008)
        conn.send_text("c")  # 请求关闭后不再入队
        await conn.writer_loop()

        assert ws.send_text.await_args_list == [call("a"), call("b")]
        ws.close.assert_awaited_once_with(code=1008)
        assert not conn.is_open

    @pytest.mark.asyncio
    async def test_send_on_closed_socket_is_dropped(self) -> None:
        ws = mock_websocket(client_state=WebSocketState.DISCONNECTED)
        conn = ClientConnection(ws)

        conn.send_text("lost")
        conn.close()
        await conn.writer_loop()

        ws.send_text.assert_not_awaited()
        # 客户端已断开，不再尝试关闭
        ws.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_stops_writer_quietly(self) -> None:
        ws = mock_websocket()
        ws.send_text.side_effect = RuntimeError("socket gone")
        conn = ClientConnection(ws)

        conn.send_text("a")
        conn.send_text("b")
        await conn.writer_loop()

        assert ws.send_text.await_count == 1

    def test_close_is_idempotent(self) -> None:
        conn = ClientConnection(mock_websocket())

        conn.close(code=1008)
        conn.close(code=1000)

        assert conn.close_code == 1008
        assert conn.closing


class TestConnectionManager:
    """测试在线连接统计。"""

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self) -> None:
        manager = ConnectionManager()
        ws = mock_websocket()

        conn = await manager.connect(ws)

        ws.accept.assert_awaited_once()
        assert manager.online_count == 1
        assert conn.websocket is ws

        manager.disconnect(conn)
        manager.disconnect(conn)
        assert manager.online_count == 0
