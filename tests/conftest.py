"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 提供一个记录出站帧的假连接，
使房间 / 注册表 / 分发器可以脱离真实 WebSocket 单独测试。
"""
from __future__ import annotations

import json
import os
from typing import Any

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")  # 激活 .env.test 配置


class FakeConnection:
    """模拟 ``ClientConnection``：同步记录所有出站帧。"""

    def __init__(self, name: str = "conn", open_: bool = True) -> None:
        self.name = name
        self.open = open_
        self.frames: list[str] = []
        # 每次 send_text 调用都会记录，无论连接是否可用
        self.send_calls: list[str] = []
        self.close_code: int | None = None

    @property
    def closing(self) -> bool:
        return self.close_code is not None

    @property
    def is_open(self) -> bool:
        return self.open and not self.closing

    def send_text(self, frame: str) -> None:
        self.send_calls.append(frame)
        if self.is_open:
            self.frames.append(frame)

    def close(self, code: int = 1000) -> None:
        if self.close_code is None:
            self.close_code = code

    @property
    def events(self) -> list[dict[str, Any]]:
        """已发送帧的 JSON 解析结果。"""
        return [json.loads(frame) for frame in self.frames]

    @property
    def types(self) -> list[str]:
        return [event["type"] for event in self.events]

    def clear(self) -> None:
        self.frames.clear()
        self.send_calls.clear()

    def __repr__(self) -> str:
        return f"FakeConnection({self.name!r})"


@pytest.fixture()
def make_connection():
    """工厂 fixture：``make_connection("alice")`` 返回一个新的假连接。"""

    def _make(name: str = "conn", open_: bool = True) -> FakeConnection:
        return FakeConnection(name, open_)

    return _make
