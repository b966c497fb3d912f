from fastapi import Request

from app.services.connection import ConnectionManager
from app.services.registry import RoomRegistry


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connections
