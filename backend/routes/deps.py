"""
LeadDesk - Route dependencies
Process-wide services live on app.state (set up by server.create_app).
"""

from fastapi import Request

from services.registry_client import RegistryClient
from services.sessions import SessionRegistry
from services.store import Store


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_registry(request: Request) -> RegistryClient:
    return request.app.state.registry


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions
