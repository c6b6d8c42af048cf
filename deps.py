from datetime import datetime

from fastapi import Request

from config import Settings
from store import Store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_clock(request: Request) -> datetime:
    """Current instant in the configured timezone. Overridden in tests."""
    return datetime.now(request.app.state.settings.tzinfo)
