from typing import Optional
from fastapi import Request
from midixml.core.config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tool(request: Request) -> Optional[str]:
    """Tool command resolved at startup, or None when discovery failed."""
    return getattr(request.app.state, "tool", None)
