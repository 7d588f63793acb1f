from typing import Optional
from fastapi import APIRouter, Depends
from midixml.api.deps import get_settings, get_tool
from midixml.core.config import Settings
from midixml.models.convert import StatusResponse
from midixml.services.locator import tool_help

router = APIRouter(tags=["status"])


@router.get("/")
def status(tool: Optional[str] = Depends(get_tool)):
    return StatusResponse(
        message="MIDI to MusicXML Converter Server",
        status="running",
        tool_status="available" if tool else "not found",
    ).model_dump(by_alias=True)


@router.get("/debug")
async def debug(
    tool: Optional[str] = Depends(get_tool),
    settings: Settings = Depends(get_settings),
):
    if not tool:
        return {"error": "MuseScore not found"}
    result = await tool_help(tool, timeout=settings.debug_timeout)
    return result.model_dump()
