from typing import Optional
from fastapi import APIRouter, Depends, File, UploadFile
from midixml.api.deps import get_settings, get_tool
from midixml.core.config import Settings
from midixml.services.convert import convert_upload
from midixml.utils.storage import save_upload

router = APIRouter(tags=["convert"])


@router.post("/convert")
async def convert(
    midi: Optional[UploadFile] = File(None, description="MIDI file (.mid/.midi)"),
    tool: Optional[str] = Depends(get_tool),
    settings: Settings = Depends(get_settings),
):
    record = await save_upload(midi, settings.upload_dir, settings.max_upload_bytes)
    result = await convert_upload(record, tool, settings)
    return result.model_dump(by_alias=True)
