from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ToolStatus = Literal["available", "not found"]


class UploadRecord(BaseModel):
    generated_name: str
    original_name: str
    path: str
    size: int
    content_type: Optional[str] = None


class ConversionJob(BaseModel):
    input_path: str
    output_path: str
    timeout: float
    command: str
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""


class StatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    status: str
    tool_status: ToolStatus = Field(alias="toolStatus")


class ConvertResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    musicxml: str
    original_name: str = Field(alias="originalName")
    size: int


class ErrorResponse(BaseModel):
    error: str
    details: Optional[Dict[str, Any]] = None


class DebugResponse(BaseModel):
    command: str
    error: Optional[str] = None
    stdout: str = ""
    stderr: str = ""
