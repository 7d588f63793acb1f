import os
from typing import List, Optional

from pydantic import BaseModel, Field

MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MB hard cap
MULTIPART_OVERHEAD = 64 * 1024       # headroom for boundaries/headers in Content-Length
UPLOAD_DIR = "uploads"
UPLOAD_FIELD = "midi"
ALLOWED_EXTENSIONS = {".mid", ".midi"}
MIME_ALLOW = {"audio/midi", "audio/x-midi", "audio/mid"}
OUTPUT_EXTENSION = ".musicxml"

# Probed in order at startup
MUSESCORE_CANDIDATES = [
    "mscore",
    "musescore",
    "musescore3",
    "/usr/bin/musescore3",
    "/usr/local/bin/musescore3",
]
HEADLESS_DISPLAY = ":99"
CONVERT_TIMEOUT = 30.0   # seconds
DEBUG_TIMEOUT = 10.0
MALFORMED_MARKER = "Cannot read"

# Janitor
CLEANUP_INTERVAL = 10 * 60
CLEANUP_MAX_AGE = 10 * 60

HOST = "0.0.0.0"
PORT = 3000


class Settings(BaseModel):
    host: str = HOST
    port: int = PORT
    upload_dir: str = UPLOAD_DIR
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    convert_timeout: float = CONVERT_TIMEOUT
    debug_timeout: float = DEBUG_TIMEOUT
    candidates: List[str] = Field(default_factory=lambda: list(MUSESCORE_CANDIDATES))
    display: Optional[str] = HEADLESS_DISPLAY
    qt_offscreen: bool = False
    cleanup_interval: float = CLEANUP_INTERVAL
    cleanup_max_age: float = CLEANUP_MAX_AGE
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    def tool_env(self) -> dict:
        """Environment for the conversion child process."""
        env = dict(os.environ)
        if self.display:
            env["DISPLAY"] = self.display
        if self.qt_offscreen:
            env["QT_QPA_PLATFORM"] = "offscreen"
        return env


def _split(raw: str) -> List[str]:
    return [p.strip() for p in raw.split(",") if p.strip()]


def load_settings() -> Settings:
    """Build settings from defaults overlaid with environment variables."""
    env = os.environ
    values = {}
    if "HOST" in env:
        values["host"] = env["HOST"]
    if "PORT" in env:
        values["port"] = env["PORT"]
    if "UPLOAD_DIR" in env:
        values["upload_dir"] = env["UPLOAD_DIR"]
    if "MAX_UPLOAD_BYTES" in env:
        values["max_upload_bytes"] = env["MAX_UPLOAD_BYTES"]
    if "CONVERT_TIMEOUT" in env:
        values["convert_timeout"] = env["CONVERT_TIMEOUT"]
    if env.get("MUSESCORE_CANDIDATES"):
        values["candidates"] = _split(env["MUSESCORE_CANDIDATES"])
    if "MUSESCORE_DISPLAY" in env:
        # empty string disables the override
        values["display"] = env["MUSESCORE_DISPLAY"] or None
    if "QT_OFFSCREEN" in env:
        values["qt_offscreen"] = env["QT_OFFSCREEN"].lower() in ("1", "true", "yes")
    if "CLEANUP_INTERVAL" in env:
        values["cleanup_interval"] = env["CLEANUP_INTERVAL"]
    if "CLEANUP_MAX_AGE" in env:
        values["cleanup_max_age"] = env["CLEANUP_MAX_AGE"]
    if env.get("CORS_ORIGINS"):
        values["cors_origins"] = _split(env["CORS_ORIGINS"])
    if "LOG_LEVEL" in env:
        values["log_level"] = env["LOG_LEVEL"]
    return Settings(**values)
