# midixml/services/locator.py
import asyncio
import logging
import shutil
from typing import Iterable, Optional

from midixml.models.convert import DebugResponse
from midixml.services.convert import kill_group

log = logging.getLogger("locator")


def find_tool(candidates: Iterable[str]) -> Optional[str]:
    for cmd in candidates:
        if shutil.which(cmd):
            log.info("MuseScore command found: %s", cmd)
            return cmd
        log.debug("MuseScore candidate not found: %s", cmd)
    return None


async def _call_tool(cmd: str, *args: str, timeout: float) -> tuple[Optional[int], str, str]:
    proc = await asyncio.create_subprocess_exec(
        cmd, *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        start_new_session=True,
    )
    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        kill_group(proc)
        await proc.wait()
        raise
    return proc.returncode, out.decode(errors="replace"), err.decode(errors="replace")


async def tool_version(cmd: str, timeout: float = 10.0) -> Optional[str]:
    try:
        code, out, _ = await _call_tool(cmd, "--version", timeout=timeout)
    except (OSError, asyncio.TimeoutError) as e:
        log.warning("Could not read MuseScore version: %s", e)
        return None
    return out.strip() if code == 0 else None


async def discover_tool(candidates: Iterable[str]) -> Optional[str]:
    """Locate the conversion tool once, before the server takes traffic."""
    log.info("Searching for MuseScore command...")
    cmd = await asyncio.to_thread(find_tool, list(candidates))
    if cmd is None:
        log.error("MuseScore not found; conversions will fail until restart")
        return None
    version = await tool_version(cmd)
    if version:
        log.info("MuseScore version: %s", version)
    return cmd


async def tool_help(cmd: str, timeout: float = 10.0) -> DebugResponse:
    try:
        code, out, err = await _call_tool(cmd, "--help", timeout=timeout)
    except asyncio.TimeoutError:
        return DebugResponse(command=cmd, error=f"timed out after {timeout:g}s")
    except OSError as e:
        return DebugResponse(command=cmd, error=str(e))
    error = None if code == 0 else f"Command failed ({code})"
    return DebugResponse(command=cmd, error=error, stdout=out, stderr=err)
