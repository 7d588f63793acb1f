# midixml/services/convert.py
import asyncio
import logging
import os
import re
import signal
from pathlib import Path
from typing import Optional

from midixml.core.config import MALFORMED_MARKER, OUTPUT_EXTENSION, Settings
from midixml.core.errors import (
    ConversionError,
    ConversionTimeoutError,
    ConverterError,
    GenerationFailureError,
    InternalError,
    MalformedInputError,
    ReadError,
    ToolNotFoundAtRuntime,
    ToolUnavailableError,
)
from midixml.models.convert import ConversionJob, ConvertResponse, UploadRecord
from midixml.services.cleanup import remove_files

log = logging.getLogger("convert")

COMMAND_NOT_FOUND = 127
_MIDI_SUFFIX = re.compile(r"\.(mid|midi)$", re.IGNORECASE)


def output_path_for(input_path: str) -> str:
    """Same directory, `.mid`/`.midi` swapped for `.musicxml`."""
    out, n = _MIDI_SUFFIX.subn(OUTPUT_EXTENSION, input_path)
    if n == 0:
        out = input_path + OUTPUT_EXTENSION
    return out


def _details(job: ConversionJob) -> dict:
    return {"code": job.returncode, "stderr": job.stderr, "command": job.command}


def kill_group(proc: asyncio.subprocess.Process) -> None:
    # the tool runs as a session leader, so its pid is also the group id
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def _run(job: ConversionJob, env: Optional[dict] = None) -> ConversionJob:
    cmd = [job.command, "-o", job.output_path, job.input_path]
    log.info("Running: %s", " ".join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
            start_new_session=True,
        )
    except OSError as e:
        # removed or no longer executable since startup
        raise ToolNotFoundAtRuntime(details={"command": job.command, "stderr": str(e)})
    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=job.timeout)
    except asyncio.TimeoutError:
        kill_group(proc)
        await proc.wait()
        raise ConversionTimeoutError(
            details={"timeout": job.timeout, "command": job.command}
        )
    job.returncode = proc.returncode
    job.stdout = out.decode(errors="replace")
    job.stderr = err.decode(errors="replace")
    log.debug("stdout: %s", job.stdout)
    log.debug("stderr: %s", job.stderr)
    return job


def check_result(job: ConversionJob) -> None:
    """Raise the error matching a finished job, if it failed."""
    if job.returncode != 0:
        if job.returncode == COMMAND_NOT_FOUND:
            # shell wrappers report a missing binary this way; not portable
            raise ToolNotFoundAtRuntime(details=_details(job))
        if MALFORMED_MARKER in job.stderr:
            raise MalformedInputError(details=_details(job))
        raise ConversionError(
            f"Command failed ({job.returncode}): {job.command}",
            details=_details(job),
        )
    if not os.path.exists(job.output_path):
        raise GenerationFailureError(details={"stderr": job.stderr})


async def read_output(path: str) -> str:
    try:
        return await asyncio.to_thread(
            Path(path).read_text, encoding="utf-8", errors="replace"
        )
    except OSError as e:
        raise ReadError(details={"reason": str(e)})


async def convert_upload(
    record: UploadRecord,
    tool: Optional[str],
    settings: Settings,
) -> ConvertResponse:
    """Convert one staged upload and remove its files, whatever the outcome."""
    job = ConversionJob(
        input_path=record.path,
        output_path=output_path_for(record.path),
        timeout=settings.convert_timeout,
        command=tool or "",
    )
    try:
        if not tool:
            raise ToolUnavailableError()
        log.info("Converting %s (%s)", record.generated_name, record.original_name)
        await _run(job, env=settings.tool_env())
        check_result(job)
        xml = await read_output(job.output_path)
        log.info("Converted %s: %d characters", record.generated_name, len(xml))
        return ConvertResponse(
            musicxml=xml, original_name=record.original_name, size=len(xml)
        )
    except ConverterError as e:
        log.error("Conversion failed for %s: %s", record.generated_name, e.message)
        raise
    except Exception as e:
        log.exception("Unexpected error converting %s", record.generated_name)
        raise InternalError() from e
    finally:
        remove_files([job.input_path, job.output_path])
