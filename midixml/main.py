import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from midixml.api.routes_convert import router as convert_router
from midixml.api.routes_status import router as status_router
from midixml.core.config import Settings, load_settings
from midixml.core.errors import ConverterError
from midixml.middleware.limits import BodySizeLimitMiddleware, BodyTooLarge
from midixml.services.cleanup import Janitor
from midixml.services.locator import discover_tool

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Resolve the tool and start the Janitor before serving; stop it after."""
    settings: Settings = app.state.settings
    level = getattr(logging, settings.log_level.upper(), None)
    if level is not None:
        logging.getLogger().setLevel(level)

    os.makedirs(settings.upload_dir, exist_ok=True)
    app.state.tool = await discover_tool(settings.candidates)

    janitor = Janitor(
        settings.upload_dir, settings.cleanup_interval, settings.cleanup_max_age
    )
    app.state.janitor = janitor
    await janitor.start()
    logger.info("MuseScore status: %s", app.state.tool or "unavailable")
    try:
        yield
    finally:
        await janitor.stop()


async def converter_error_handler(request: Request, exc: ConverterError):
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


async def body_too_large_handler(request: Request, exc: BodyTooLarge):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"error": "Invalid request.", "details": {"errors": jsonable_encoder(exc.errors())}},
        status_code=400,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="MIDI to MusicXML Converter", lifespan=lifespan)
    app.state.settings = settings
    app.state.tool = None

    app.add_middleware(BodySizeLimitMiddleware, max_upload_bytes=settings.max_upload_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ConverterError, converter_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(BodyTooLarge, body_too_large_handler)

    app.include_router(status_router)
    app.include_router(convert_router)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
