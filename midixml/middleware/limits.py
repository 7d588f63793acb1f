from fastapi import HTTPException
from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from midixml.core.config import MAX_UPLOAD_BYTES, MULTIPART_OVERHEAD


class BodyTooLarge(HTTPException):
    # an HTTPException so FastAPI's form parsing re-raises it untouched
    def __init__(self):
        super().__init__(status_code=413, detail="File too large")


class BodySizeLimitMiddleware:
    """Cap request bodies, declared or streamed, at what an allowed upload needs."""

    def __init__(self, app: ASGIApp, max_upload_bytes: int = MAX_UPLOAD_BYTES):
        self.app = app
        self.limit = max_upload_bytes + MULTIPART_OVERHEAD

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        cl = Headers(scope=scope).get("content-length")
        if cl is not None:
            try:
                too_big = int(cl) > self.limit
            except ValueError:
                response = JSONResponse({"error": "Bad Content-Length"}, status_code=400)
                await response(scope, receive, send)
                return
            if too_big:
                response = JSONResponse({"error": "File too large"}, status_code=413)
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                # chunked bodies carry no Content-Length; stop reading here
                if received > self.limit:
                    raise BodyTooLarge()
            return message

        await self.app(scope, limited_receive, send)
