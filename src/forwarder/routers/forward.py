"""Forwarding endpoints."""

import asyncio
from typing import Awaitable, TypeVar

import structlog
from fastapi import APIRouter, HTTPException, Request, Response, status
from starlette.datastructures import UploadFile

from ..headers import mount_suffix
from ..models import InboundRequest, OutboundReply, UploadedFile
from ..services import ClientDisconnected, Forwarder, ForwardingError

logger = structlog.get_logger(__name__)

FORWARDED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

# Seconds between checks for a caller that has gone away.
DISCONNECT_POLL_INTERVAL = 0.5

T = TypeVar("T")


def create_forward_router(mount_path: str) -> APIRouter:
    """Create the router serving everything under ``mount_path``."""
    router = APIRouter(tags=["forward"])
    if mount_path == "/":
        router.add_api_route(
            "/{path:path}", forward_request, methods=FORWARDED_METHODS
        )
    else:
        router.add_api_route(mount_path, forward_request, methods=FORWARDED_METHODS)
        router.add_api_route(
            f"{mount_path}/{{path:path}}", forward_request, methods=FORWARDED_METHODS
        )
    return router


async def forward_request(request: Request) -> Response:
    """Relay the request to the upstream and return its translated reply."""
    forwarder: Forwarder = request.app.state.forwarder
    settings = forwarder.settings
    inbound = await read_inbound(request, settings.mount_path, settings.upload_field)

    try:
        reply = await cancel_on_disconnect(request, forwarder.handle(inbound))
    except ClientDisconnected:
        logger.info(
            "Caller disconnected, upstream call cancelled",
            method=inbound.method,
            suffix=inbound.path_suffix,
        )
        return Response(status_code=ClientDisconnected.status_code)
    except ForwardingError as e:
        logger.error(
            "Forwarding failed",
            method=inbound.method,
            suffix=inbound.path_suffix,
            status=e.status_code,
            error=str(e),
        )
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e

    return to_response(reply)


async def cancel_on_disconnect(request: Request, awaitable: Awaitable[T]) -> T:
    """Await ``awaitable``, cancelling it if the caller disconnects first."""
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                raise ClientDisconnected()
    finally:
        task.cancel()


async def read_inbound(
    request: Request, mount_path: str, upload_field: str
) -> InboundRequest:
    """Capture what the forwarder needs from the ASGI request."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    path = path.split("?", 1)[0]
    query = request.scope.get("query_string", b"").decode("latin-1")
    if query:
        path = f"{path}?{query}"

    suffix = mount_suffix(path, mount_path)
    if suffix is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Path is not under the forwarder mount",
        )

    upload = None
    if request.method == "POST":
        form = await request.form()
        field = form.get(upload_field)
        if isinstance(field, UploadFile):
            upload = UploadedFile(
                field_name=upload_field,
                filename=field.filename,
                content_type=field.content_type,
                content=await field.read(),
            )
            await field.close()

    return InboundRequest(
        method=request.method,
        path_suffix=suffix,
        headers=list(request.headers.items()),
        upload=upload,
    )


def to_response(reply: OutboundReply) -> Response:
    """Build the ASGI response, keeping repeated headers and their case."""
    response = Response(content=reply.content, status_code=reply.status_code)
    response.raw_headers.extend(
        (name.encode("latin-1"), value.encode("latin-1"))
        for name, value in reply.headers
    )
    return response
