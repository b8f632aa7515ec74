"""Append-only diagnostics log for upstream traffic."""

import asyncio
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)


class TransportLog:
    """Writes request and response headers of every upstream exchange.

    Writes are best-effort: a failing sink is reported through the logger and
    never reaches the request being forwarded. The hooks append from a worker
    thread; appends are serialized so concurrent requests do not interleave
    their blocks.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path
        self._lock = threading.Lock()
        self.logger = logger.bind(component="TransportLog")

    def event_hooks(self) -> dict:
        """httpx event hooks that feed this log."""
        return {"request": [self.log_request], "response": [self.log_response]}

    async def log_request(self, request: httpx.Request) -> None:
        lines = [f"> {request.method} {request.url}"]
        lines.extend(f"> {name}: {value}" for name, value in _decoded(request.headers))
        await asyncio.to_thread(self.write, lines)

    async def log_response(self, response: httpx.Response) -> None:
        lines = [
            f"< {response.http_version} {response.status_code} "
            f"{response.reason_phrase}".rstrip()
        ]
        lines.extend(f"< {name}: {value}" for name, value in _decoded(response.headers))
        await asyncio.to_thread(self.write, lines)

    def write(self, lines: list[str]) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        block = "\n".join([f"* {stamp}", *lines, ""]) + "\n"

        if self.path is None:
            self.logger.debug("Upstream traffic", block=block)
            return

        try:
            with self._lock:
                with self.path.open("a", encoding="utf-8") as fh:
                    fh.write(block)
        except OSError as e:
            self.logger.warning(
                "Failed to write transport log", path=str(self.path), error=str(e)
            )


def _decoded(headers: httpx.Headers) -> list[tuple[str, str]]:
    return [
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in headers.raw
    ]
