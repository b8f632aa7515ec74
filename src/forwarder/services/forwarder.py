"""Request/response translation between the caller and the upstream."""

import asyncio
from typing import Optional

import httpx
import structlog

from ..config import Settings
from ..headers import (
    build_target_url,
    translate_request_headers,
    translate_response_headers,
)
from ..models import InboundRequest, OutboundReply, OutboundRequest, UpstreamResponse
from .errors import (
    MissingUploadField,
    UpstreamMalformedResponse,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from .transport_log import TransportLog

logger = structlog.get_logger(__name__)

# Field name the upstream expects the uploaded file under.
OUTBOUND_FILE_FIELD = "file"


class Forwarder:
    """Forward one inbound request to the upstream and translate the reply."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.pair = settings.rewrite_pair
        self._transport = transport
        self.transport_log = (
            TransportLog(settings.headers_log_path) if settings.log_headers else None
        )
        self.logger = logger.bind(component="Forwarder")

    def build_outbound(self, inbound: InboundRequest) -> OutboundRequest:
        """Translate the inbound request into the one sent upstream."""
        method = inbound.method.upper()
        upload = None

        if method == "POST":
            if inbound.upload is not None:
                upload = inbound.upload.model_copy(
                    update={"field_name": OUTBOUND_FILE_FIELD}
                )
            elif self.settings.reject_post_without_file:
                raise MissingUploadField(
                    f"Missing required upload field: {self.settings.upload_field}"
                )
            else:
                self.logger.warning("POST without upload, forwarding without body")

        return OutboundRequest(
            method=method,
            url=build_target_url(self.settings.upstream_base_url, inbound.path_suffix),
            headers=translate_request_headers(inbound.headers, self.pair),
            file=upload,
        )

    async def send(self, outbound: OutboundRequest) -> UpstreamResponse:
        """Issue the outbound request, following redirects, and buffer the reply."""
        files = None
        if outbound.file is not None:
            files = {
                outbound.file.field_name: (
                    outbound.file.filename,
                    outbound.file.content,
                    outbound.file.content_type,
                )
            }

        client_kwargs = {
            "timeout": httpx.Timeout(self.settings.request_timeout),
            "verify": self.settings.verify_tls,
            "follow_redirects": True,
        }
        if self._transport is not None:
            client_kwargs["transport"] = self._transport
        if self.transport_log is not None:
            client_kwargs["event_hooks"] = self.transport_log.event_hooks()

        try:
            # httpx times each operation; this bounds the whole exchange
            async with asyncio.timeout(self.settings.request_timeout):
                async with httpx.AsyncClient(**client_kwargs) as client:
                    response = await client.request(
                        outbound.method,
                        outbound.url,
                        headers=outbound.headers,
                        files=files,
                    )
        except (httpx.TimeoutException, TimeoutError) as e:
            self.logger.error("Upstream timeout", url=outbound.url, error=str(e))
            raise UpstreamTimeout(target_url=outbound.url) from e
        except (
            httpx.RemoteProtocolError,
            httpx.DecodingError,
            httpx.TooManyRedirects,
        ) as e:
            self.logger.error(
                "Malformed upstream response", url=outbound.url, error=str(e)
            )
            raise UpstreamMalformedResponse(target_url=outbound.url) from e
        except httpx.RequestError as e:
            self.logger.error("Upstream unreachable", url=outbound.url, error=str(e))
            raise UpstreamUnreachable(target_url=outbound.url) from e

        return UpstreamResponse(
            status_code=response.status_code,
            headers=[
                (name.decode("latin-1"), value.decode("latin-1"))
                for name, value in response.headers.raw
            ],
            content=response.content,
        )

    def build_reply(self, upstream: UpstreamResponse) -> OutboundReply:
        """Translate the upstream response into the reply for the caller."""
        return OutboundReply(
            status_code=upstream.status_code,
            headers=translate_response_headers(upstream.headers, self.pair),
            content=upstream.content,
        )

    async def handle(self, inbound: InboundRequest) -> OutboundReply:
        """Forward ``inbound`` and return the translated upstream reply."""
        outbound = self.build_outbound(inbound)
        self.logger.debug(
            "Forwarding request",
            method=outbound.method,
            url=outbound.url,
            headers=[name for name, _ in outbound.headers],
            has_file=outbound.file is not None,
        )

        upstream = await self.send(outbound)
        reply = self.build_reply(upstream)

        self.logger.info(
            "Request forwarded",
            method=outbound.method,
            url=outbound.url,
            status=reply.status_code,
            bytes=len(reply.content),
        )
        return reply
