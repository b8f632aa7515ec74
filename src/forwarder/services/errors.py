"""Errors raised while forwarding a request."""

from fastapi import status


class ForwardingError(Exception):
    """Base class for failures surfaced to the caller."""

    status_code: int = status.HTTP_502_BAD_GATEWAY
    detail: str = "Bad gateway"

    def __init__(self, detail: str | None = None, target_url: str | None = None):
        self.detail = detail or self.detail
        self.target_url = target_url
        super().__init__(self.detail)


class UpstreamUnreachable(ForwardingError):
    """Connection refused, DNS failure, TLS failure or another transport error."""

    detail = "Bad gateway - cannot reach upstream"


class UpstreamTimeout(UpstreamUnreachable):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    detail = "Gateway timeout"


class UpstreamMalformedResponse(ForwardingError):
    """The upstream answered with something the transport could not parse."""

    detail = "Bad gateway - malformed upstream response"


class MissingUploadField(ForwardingError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Missing upload field"


class ClientDisconnected(ForwardingError):
    """The caller went away before the upstream answered."""

    status_code = 499
    detail = "Client closed request"
