"""Services module for the forwarder."""

from .errors import (
    ClientDisconnected,
    ForwardingError,
    MissingUploadField,
    UpstreamMalformedResponse,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from .forwarder import Forwarder
from .transport_log import TransportLog

__all__ = [
    "Forwarder",
    "TransportLog",
    "ForwardingError",
    "ClientDisconnected",
    "UpstreamUnreachable",
    "UpstreamTimeout",
    "UpstreamMalformedResponse",
    "MissingUploadField",
]
