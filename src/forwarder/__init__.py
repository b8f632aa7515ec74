"""Forwarder - transparent HTTP forwarding gateway."""

__version__ = "0.1.0"

from .app import app, create_app
from .config import Settings
from .models import DomainRewritePair, InboundRequest, OutboundReply
from .services import Forwarder, ForwardingError

__all__ = [
    "Forwarder",
    "ForwardingError",
    "Settings",
    "DomainRewritePair",
    "InboundRequest",
    "OutboundReply",
    "app",
    "create_app",
]
