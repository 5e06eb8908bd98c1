"""soap-call: build, dispatch and decode SOAP calls over HTTP."""

from __future__ import annotations

from soap_call.client import Client, ClientError
from soap_call.codec import (
    CodecError,
    DecodeError,
    EncodeError,
    PayloadCodec,
    PayloadSlot,
    XmlCodec,
    as_slot,
)
from soap_call.models import (
    SOAP_ENV_NS,
    Fault,
    FaultBody,
    FaultEnvelope,
    TransportConfig,
    XmlModel,
)
from soap_call.request import Request, RequestError, TransportError
from soap_call.response import Response

__version__ = "1.0.0"

__all__ = [
    "SOAP_ENV_NS",
    "Client",
    "ClientError",
    "CodecError",
    "DecodeError",
    "EncodeError",
    "Fault",
    "FaultBody",
    "FaultEnvelope",
    "PayloadCodec",
    "PayloadSlot",
    "Request",
    "RequestError",
    "Response",
    "TransportConfig",
    "TransportError",
    "XmlCodec",
    "XmlModel",
    "as_slot",
    "new",
]


def new(config: TransportConfig | None = None) -> Client:
    """Create a Client with the default transport."""
    return Client(config=config)
