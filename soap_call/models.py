"""Data models for soap-call.

All models use Pydantic v2. Payload shapes subclass ``XmlModel``; transport
and runtime configuration are frozen models validated at load time.
"""

from __future__ import annotations

import types
from typing import Any, ClassVar, Self, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator

from soap_call.xml_body import local_name

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"


# =============================================================================
# Payload Shapes
# =============================================================================


def _is_list_annotation(annotation: Any) -> bool:
    """True for ``list[X]`` and ``list[X] | None`` annotations."""
    origin = get_origin(annotation)
    if origin is list:
        return True
    if origin is Union or origin is types.UnionType:
        return any(get_origin(arg) is list for arg in get_args(annotation))
    return False


def _union_members(annotation: Any) -> tuple[Any, ...]:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return tuple(arg for arg in get_args(annotation) if arg is not type(None))
    return (annotation,)


def _is_scalar_annotation(annotation: Any) -> bool:
    """True when every member of *annotation* is a plain leaf type (str, int, Enum...)."""
    for member in _union_members(annotation):
        if member is Any or get_origin(member) is not None or not isinstance(member, type):
            return False
        if issubclass(member, (BaseModel, dict, list)):
            return False
    return True


class XmlModel(BaseModel):
    """Base class for XML payload shapes.

    ``xml_tag`` names the root element when the model is serialized as a
    whole document; it defaults to the class name and may carry a prefix
    (``soap:Envelope``).  Field aliases name child elements, ``@name``
    aliases are attributes and ``#text`` is the element text.

    Decoding is lenient about the quirks of dict-converted XML: prefixed
    aliases match elements by local name, a single child is wrapped for
    list fields, empty elements validate as empty models (or ``""`` for
    ``str`` fields) and scalar fields read the text of an element that
    carries attributes.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    xml_tag: ClassVar[str | None] = None

    @classmethod
    def root_tag(cls) -> str:
        return cls.xml_tag or cls.__name__

    @model_validator(mode="before")
    @classmethod
    def normalize_xml_tree(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, str):
            return {"#text": data}
        if not isinstance(data, dict):
            return data

        data = dict(data)
        for name, field_info in cls.model_fields.items():
            key = field_info.alias or name
            if key not in data and name not in data and not key.startswith(("@", "#")):
                local = local_name(key)
                if local in data:
                    data[key] = data.pop(local)
            if key not in data:
                continue
            annotation = field_info.annotation
            value = data[key]
            if _is_list_annotation(annotation):
                if value is None:
                    data[key] = []
                elif not isinstance(value, list):
                    data[key] = [value]
            elif _is_scalar_annotation(annotation):
                # Leaf attributes are dropped, only the character data is read
                if isinstance(value, dict):
                    value = value.get("#text", "")
                if value is None and annotation is str:
                    value = ""
                data[key] = value
        return data


class Fault(XmlModel):
    """SOAP 1.1 fault element."""

    xml_tag: ClassVar[str | None] = "Fault"

    faultcode: str | None = None
    faultstring: str | None = None
    faultactor: str | None = None
    detail: Any = None


class FaultBody(XmlModel):
    xml_tag: ClassVar[str | None] = "Body"

    fault: Fault = Field(default_factory=Fault, alias="Fault")


class FaultEnvelope(XmlModel):
    """Envelope carrying a SOAP fault, usable as a fault payload shape.

    Example body it decodes::

        <soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">
          <soap:Body>
            <soap:Fault>
              <faultcode>soap:Server</faultcode>
              <faultstring>Error processing request</faultstring>
              <detail/>
            </soap:Fault>
          </soap:Body>
        </soap:Envelope>
    """

    xml_tag: ClassVar[str | None] = "Envelope"

    body: FaultBody = Field(default_factory=FaultBody, alias="Body")


# =============================================================================
# Configuration Models
# =============================================================================


class TransportConfig(BaseModel):
    """Immutable transport tuning for a Client.

    Defaults keep the library usable under concurrent callers without
    per-call configuration.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    timeout: float | None = Field(
        default=None, gt=0, description="Overall per-call timeout in seconds (None = unbounded)"
    )
    connect_timeout: float = Field(
        default=30.0,
        gt=0,
        description=(
            "TCP connect + TLS handshake timeout in seconds; httpx cannot bound the"
            " handshake separately, so lower this to tighten it"
        ),
    )
    keepalive: float = Field(default=30.0, gt=0, description="TCP keep-alive idle time in seconds")
    max_idle_connections: int = Field(default=100, ge=0, description="Idle pooled connections kept")
    max_connections: int | None = Field(
        default=None, ge=1, description="Total connection cap (None = unlimited)"
    )
    idle_timeout: float = Field(default=90.0, gt=0, description="Seconds an idle connection is kept")
    trust_env: bool = Field(
        default=True, description="Read proxy settings (HTTP_PROXY etc.) from the environment"
    )
    verify_ssl: bool = Field(default=True, description="Verify server certificates")
    ca_bundle: str | None = Field(default=None, description="Path to a CA bundle")
    cert: str | None = Field(default=None, description="Client certificate path (mTLS)")
    key: str | None = Field(default=None, description="Client key path (mTLS)")
    key_password: str | None = Field(default=None, description="Password for the client key")
    ciphers: str | None = Field(default=None, description="OpenSSL cipher string")

    @model_validator(mode="after")
    def check_cert_pair(self) -> Self:
        if (self.cert is None) != (self.key is None):
            raise ValueError("cert and key must be set together")
        return self


class EndpointConfig(BaseModel):
    """One named SOAP endpoint."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(description="Service URL")
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers sent verbatim (supports ${ENV_VAR} substitution)",
    )


class RuntimeConfig(BaseModel):
    """Runtime configuration from YAML."""

    model_config = ConfigDict(extra="forbid")

    transport: TransportConfig = Field(default_factory=TransportConfig)
    endpoints: dict[str, EndpointConfig] = Field(
        default_factory=dict, description="Endpoint name -> config mapping"
    )
