"""Payload codec - turns payloads into request bytes and response bytes into payloads.

The default ``XmlCodec`` serializes ``XmlModel`` instances through
``dict_to_xml`` and decodes response bodies through ``xml_to_dict`` followed
by pydantic validation.  Decoded values are written into a ``PayloadSlot``,
the addressable destination a request builder holds for each expected shape.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from pydantic import ValidationError

from soap_call.models import XmlModel
from soap_call.xml_body import dict_to_xml, local_name, xml_to_dict

if TYPE_CHECKING:
    from soap_call.response import Response

T = TypeVar("T")


class CodecError(Exception):
    """Base class for codec errors."""


class EncodeError(CodecError):
    """Raised when an outgoing payload cannot be serialized."""


class DecodeError(CodecError):
    """Raised when a response body cannot be decoded into its slot.

    When raised from dispatch, ``response`` holds the Response so the raw
    body and status remain inspectable.
    """

    def __init__(self, message: str, response: Response | None = None) -> None:
        super().__init__(message)
        self.response = response


class PayloadSlot(Generic[T]):
    """Addressable destination for a decoded payload.

    ``shape`` is the type decoded into; ``value`` holds the last decoded
    value, or whatever the slot was created with until a decode happens.
    """

    def __init__(self, shape: type[T], value: T | None = None) -> None:
        self.shape = shape
        self.value = value

    def __repr__(self) -> str:
        return f"PayloadSlot({self.shape.__name__}, value={self.value!r})"


def as_slot(payload: Any) -> PayloadSlot[Any]:
    """Normalize a payload argument into a PayloadSlot.

    Accepts a slot (returned as is), a shape class, or a bare instance.  A
    bare instance only donates its type: a fresh empty slot is allocated and
    the instance itself is never written to.

    Raises:
        TypeError: If *payload* is None, which names no shape.
    """
    if payload is None:
        raise TypeError("A payload shape is required, got None")
    if isinstance(payload, PayloadSlot):
        return payload
    if isinstance(payload, type):
        return PayloadSlot(payload)
    return PayloadSlot(type(payload))


class PayloadCodec(Protocol):
    """Protocol for payload codecs."""

    def serialize(self, payload: Any) -> bytes: ...

    def deserialize(self, data: bytes, slot: PayloadSlot[Any]) -> None: ...


class XmlCodec:
    """XML codec for pydantic payload shapes.

    Outgoing payloads may be an ``XmlModel`` instance, a dict with a single
    root key, pre-serialized ``str``/``bytes``, or None for an empty body.
    Slot shapes may be ``XmlModel`` subclasses, ``dict`` (generic element
    tree), ``str`` (decoded text) or ``bytes`` (raw body).
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def serialize(self, payload: Any) -> bytes:
        """Serialize *payload* to XML bytes.

        Raises:
            EncodeError: If the payload type is unsupported or the payload
                cannot be represented as a single-rooted document.
        """
        if payload is None:
            return b""
        if isinstance(payload, bytes):
            return payload
        if isinstance(payload, str):
            return payload.encode(self.encoding)

        if isinstance(payload, XmlModel):
            try:
                tree = {
                    payload.root_tag(): payload.model_dump(
                        mode="json", by_alias=True, exclude_none=True
                    )
                }
            except (ValueError, TypeError) as e:
                raise EncodeError(f"Cannot dump {type(payload).__name__}: {e}") from e
        elif isinstance(payload, dict):
            tree = payload
        else:
            raise EncodeError(
                f"Unsupported payload type {type(payload).__name__}; "
                f"expected XmlModel, dict, str or bytes"
            )

        try:
            return dict_to_xml(tree)
        except ValueError as e:
            raise EncodeError(str(e)) from e

    def deserialize(self, data: bytes, slot: PayloadSlot[Any]) -> None:
        """Decode *data* into ``slot.value``.

        The slot is only written when decoding succeeds.

        Raises:
            DecodeError: On malformed XML, an unexpected root element, a
                body that does not validate against the shape, or an
                unsupported shape.
        """
        shape = slot.shape

        if shape is bytes:
            slot.value = data
            return
        if shape is str:
            try:
                slot.value = data.decode(self.encoding)
            except UnicodeDecodeError as e:
                raise DecodeError(f"Body is not valid {self.encoding}: {e}") from e
            return

        try:
            tree = xml_to_dict(data)
        except ET.ParseError as e:
            raise DecodeError(f"Malformed XML body: {e}") from e

        if shape is dict:
            slot.value = tree
            return

        if not (isinstance(shape, type) and issubclass(shape, XmlModel)):
            raise DecodeError(f"Unsupported payload shape {shape!r}")

        root_name, content = next(iter(tree.items()))
        expected = local_name(shape.root_tag())
        if root_name != expected:
            raise DecodeError(
                f"Expected root element <{expected}> but found <{root_name}>"
            )

        try:
            slot.value = shape.model_validate(content)
        except ValidationError as e:
            raise DecodeError(
                f"Body does not match {shape.__name__}: {e}"
            ) from e
