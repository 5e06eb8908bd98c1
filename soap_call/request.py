"""Request builder - accumulates one SOAP call and dispatches it.

A builder collects the URL, headers and three payloads (outgoing body,
success shape, fault shape), then ``dispatch()`` POSTs the serialized body
and decodes the reply into the success slot on HTTP 200 or into the fault
slot otherwise.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import httpx

from soap_call.codec import DecodeError, PayloadSlot, as_slot
from soap_call.response import Response

if TYPE_CHECKING:
    from soap_call.client import Client

_logger = logging.getLogger(__name__)


class RequestError(Exception):
    """Base class for dispatch errors."""


class TransportError(RequestError):
    """Raised when the HTTP exchange fails (connection error, timeout, TLS, etc.)."""


class Request:
    """Mutable, single-use description of one SOAP call.

    Setters return the builder so calls can be chained; nothing is
    validated until ``dispatch()``.  Create builders with
    ``Client.new_request()``.
    """

    def __init__(self, client: Client) -> None:
        self.client = client
        self.url: str = ""
        self.headers = httpx.Headers()
        self.payload_request: Any = None
        self.payload_response: PayloadSlot[Any] | None = None
        self.payload_fault: PayloadSlot[Any] | None = None
        self.started_at: datetime | None = None

    def set_url(self, url: str) -> Request:
        """Set the service URL, e.g. ``http://mywebservice.com/km/add``."""
        self.url = url
        return self

    def set_header(self, name: str, value: str) -> Request:
        """Set a single header, replacing any earlier value for *name*.

        Header names are case-insensitive.  Only the headers set here are
        sent, so callers supply ``Content-Type`` and ``SOAPAction``::

            client.new_request() \\
                .set_header("Content-Type", "text/xml; charset=utf-8") \\
                .set_header("SOAPAction", "http://mywebservice.com/km/add/action")
        """
        self.headers[name] = value
        return self

    def set_headers(self, headers: Mapping[str, str]) -> Request:
        """Set several headers at once with ``set_header`` semantics."""
        for name, value in headers.items():
            self.set_header(name, value)
        return self

    def set_outgoing_payload(self, payload: Any) -> Request:
        """Set the request body: an XmlModel, a single-root dict, str or bytes."""
        self.payload_request = payload
        return self

    def set_success_payload(self, payload: Any) -> Request:
        """Set the shape decoded from a 200 reply.

        Accepts a shape class, a bare instance of it, or a PayloadSlot.
        Anything but a slot is replaced by a fresh slot of the same shape,
        leaving the caller's instance untouched.  None clears the slot, so a
        200 reply is not decoded.
        """
        self.payload_response = None if payload is None else as_slot(payload)
        return self

    def set_fault_payload(self, payload: Any) -> Request:
        """Set the shape decoded from a non-200 reply (see ``set_success_payload``)."""
        self.payload_fault = None if payload is None else as_slot(payload)
        return self

    def dispatch(self) -> Response:
        """POST the request and decode the reply.

        Returns:
            The Response. On HTTP 200 the success slot was decoded into, on
            any other status the fault slot; the other slot is left alone.

        Raises:
            RequestError: If no URL is set or the URL is invalid.
            EncodeError: If the outgoing payload cannot be serialized.
                Nothing is sent in that case.
            TransportError: If the HTTP exchange fails. No Response exists.
            DecodeError: If the reply body does not decode into its slot.
                ``err.response`` still carries the Response.
        """
        if not self.url:
            raise RequestError("Request URL is not set")

        content = self.client.codec.serialize(self.payload_request)

        try:
            http_request = httpx.Request(
                "POST",
                self.url,
                headers=self.headers,
                content=content,
                extensions={"timeout": self.client.timeout.as_dict()},
            )
        except httpx.InvalidURL as e:
            raise RequestError(f"Invalid request URL '{self.url}': {e}") from e

        _logger.debug("POST %s (%d bytes)", self.url, len(content))

        self.started_at = datetime.now(timezone.utc)
        start_time = time.perf_counter()
        try:
            http_response = self.client.http_client.send(http_request)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {self.url} timed out: {e}") from e
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot connect to {self.url}: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request to {self.url} failed: {e}") from e
        received_at = datetime.now(timezone.utc)

        _logger.debug(
            "%s answered %d in %.1f ms",
            self.url,
            http_response.status_code,
            (time.perf_counter() - start_time) * 1000,
        )

        response = Response(
            request=self,
            raw_response=http_response,
            body=http_response.content,
            received_at=received_at,
        )

        if http_response.status_code != httpx.codes.OK:
            self._decode_into(response, self.payload_fault, "fault")
        else:
            self._decode_into(response, self.payload_response, "success")
        return response

    def _decode_into(
        self,
        response: Response,
        slot: PayloadSlot[Any] | None,
        branch: str,
    ) -> None:
        """Decode the response body into *slot*; a missing slot is skipped."""
        if slot is None:
            return
        try:
            self.client.codec.deserialize(response.raw_body, slot)
        except DecodeError as e:
            _logger.warning(
                "Cannot decode %s response from %s (status %d): %s",
                branch,
                self.url,
                response.status_code,
                e,
            )
            e.response = response
            raise
