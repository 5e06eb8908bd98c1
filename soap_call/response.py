"""Response - read-only snapshot of a completed SOAP call."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from soap_call.codec import PayloadSlot
    from soap_call.request import Request


class Response:
    """Holds the raw reply of one dispatch and exposes its decoded payloads.

    The decoded values are not copied: ``result`` and ``fault`` read the
    slots of the originating request.  Check ``status_code`` (or
    ``is_fault``) to know which of the two was written by the call.
    """

    def __init__(
        self,
        request: Request,
        raw_response: httpx.Response | None,
        body: bytes,
        received_at: datetime,
    ) -> None:
        self._request = request
        self._raw_response = raw_response
        self._body = body
        self._received_at = received_at
        self._started_at = request.started_at

    def __repr__(self) -> str:
        return f"<Response [{self.status}]>"

    @property
    def request(self) -> Request:
        return self._request

    @property
    def raw_response(self) -> httpx.Response | None:
        return self._raw_response

    @property
    def raw_body(self) -> bytes:
        """Full reply body, empty when no reply was recorded."""
        if self._raw_response is None:
            return b""
        return self._body

    @property
    def status(self) -> str:
        """HTTP status line without the version, e.g. ``200 OK``."""
        if self._raw_response is None:
            return ""
        return f"{self._raw_response.status_code} {self._raw_response.reason_phrase}"

    @property
    def status_code(self) -> int:
        if self._raw_response is None:
            return 0
        return self._raw_response.status_code

    @property
    def headers(self) -> httpx.Headers:
        if self._raw_response is None:
            return httpx.Headers()
        return self._raw_response.headers

    @property
    def is_fault(self) -> bool:
        return self.status_code != httpx.codes.OK

    @property
    def result_slot(self) -> PayloadSlot[Any] | None:
        return self._request.payload_response

    @property
    def fault_slot(self) -> PayloadSlot[Any] | None:
        return self._request.payload_fault

    @property
    def result(self) -> Any:
        """Current value of the success slot (None if no success shape was set)."""
        slot = self._request.payload_response
        return slot.value if slot is not None else None

    @property
    def fault(self) -> Any:
        """Current value of the fault slot (None if no fault shape was set)."""
        slot = self._request.payload_fault
        return slot.value if slot is not None else None

    @property
    def received_at(self) -> datetime:
        return self._received_at

    @property
    def elapsed(self) -> timedelta | None:
        """Time between dispatch start and reply, None if the start is unknown."""
        if self._started_at is None:
            return None
        return self._received_at - self._started_at
