"""Integration tests: dispatch against a live mock SOAP server.

These tests verify:
1. Status-driven decoding over a real HTTP connection
2. Only configured headers reach the server
3. Timeouts and refused connections surface as TransportError
4. Non-XML fault bodies raise DecodeError with the response attached
"""

import pytest

from soap_call.codec import DecodeError, PayloadSlot
from soap_call.models import FaultEnvelope
from soap_call.request import TransportError
from tests.conftest import PortReservation
from tests.soap_fixtures import HelloEnvelope, NumberToWordsEnvelope, number_to_words


class TestDispatchLive:
    def test_hello(self, soap_server, soap_client):
        response = (
            soap_client.new_request()
            .set_url(soap_server.url("/hello"))
            .set_header("Content-Type", "text/xml; charset=utf-8")
            .set_success_payload(HelloEnvelope)
            .set_fault_payload(FaultEnvelope)
            .dispatch()
        )
        assert response.status_code == 200
        assert response.status == "200 OK"
        assert response.result.body.response.string == "Hello World!"
        assert response.fault is None
        assert response.elapsed is not None

    def test_fault(self, soap_server, soap_client):
        response = (
            soap_client.new_request()
            .set_url(soap_server.url("/fault"))
            .set_success_payload(HelloEnvelope)
            .set_fault_payload(FaultEnvelope)
            .dispatch()
        )
        assert response.status_code == 500
        assert response.result is None
        assert response.fault.body.fault.faultcode == "soap:Server"
        assert response.fault.body.fault.faultstring == "Error processing request"

    def test_echo_round_trip(self, soap_server, soap_client):
        original = number_to_words(123)
        slot = PayloadSlot(NumberToWordsEnvelope)
        response = (
            soap_client.new_request()
            .set_url(soap_server.url("/echo"))
            .set_header("SOAPAction", "urn:NumberToWords")
            .set_header("Content-Type", "text/xml; charset=utf-8")
            .set_outgoing_payload(original)
            .set_success_payload(slot)
            .dispatch()
        )
        assert slot.value == original
        assert response.result is slot.value
        assert response.headers["X-Seen-SOAPAction"] == "urn:NumberToWords"
        assert response.headers["X-Seen-Content-Type"] == "text/xml; charset=utf-8"
        assert response.headers["X-Seen-User-Agent"] == ""

    def test_connections_are_reused(self, soap_server, soap_client):
        for _ in range(3):
            response = soap_client.new_request().set_url(soap_server.url("/hello")).dispatch()
            assert response.status_code == 200


class TestDispatchLiveErrors:
    def test_timeout(self, soap_server, soap_client):
        client = soap_client.with_timeout(0.2)
        with pytest.raises(TransportError, match="timed out"):
            client.new_request().set_url(soap_server.url("/slow?delay=2")).dispatch()

    def test_original_client_keeps_its_timeout(self, soap_server, soap_client):
        soap_client.with_timeout(0.2)
        response = (
            soap_client.new_request().set_url(soap_server.url("/slow?delay=0.5")).dispatch()
        )
        assert response.status_code == 200

    def test_non_xml_fault_body(self, soap_server, soap_client):
        with pytest.raises(DecodeError) as exc_info:
            (
                soap_client.new_request()
                .set_url(soap_server.url("/broken"))
                .set_success_payload(HelloEnvelope)
                .set_fault_payload(FaultEnvelope)
                .dispatch()
            )
        response = exc_info.value.response
        assert response.status_code == 502
        assert response.raw_body == b"Bad Gateway"

    def test_connection_refused(self, soap_client):
        port = PortReservation().release()
        with pytest.raises(TransportError, match="Cannot connect"):
            soap_client.new_request().set_url(f"http://127.0.0.1:{port}/").dispatch()
