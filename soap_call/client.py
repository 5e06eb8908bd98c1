"""Client - owns the HTTP transport and produces request builders."""

from __future__ import annotations

import socket
import ssl
from typing import Any

import httpx

from soap_call.codec import PayloadCodec, XmlCodec
from soap_call.models import TransportConfig
from soap_call.request import Request


class ClientError(Exception):
    """Raised when the transport cannot be configured."""


def build_timeout(config: TransportConfig) -> httpx.Timeout:
    """Per-call timeout for *config*; connect never exceeds the overall limit."""
    if config.timeout is None:
        return httpx.Timeout(None, connect=config.connect_timeout)
    return httpx.Timeout(
        config.timeout, connect=min(config.connect_timeout, config.timeout)
    )


def _socket_options(config: TransportConfig) -> list[tuple[int, int, int]]:
    options = [(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)]
    # TCP_KEEPIDLE is missing on macOS and Windows
    if hasattr(socket, "TCP_KEEPIDLE"):
        options.append(
            (socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, max(1, int(config.keepalive)))
        )
    return options


def _build_verify(config: TransportConfig) -> ssl.SSLContext | bool:
    """Build the httpx ``verify`` argument.

    Plain certificate verification is a bool; ciphers, a CA bundle or a
    client certificate require a custom SSL context.
    """
    if not (config.ciphers or config.ca_bundle or config.cert):
        return config.verify_ssl

    try:
        ssl_context = ssl.create_default_context(cafile=config.ca_bundle)
    except (OSError, ssl.SSLError) as e:
        raise ClientError(f"Cannot load CA bundle '{config.ca_bundle}': {e}") from e

    if config.ciphers:
        try:
            ssl_context.set_ciphers(config.ciphers)
        except ssl.SSLError as e:
            raise ClientError(f"Invalid cipher string '{config.ciphers}': {e}") from e

    if not config.verify_ssl and not config.ca_bundle:
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE

    if config.cert and config.key:
        try:
            ssl_context.load_cert_chain(config.cert, config.key, config.key_password)
        except (OSError, ssl.SSLError) as e:
            raise ClientError(f"Cannot load client certificate '{config.cert}': {e}") from e

    return ssl_context


def build_client_kwargs(config: TransportConfig) -> dict[str, Any]:
    """Build kwargs for httpx.Client from a TransportConfig.

    The explicit transport carries the socket options; ``verify`` and
    ``limits`` are repeated at client level so proxy transports mounted from
    the environment get the same settings.
    """
    verify = _build_verify(config)
    limits = httpx.Limits(
        max_connections=config.max_connections,
        max_keepalive_connections=config.max_idle_connections,
        keepalive_expiry=config.idle_timeout,
    )
    transport = httpx.HTTPTransport(
        verify=verify,
        limits=limits,
        trust_env=config.trust_env,
        socket_options=_socket_options(config),
    )
    return {
        "transport": transport,
        "verify": verify,
        "limits": limits,
        "timeout": build_timeout(config),
        "trust_env": config.trust_env,
    }


class Client:
    """Creates request builders that share one connection pool.

    Usage:
        with Client() as client:
            response = (
                client.new_request()
                .set_url("https://example.com/service")
                .set_header("Content-Type", "text/xml; charset=utf-8")
                .set_outgoing_payload(envelope)
                .set_success_payload(ResultEnvelope)
                .set_fault_payload(FaultEnvelope)
                .dispatch()
            )

    When *http_client* is supplied it is used as is and only the timeout of
    *config* applies; the caller keeps ownership and must close it.
    """

    def __init__(
        self,
        http_client: httpx.Client | None = None,
        config: TransportConfig | None = None,
        codec: PayloadCodec | None = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._codec = codec or XmlCodec()
        self._owns_http_client = http_client is None
        if http_client is None:
            http_client = httpx.Client(**build_client_kwargs(self._config))
        self._http_client = http_client

    def __enter__(self) -> Client:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def codec(self) -> PayloadCodec:
        return self._codec

    @property
    def http_client(self) -> httpx.Client:
        return self._http_client

    @property
    def timeout(self) -> httpx.Timeout:
        return build_timeout(self._config)

    def new_request(self) -> Request:
        """Create a request builder bound to this client."""
        return Request(self)

    def with_timeout(self, timeout: float | None) -> Client:
        """Return a client with a different per-call timeout.

        The new client shares this client's connection pool and codec.
        Builders already created from this client keep the old timeout.
        """
        config = TransportConfig.model_validate(
            {**self._config.model_dump(), "timeout": timeout}
        )
        return Client(http_client=self._http_client, config=config, codec=self._codec)

    def close(self) -> None:
        """Close the HTTP client if this Client created it."""
        if self._owns_http_client:
            self._http_client.close()
