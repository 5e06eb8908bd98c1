"""CLI entry point for soap-call.

Sends a prepared XML envelope to a SOAP endpoint and prints the reply.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from soap_call.client import Client, ClientError
from soap_call.codec import DecodeError, EncodeError
from soap_call.config_loader import ConfigError, load_runtime_config, resolve_endpoint
from soap_call.models import FaultEnvelope, TransportConfig
from soap_call.request import RequestError
from soap_call.response import Response

EXIT_OK = 0
EXIT_FAULT = 1
EXIT_ERROR = 2


def positive_float(value: str) -> float:
    """Parse and validate a positive float value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive number.
    """
    try:
        result = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'.")
    if result <= 0:
        raise argparse.ArgumentTypeError(f"Value must be positive, got {result}.")
    return result


def parse_header(value: str) -> tuple[str, str]:
    """Parse ``Name: value`` format.

    Raises:
        argparse.ArgumentTypeError: If format is invalid.
    """
    if ":" not in value:
        raise argparse.ArgumentTypeError(
            f"Invalid header '{value}'. Expected 'Name: value' (e.g., 'SOAPAction: urn:add')"
        )
    name, header_value = value.split(":", 1)
    name = name.strip()
    if not name:
        raise argparse.ArgumentTypeError(f"Invalid header '{value}'. Name cannot be empty.")
    return (name, header_value.strip())


@dataclass
class CallArgs:
    """Parsed arguments for call mode."""

    url: str | None
    config: Path | None
    endpoint: str | None
    body: Path | None
    headers: list[tuple[str, str]]
    timeout: float | None
    verbose: bool


@dataclass
class ListEndpointsArgs:
    """Parsed arguments for list-endpoints mode."""

    config: Path


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with call and list-endpoints subcommands."""
    parser = argparse.ArgumentParser(
        prog="soap-call",
        description="Send a SOAP envelope over HTTP and print the reply.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Mode")

    call_parser = subparsers.add_parser(
        "call",
        help="POST an XML envelope to an endpoint",
    )
    target_group = call_parser.add_mutually_exclusive_group(required=True)
    target_group.add_argument(
        "--url",
        type=str,
        help="Service URL",
    )
    target_group.add_argument(
        "--endpoint",
        type=str,
        help="Endpoint name from --config",
    )
    call_parser.add_argument(
        "--config",
        type=Path,
        help="Path to runtime config YAML file",
    )
    call_parser.add_argument(
        "--body",
        type=Path,
        help="Path to the XML envelope to send (empty body if omitted)",
    )
    call_parser.add_argument(
        "--header",
        type=parse_header,
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        dest="headers",
        help="Add a request header, overriding the endpoint's (can be repeated)",
    )
    call_parser.add_argument(
        "--timeout",
        type=positive_float,
        default=None,
        help="Overall request timeout in seconds",
    )
    call_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log request details to stderr",
    )

    list_parser = subparsers.add_parser(
        "list-endpoints",
        help="List endpoints defined in a runtime config",
    )
    list_parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to runtime config YAML file",
    )

    return parser


def parse_args(args: list[str] | None = None) -> CallArgs | ListEndpointsArgs:
    """Parse command-line arguments and return typed args dataclass.

    Raises:
        SystemExit: If arguments are invalid (argparse behavior).
    """
    parser = build_parser()
    namespace = parser.parse_args(args)

    if namespace.command == "list-endpoints":
        return ListEndpointsArgs(config=namespace.config)

    if namespace.endpoint and namespace.config is None:
        parser.error("--endpoint requires --config")
    return CallArgs(
        url=namespace.url,
        config=namespace.config,
        endpoint=namespace.endpoint,
        body=namespace.body,
        headers=namespace.headers or [],
        timeout=namespace.timeout,
        verbose=namespace.verbose,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    try:
        parsed = parse_args(argv)
        if isinstance(parsed, ListEndpointsArgs):
            return run_list_endpoints(parsed)
        return run_call(parsed)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_ERROR


def run_list_endpoints(args: ListEndpointsArgs) -> int:
    """Print each configured endpoint with its URL."""
    try:
        config = load_runtime_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    for name, endpoint in sorted(config.endpoints.items()):
        print(f"{name}\t{endpoint.url}")
    return EXIT_OK


def run_call(args: CallArgs) -> int:
    """Run call mode: send the envelope, print the reply body to stdout."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )

    transport = TransportConfig()
    headers: dict[str, str] = {}
    url = args.url
    try:
        if args.config is not None:
            runtime_config = load_runtime_config(args.config)
            transport = runtime_config.transport
            if args.endpoint:
                endpoint = resolve_endpoint(runtime_config, args.endpoint)
                url = endpoint.url
                headers.update(endpoint.headers)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    headers.setdefault("Content-Type", "text/xml; charset=utf-8")
    for name, value in args.headers:
        headers[name] = value

    body = b""
    if args.body is not None:
        try:
            body = args.body.read_bytes()
        except OSError as e:
            print(f"Error: cannot read body file: {e}", file=sys.stderr)
            return EXIT_ERROR

    try:
        client = Client(config=transport)
    except ClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    with client:
        if args.timeout is not None:
            client = client.with_timeout(args.timeout)
        request = (
            client.new_request()
            .set_url(url or "")
            .set_headers(headers)
            .set_outgoing_payload(body)
            .set_success_payload(bytes)
            .set_fault_payload(FaultEnvelope)
        )
        try:
            response = request.dispatch()
        except DecodeError as e:
            # Fault body that is not a SOAP fault; the raw body is still useful
            if e.response is None:
                print(f"Error: {e}", file=sys.stderr)
                return EXIT_ERROR
            response = e.response
        except (RequestError, EncodeError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_ERROR

    return _report(response)


def _report(response: Response) -> int:
    print(response.status, file=sys.stderr)
    sys.stdout.write(response.raw_body.decode("utf-8", errors="replace"))
    sys.stdout.flush()

    if not response.is_fault:
        return EXIT_OK

    fault = response.fault
    if isinstance(fault, FaultEnvelope) and fault.body.fault.faultstring:
        print(
            f"SOAP fault {fault.body.fault.faultcode or '(no code)'}: "
            f"{fault.body.fault.faultstring}",
            file=sys.stderr,
        )
    return EXIT_FAULT


if __name__ == "__main__":
    sys.exit(main())
