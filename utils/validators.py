"""
Input validators for listener addresses, HTTP method tokens, and header values.
Raise ValueError so they compose with Pydantic validators.
"""

import re
from collections.abc import Iterable

HOSTNAME_PATTERN = re.compile(
    r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)*[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$"
)
IPV4_PATTERN = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
IPV6_PATTERN = re.compile(r"^[0-9a-fA-F:.]+(?:%[0-9a-zA-Z]+)?$")

# RFC 7230 token: method names are tokens
METHOD_TOKEN_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

ALL_INTERFACES = "0.0.0.0"


def validate_host(value: str) -> str:
    """Validate host (hostname, IPv4 or bare IPv6). Raises ValueError if invalid."""
    if not value or len(value) > 253:
        raise ValueError("Invalid host length")
    if IPV4_PATTERN.match(value) or HOSTNAME_PATTERN.match(value):
        return value
    if ":" in value and IPV6_PATTERN.match(value):
        return value
    raise ValueError("Invalid host format")


def parse_address(address: str) -> tuple[str, int]:
    """
    Split a listen address into (host, port).

    Accepts "host:port", ":port" (all interfaces) and "[v6addr]:port".
    Port 0 asks the OS for a free port.
    """
    if not isinstance(address, str) or ":" not in address:
        raise ValueError(f"Address must be host:port, got {address!r}")
    if address.startswith("["):
        host, sep, port_text = address[1:].partition("]:")
        if not sep:
            raise ValueError(f"Malformed IPv6 address {address!r}")
    else:
        host, _, port_text = address.rpartition(":")
        if ":" in host:
            raise ValueError(f"IPv6 hosts must be bracketed, got {address!r}")
    host = validate_host(host) if host else ALL_INTERFACES
    if not port_text.isdigit():
        raise ValueError(f"Invalid port in {address!r}")
    port = int(port_text)
    if port > 65535:
        raise ValueError(f"Port out of range in {address!r}")
    return host, port


def validate_methods(methods: str | Iterable[str]) -> tuple[str, ...]:
    """Upper-case and de-duplicate method tokens, keeping order. Empty input is an error."""
    if isinstance(methods, str):
        methods = [methods]
    seen: list[str] = []
    for method in methods:
        if not isinstance(method, str) or not METHOD_TOKEN_PATTERN.match(method):
            raise ValueError(f"Invalid HTTP method {method!r}")
        upper = method.upper()
        if upper not in seen:
            seen.append(upper)
    if not seen:
        raise ValueError("At least one HTTP method is required")
    return tuple(seen)


def clean_header_value(value: object, max_length: int = 500) -> str:
    """Make an arbitrary value safe to send as a response header value."""
    text = str(value).replace("\r", " ").replace("\n", " ").strip()
    return text.encode("latin-1", "replace").decode("latin-1")[:max_length]
