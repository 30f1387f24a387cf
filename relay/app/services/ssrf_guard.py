"""
Outbound target classification (basic SSRF safety).

This is a syntactic check on the URL's hostname only:
- no DNS resolution is performed, so a public name that resolves to a
  private address is NOT caught
- IPv6 loopback / private literals are NOT caught

Numeric IPv4 spellings (`2130706433`, `0x7f.0.0.1`, `0177.0.0.1`,
`127.1`) are canonicalized to a dotted quad before classification, since
the resolver on the outbound path accepts them too.

Any URL that cannot be parsed, or has no hostname, is blocked.
"""

from __future__ import annotations

import ipaddress
import re
import socket
from urllib.parse import urlsplit

_PRIVATE_IPV4 = re.compile(
    r"^(127\.|10\.|192\.168\.|172\.(1[6-9]|2\d|3[0-1])\.)"
)


def canonical_host(hostname: str) -> str:
    """
    Lowercased hostname, with any numeric IPv4 form rewritten as a
    dotted quad. Names that are not IPv4 literals are returned as-is.
    """
    host = hostname.lower().rstrip(".")
    try:
        packed = socket.inet_aton(host)
    except (OSError, ValueError):
        return host
    return str(ipaddress.IPv4Address(packed))


def is_blocked_url(raw: object) -> bool:
    if not isinstance(raw, str):
        return True

    try:
        hostname = urlsplit(raw).hostname
    except ValueError:
        return True

    if not hostname:
        return True

    host = canonical_host(hostname)
    if not host:
        return True
    if host == "localhost" or host.endswith(".local"):
        return True
    if _PRIVATE_IPV4.match(host):
        return True
    return False
