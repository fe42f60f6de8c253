"""Outbound URL policy for image fetching (SSRF protection).

Only HTTPS is ever fetched. When an explicit host allowlist is configured it is
the sole authority; otherwise literal private, loopback and link-local
addresses are refused. Classification is purely syntactic: no DNS lookups.
"""

from __future__ import annotations

import ipaddress
import re
import socket
from typing import Iterable, Optional, Union
from urllib.parse import urlsplit

_BLOCKED_NETWORKS = tuple(
    ipaddress.ip_network(cidr)
    for cidr in (
        "127.0.0.0/8",
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "169.254.0.0/16",
        "0.0.0.0/8",
        "::1/128",
        "fe80::/10",
        "fc00::/7",
    )
)

_LOOPBACK_NAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}

# Shorthand IPv4 spellings such as "127.1" or "0x7f000001" that resolvers accept.
_NUMERIC_HOST_RE = re.compile(r"^[0-9a-fA-Fx.]+$")

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _parse_ip(hostname: str) -> Optional[IPAddress]:
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        pass
    if _NUMERIC_HOST_RE.match(hostname) and any(ch.isdigit() for ch in hostname):
        try:
            return ipaddress.IPv4Address(socket.inet_aton(hostname))
        except OSError:
            return None
    return None


def is_private_host(hostname: str) -> bool:
    """True if hostname is a loopback name or a literal address in a blocked range."""
    host = (hostname or "").strip().strip("[]").lower().rstrip(".")
    if host in _LOOPBACK_NAMES:
        return True
    ip = _parse_ip(host)
    if ip is None:
        return False
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return any(ip.version == net.version and ip in net for net in _BLOCKED_NETWORKS)


def is_safe_url(url: str, allowed_hosts: Optional[Iterable[str]] = None) -> bool:
    """Decide whether an image URL may be fetched."""
    try:
        parts = urlsplit((url or "").strip())
        # Accessing .port validates it; malformed ports raise ValueError.
        _ = parts.port
    except ValueError:
        return False

    if parts.scheme.lower() != "https":
        return False

    hostname = (parts.hostname or "").lower()
    if not hostname:
        return False

    allowlist = [h.strip().lower() for h in (allowed_hosts or []) if h and h.strip()]
    if allowlist:
        return hostname in allowlist

    return not is_private_host(hostname)
