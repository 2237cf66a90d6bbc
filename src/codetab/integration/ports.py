"""Port utilities: availability checks and free-port allocation."""

from __future__ import annotations

import errno
import socket

from codetab.constants import PORT_SCAN_SPAN
from codetab.integration.errors import PortAllocationError

# Bind failures that mean "someone else has this port"
_IN_USE_ERRNOS = {errno.EADDRINUSE, errno.EACCES}


def _is_listening(family: socket.AddressFamily, address: str, port: int) -> bool:
    try:
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            sock.settimeout(0.2)
            return sock.connect_ex((address, port)) == 0
    except OSError:
        return False


def _can_bind(family: socket.AddressFamily, address: str, port: int) -> bool | None:
    """Try binding without SO_REUSEADDR.

    Returns None when the address family or address is not usable on this host.
    """
    try:
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            # Don't set SO_REUSEADDR - we want to know if it's actually in use
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 0)
            sock.bind((address, port))
            return True
    except OSError as e:
        if e.errno in _IN_USE_ERRNOS:
            return False
        return None


def is_port_available(port: int, host: str = "127.0.0.1") -> bool:
    """Check if a port is available for binding.

    Uses two strategies to detect if a port is in use:
    1. Try connecting to the port on IPv4 and IPv6 loopback (detects listening servers)
    2. Try binding to the port on the loopback and wildcard addresses

    Args:
        port: Port number to check
        host: Additional host address to check (default: 127.0.0.1)

    Returns:
        True if port is available, False otherwise
    """
    if _is_listening(socket.AF_INET, "127.0.0.1", port):
        return False
    if _is_listening(socket.AF_INET6, "::1", port):
        return False

    candidates: list[tuple[socket.AddressFamily, str]] = [
        (socket.AF_INET, "127.0.0.1"),
        (socket.AF_INET, "0.0.0.0"),
        (socket.AF_INET6, "::1"),
        (socket.AF_INET6, "::"),
    ]
    if host not in ("127.0.0.1", "localhost"):
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        candidates.insert(0, (family, host))

    for family, address in candidates:
        if _can_bind(family, address, port) is False:
            return False
    return True


def is_port_listening(port: int, host: str = "127.0.0.1") -> bool:
    """Check if a server accepts connections on port (loopback or host).

    Unlike is_port_available, a port that merely cannot be bound (for example a
    privileged port) does not count.
    """
    addresses: list[tuple[socket.AddressFamily, str]] = [
        (socket.AF_INET, "127.0.0.1"),
        (socket.AF_INET6, "::1"),
    ]
    if host not in ("127.0.0.1", "localhost", "::1"):
        addresses.append((socket.AF_INET6 if ":" in host else socket.AF_INET, host))
    return any(_is_listening(family, address, port) for family, address in addresses)


def find_available_port(start: int, end: int, host: str = "127.0.0.1") -> int | None:
    """Find an available port in the given range.

    Args:
        start: Start of port range (inclusive)
        end: End of port range (inclusive)
        host: Host to check on (default: 127.0.0.1)

    Returns:
        Available port number or None if no port is available
    """
    for port in range(start, min(end, 65535) + 1):
        if is_port_available(port, host):
            return port
    return None


def _os_assigned_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


def get_port(preferred: int, host: str = "127.0.0.1") -> int:
    """Allocate a free port, preferring `preferred` and its close neighbours.

    Falls back to any port the OS considers free.

    Raises:
        PortAllocationError: If no port could be allocated
    """
    port = find_available_port(preferred, preferred + PORT_SCAN_SPAN, host)
    if port is not None:
        return port
    try:
        return _os_assigned_port()
    except OSError as e:
        raise PortAllocationError(
            f"Could not allocate a free port near {preferred}: {e}"
        ) from e
