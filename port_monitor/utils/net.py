from __future__ import annotations
import ipaddress
import socket


def usable_ipv4(addr: str) -> bool:
    """True for an IPv4 literal that is neither loopback nor link-local."""
    try:
        ip = ipaddress.IPv4Address(addr)
    except ValueError:
        return False
    return not (ip.is_loopback or ip.is_link_local)


def port_bindable(port: int) -> bool:
    if port <= 0:
        return False
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("", port))
            s.listen(1)
        except OSError:
            return False
    return True
