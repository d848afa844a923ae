from __future__ import annotations
import http.client
import logging
import re
import socket
import urllib.error
import urllib.request
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import psutil

from ..errors import InterfaceEnumerationError
from ..models import InterfaceEntry
from ..utils.net import usable_ipv4

logger = logging.getLogger(__name__)

ALWAYS_EXCLUDED = "docker0"

AddrProvider = Callable[[], Dict[str, list]]


def _compile_prefixes(prefixes: Iterable[str]) -> list[re.Pattern]:
    pats = []
    for p in prefixes:
        p = p.strip()
        if not p:
            continue
        try:
            pats.append(re.compile(f"^{p}.*"))
        except re.error:
            logger.warning("exclude prefix %r is not a valid pattern, matching literally", p)
            pats.append(re.compile(f"^{re.escape(p)}.*"))
    return pats


def is_excluded(name: str, patterns: Sequence[re.Pattern]) -> bool:
    if name == ALWAYS_EXCLUDED:
        return True
    return any(p.match(name) for p in patterns)


def list_interfaces(exclude_prefixes: Iterable[str],
                    addrs: AddrProvider = psutil.net_if_addrs) -> List[InterfaceEntry]:
    try:
        table = addrs()
    except (OSError, psutil.Error) as e:
        raise InterfaceEnumerationError(f"interface enumeration failed: {e}") from e

    patterns = _compile_prefixes(exclude_prefixes)
    out: List[InterfaceEntry] = []
    for name, addr_list in table.items():
        if not name or is_excluded(name, patterns):
            continue
        try:
            ips = [a.address for a in addr_list if a.family == socket.AF_INET]
        except (AttributeError, TypeError) as e:
            logger.debug("skipping interface %s: %s", name, e)
            continue
        for ip in ips:
            if usable_ipv4(ip):
                out.append(InterfaceEntry(name=name, ip=ip))
    return out


def lookup_public_ip(url: Optional[str], timeout: float = 5.0) -> str:
    """Fetch the WAN address as plain text. Returns '' on any failure."""
    if not url:
        return ""
    req = urllib.request.Request(url, headers={"User-Agent": "port-monitor"})
    try:
        with urllib.request.urlopen(req, timeout=timeout) as r:
            body = r.read()
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
        logger.warning("public ip lookup via %s failed: %s", url, e)
        return ""
    return body.decode("utf-8", "ignore").strip()


def collect_interfaces(exclude_prefixes: Iterable[str], public_ip_url: Optional[str] = None,
                       public_label: str = "public", timeout: float = 5.0,
                       addrs: AddrProvider = psutil.net_if_addrs) -> List[InterfaceEntry]:
    out = list_interfaces(exclude_prefixes, addrs)
    public = lookup_public_ip(public_ip_url, timeout)
    if public:
        out.append(InterfaceEntry(name=public_label, ip=public))
    logger.info("collected %d interfaces", len(out))
    return out
