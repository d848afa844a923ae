from __future__ import annotations
import logging
import re
from typing import Callable, List, Set

from ..errors import CommandExecutionError, InsufficientFreePortsError
from ..utils.net import port_bindable
from .linux import SocketSource

logger = logging.getLogger(__name__)

MAX_COUNT = 100
TRAILING_PORT_RE = re.compile(r":(\d+)\s*$")


def parse_used_ports(raw: str) -> Set[int]:
    used: Set[int] = set()
    for line in raw.splitlines():
        m = TRAILING_PORT_RE.search(line)
        if m:
            used.add(int(m.group(1)))
    return used


def find_free_ports(source: SocketSource, count: int, low: int, high: int,
                    probe: Callable[[int], bool] = port_bindable) -> List[int]:
    """
    First window of `count` consecutive ports in [low, high] that is neither
    reported in use by the summary command nor refused by a bind probe.

    The ports are not reserved; another process may take one before the
    caller binds it.
    """
    if not 1 <= count <= MAX_COUNT:
        raise ValueError(f"count must be between 1 and {MAX_COUNT}")
    if not 0 <= low <= high <= 65535:
        raise ValueError(f"invalid port range {low}-{high}")

    try:
        used = parse_used_ports(source.used_port_summary())
    except CommandExecutionError as e:
        logger.error("used-port probe failed: %s", e)
        raise InsufficientFreePortsError(count, low, high, str(e)) from e

    pos = low
    while pos <= high:
        for offset in range(count):
            port = pos + offset
            if port > high:
                raise InsufficientFreePortsError(count, low, high)
            if port in used or not probe(port):
                pos = port + 1
                break
        else:
            return list(range(pos, pos + count))
    raise InsufficientFreePortsError(count, low, high)
