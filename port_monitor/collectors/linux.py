from __future__ import annotations
import logging
import re
import subprocess
from typing import List, Optional, Protocol, Sequence

from ..errors import CommandExecutionError, MalformedInputError
from ..models import NO_PROCESS, ServiceEntry, normalize_state

logger = logging.getLogger(__name__)

LISTING_CMD = ("ss", "-tulnp")
SUMMARY_CMD = ("ss", "-tuln")

PROCESS_RE = re.compile(r'users:\(\("(?P<name>[^"]+)".*?\)')


class SocketSource(Protocol):
    """Anything that can hand back raw `ss`-style socket tables as text."""

    def listing(self) -> str: ...

    def used_port_summary(self) -> str: ...


def run_command(cmd: Sequence[str], timeout: Optional[float] = None) -> str:
    try:
        p = subprocess.run(list(cmd), capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as e:
        raise CommandExecutionError(cmd, "command not found") from e
    except subprocess.TimeoutExpired as e:
        raise CommandExecutionError(cmd, f"timed out after {timeout}s") from e
    except OSError as e:
        raise CommandExecutionError(cmd, str(e)) from e
    if p.returncode != 0:
        raise CommandExecutionError(cmd, (p.stderr or "").strip() or "failed", p.returncode)
    return p.stdout


class SsSocketSource:
    def __init__(self, timeout: Optional[float] = 10.0):
        self.timeout = timeout

    def listing(self) -> str:
        return run_command(LISTING_CMD, self.timeout)

    def used_port_summary(self) -> str:
        # keep only the local address column so every line ends in ':<port>'
        out = run_command(SUMMARY_CMD, self.timeout)
        rows = [line.split() for line in out.splitlines()]
        return "\n".join(r[4] for r in rows if len(r) >= 5 and r[0] in ("tcp", "udp"))


def split_local(field: str) -> tuple[str, str]:
    """
    '0.0.0.0:80'  -> ('0.0.0.0', '80')
    '[::1]:9090'  -> ('::1', '9090')
    '*:53'        -> ('*', '53')
    """
    if ":" not in field:
        raise MalformedInputError(field, "no port separator")
    addr, port = field.rsplit(":", 1)
    if addr.startswith("[") and addr.endswith("]"):
        addr = addr[1:-1]
    return addr, port


def process_label(info: str) -> str:
    if not info:
        return NO_PROCESS
    m = PROCESS_RE.search(info)
    return m.group("name") if m else NO_PROCESS


def parse_row(line: str) -> ServiceEntry:
    fields = line.split()
    if len(fields) < 6:
        raise MalformedInputError(line, "too few fields")
    if fields[0] not in ("tcp", "udp"):
        raise MalformedInputError(line, "not a tcp/udp row")
    addr, port = split_local(fields[4])
    info = " ".join(fields[6:])
    return ServiceEntry(
        protocol=fields[0],
        local_address=addr,
        local_port=port,
        state=normalize_state(fields[1]),
        process_label=process_label(info),
        raw_process_info=info,
    )


def parse_socket_table(raw: str) -> List[ServiceEntry]:
    out: List[ServiceEntry] = []
    for line in raw.splitlines():
        if not line.strip():
            continue
        try:
            out.append(parse_row(line))
        except MalformedInputError as e:
            logger.debug("skipping socket row: %s", e)
    return out


def collect_services(source: SocketSource) -> List[ServiceEntry]:
    try:
        raw = source.listing()
    except CommandExecutionError:
        logger.exception("socket listing failed")
        raise
    services = parse_socket_table(raw)
    logger.info("collected %d services", len(services))
    return services
