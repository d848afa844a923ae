from __future__ import annotations
from dataclasses import dataclass

STATE_NAMES = {
    "LISTEN": "Listening",
    "ESTAB": "Established",
    "TIME-WAIT": "TimeWait",
    "CLOSE-WAIT": "CloseWait",
}

TABLE_KINDS = ("tcpv4", "tcpv6", "udpv4", "udpv6")

NO_PROCESS = "N/A"


def normalize_state(raw: str) -> str:
    return STATE_NAMES.get(raw, raw)


def service_id(address: str, port: str, protocol: str) -> str:
    """Join key between live sockets and stored annotations: 'addr:port:proto'."""
    return f"{address}:{port}:{protocol}"


def split_service_id(sid: str) -> tuple[str, str, str]:
    # address may itself contain colons (IPv6), so split from the right
    parts = sid.rsplit(":", 2)
    if len(parts) != 3:
        return ("", "", "")
    return parts[0], parts[1], parts[2]


@dataclass(frozen=True)
class ServiceEntry:
    protocol: str  # 'tcp' | 'udp'
    local_address: str
    local_port: str
    state: str
    process_label: str = NO_PROCESS
    raw_process_info: str = ""

    @property
    def service_id(self) -> str:
        return service_id(self.local_address, self.local_port, self.protocol)

    @property
    def table_kind(self) -> str:
        family = "v6" if ":" in self.local_address else "v4"
        return f"{self.protocol}{family}"

    def to_dict(self) -> dict:
        return {
            "name": self.process_label,
            "protocol": self.protocol,
            "local_addr": self.local_address,
            "local_port": self.local_port,
            "foreign_addr": "",
            "state": self.state,
            "pid": self.raw_process_info,
            "service_id": self.service_id,
            "table_kind": self.table_kind,
        }


@dataclass(frozen=True)
class InterfaceEntry:
    name: str
    ip: str

    def to_dict(self) -> dict:
        return {"name": self.name, "ip": self.ip}
