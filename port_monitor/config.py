from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from .utils.path import to_abs_path

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE = "lo,br-,veth,docker0"
DEFAULT_PUBLIC_IP_URL = "https://4.ipw.cn"


@dataclass
class CFG:
    addr: str = "0.0.0.0"
    port: int = 10810
    exclude_interfaces: List[str] = field(default_factory=lambda: split_csv(DEFAULT_EXCLUDE))
    public_ip_url: Optional[str] = DEFAULT_PUBLIC_IP_URL
    public_ip_timeout: float = 5.0
    public_label: str = "public"
    command_timeout: float = 10.0
    data_file: Path = Path("data.json")
    log_file: Optional[Path] = Path("server.log")


WELL_KNOWN_SERVICES = {
    "22": "SSH",
    "80": "HTTP",
    "443": "HTTPS",
    "3306": "MySQL",
    "5432": "PostgreSQL",
    "6379": "Redis",
    "8080": "HTTP Alt",
}

PORT_RANGES = {
    "1000-10000": (1000, 10000),
    "10001-30000": (10001, 30000),
    "30001-50000": (30001, 50000),
    "50001-65530": (50001, 65530),
}
DEFAULT_PORT_RANGE = (1000, 65530)


def split_csv(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]


def port_range(name: Optional[str]) -> Tuple[int, int]:
    return PORT_RANGES.get(name or "", DEFAULT_PORT_RANGE)


def load_yaml_config(path: Optional[str]) -> dict:
    """First `service-config` entry of the YAML file, or {} if unusable."""
    p = to_abs_path(path)
    if not p:
        return {}
    if not p.exists():
        logger.warning("config not found: %s, using defaults", p)
        return {}
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("failed to parse %s: %s", p, e)
        return {}
    entries = (data or {}).get("service-config") if isinstance(data, dict) else None
    if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
        logger.warning("%s has no service-config entries", p)
        return {}
    logger.info("loaded config %s", p)
    return entries[0]


def init_cfg_from_args(args) -> CFG:
    cfg = CFG()
    y = load_yaml_config(getattr(args, "config", None))
    if y.get("addr"):
        cfg.addr = str(y["addr"])
    if y.get("port"):
        try:
            cfg.port = int(y["port"])
        except (TypeError, ValueError):
            logger.warning("ignoring invalid port %r in config", y["port"])
    if "exclude" in y and y["exclude"] is not None:
        cfg.exclude_interfaces = split_csv(str(y["exclude"]))
    if "get_ip_url" in y:
        cfg.public_ip_url = y["get_ip_url"] or None

    # explicit flags win over the YAML file
    if getattr(args, "addr", None):
        cfg.addr = args.addr
    if getattr(args, "webport", None):
        cfg.port = args.webport
    if getattr(args, "exclude", None) is not None:
        cfg.exclude_interfaces = split_csv(args.exclude)
    if getattr(args, "public_ip_url", None) is not None:
        cfg.public_ip_url = args.public_ip_url or None
    if getattr(args, "data_file", None):
        cfg.data_file = to_abs_path(args.data_file)
    if getattr(args, "log_file", None) is not None:
        cfg.log_file = to_abs_path(args.log_file) if args.log_file else None
    return cfg
