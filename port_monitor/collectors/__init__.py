from .linux import SocketSource, SsSocketSource, collect_services, parse_socket_table
from .interfaces import collect_interfaces, list_interfaces, lookup_public_ip
from .ports import find_free_ports

__all__ = [
    "SocketSource", "SsSocketSource", "collect_services", "parse_socket_table",
    "collect_interfaces", "list_interfaces", "lookup_public_ip",
    "find_free_ports",
]
