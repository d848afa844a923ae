"""Shared fixtures: fake socket source and fake interface table."""

import socket
from collections import namedtuple

import pytest

from port_monitor.errors import CommandExecutionError
from port_monitor.store import AnnotationStore

Addr = namedtuple("Addr", "family address netmask broadcast ptp")

SS_LISTING = """\
Netid State  Recv-Q Send-Q Local Address:Port  Peer Address:Port Process
tcp   LISTEN 0      128    0.0.0.0:8080        0.0.0.0:*         users:(("nginx",pid=100,fd=6))
tcp   LISTEN 0      4096   [::1]:9090          [::]:*            users:(("prometheus",pid=200,fd=7))
udp   UNCONN 0      0      127.0.0.53%lo:53    0.0.0.0:*
tcp   ESTAB  0      0      10.0.0.5:22         10.0.0.9:51514    users:(("sshd",pid=300,fd=3),("sshd",pid=301,fd=3))
"""

SS_SUMMARY = """\
0.0.0.0:2001
[::]:2005
"""


class FakeSource:
    def __init__(self, listing=SS_LISTING, summary=SS_SUMMARY, fail=False):
        self._listing = listing
        self._summary = summary
        self.fail = fail

    def listing(self):
        if self.fail:
            raise CommandExecutionError(["ss", "-tulnp"], "command not found")
        return self._listing

    def used_port_summary(self):
        if self.fail:
            raise CommandExecutionError(["ss", "-tuln"], "command not found")
        return self._summary


def if_table():
    return {
        "lo": [Addr(socket.AF_INET, "127.0.0.1", "255.0.0.0", None, None)],
        "eth0": [
            Addr(socket.AF_INET, "192.168.1.10", "255.255.255.0", None, None),
            Addr(socket.AF_INET, "192.168.1.11", "255.255.255.0", None, None),
            Addr(socket.AF_INET6, "fe80::1", None, None, None),
        ],
        "wlan0": [Addr(socket.AF_INET, "169.254.3.4", "255.255.0.0", None, None)],
        "docker0": [Addr(socket.AF_INET, "172.17.0.1", "255.255.0.0", None, None)],
        "br-1a2b": [Addr(socket.AF_INET, "172.18.0.1", "255.255.0.0", None, None)],
        "veth99": [Addr(socket.AF_INET, "10.9.9.9", "255.255.0.0", None, None)],
        "ens3": [Addr(socket.AF_INET, "10.0.0.5", "255.255.255.0", None, None)],
    }


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def store(tmp_path):
    s = AnnotationStore(tmp_path / "data.json")
    s.load()
    return s
