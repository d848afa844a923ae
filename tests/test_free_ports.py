"""Tests for the free port finder."""

import socket

import pytest

from port_monitor.collectors.ports import find_free_ports, parse_used_ports
from port_monitor.errors import InsufficientFreePortsError
from port_monitor.utils.net import port_bindable

from tests.conftest import FakeSource


def always_free(port):
    return True


class RecordingProbe:
    def __init__(self, busy=()):
        self.busy = set(busy)
        self.calls = []

    def __call__(self, port):
        self.calls.append(port)
        return port not in self.busy


class TestParseUsedPorts:
    def test_trailing_port_tokens(self):
        assert parse_used_ports("0.0.0.0:22\n[::]:5353\n*:68  \n") == {22, 5353, 68}

    def test_lines_without_port_ignored(self):
        assert parse_used_ports("Netid State\n0.0.0.0:*\n\n") == set()


class TestFindFreePorts:
    """Tests for window scanning."""

    def test_first_window(self):
        src = FakeSource(summary="")
        assert find_free_ports(src, 3, 2000, 2010, probe=always_free) == [2000, 2001, 2002]

    def test_skips_reported_port(self):
        """2001 is in the summary, so the window starts after it."""
        result = find_free_ports(FakeSource(), 3, 2000, 2010, probe=always_free)
        assert result == [2002, 2003, 2004]

    def test_skips_bind_failure(self):
        probe = RecordingProbe(busy={2002})
        result = find_free_ports(FakeSource(summary=""), 3, 2000, 2010, probe=probe)
        assert result == [2003, 2004, 2005]

    def test_does_not_retest_known_bad_ports(self):
        """After a failure at offset k the scan resumes past it."""
        probe = RecordingProbe(busy={2002})
        find_free_ports(FakeSource(summary=""), 3, 2000, 2010, probe=probe)
        assert probe.calls == [2000, 2001, 2002, 2003, 2004, 2005]

    def test_reported_ports_not_probed(self):
        probe = RecordingProbe()
        find_free_ports(FakeSource(), 1, 2001, 2002, probe=probe)
        assert probe.calls == [2002]

    def test_window_must_fit_in_range(self):
        with pytest.raises(InsufficientFreePortsError) as exc_info:
            find_free_ports(FakeSource(summary=""), 3, 2000, 2001, probe=always_free)
        assert exc_info.value.count == 3
        assert (exc_info.value.low, exc_info.value.high) == (2000, 2001)

    def test_exact_fit_at_end_of_range(self):
        src = FakeSource(summary="0.0.0.0:2000\n")
        assert find_free_ports(src, 2, 2000, 2002, probe=always_free) == [2001, 2002]

    def test_everything_busy(self):
        with pytest.raises(InsufficientFreePortsError):
            find_free_ports(FakeSource(summary=""), 1, 3000, 3005, probe=lambda p: False)

    def test_summary_failure(self):
        with pytest.raises(InsufficientFreePortsError):
            find_free_ports(FakeSource(fail=True), 1, 3000, 3005, probe=always_free)

    @pytest.mark.parametrize("count,low,high", [
        (0, 1000, 2000),
        (101, 1000, 2000),
        (1, 2000, 1000),
        (1, -1, 10),
        (1, 10, 65536),
    ])
    def test_invalid_arguments(self, count, low, high):
        with pytest.raises(ValueError):
            find_free_ports(FakeSource(summary=""), count, low, high, probe=always_free)


class TestPortBindable:
    def test_bound_port_is_not_free(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("", 0))
            s.listen(1)
            port = s.getsockname()[1]
            assert port_bindable(port) is False

    def test_port_zero_is_not_free(self):
        assert port_bindable(0) is False
