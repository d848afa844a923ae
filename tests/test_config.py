"""Tests for YAML + CLI configuration merging."""

from pathlib import Path

from port_monitor.config import CFG, init_cfg_from_args, load_yaml_config, port_range
from port_monitor.main import parse_args

YAML = """\
service-config:
  - addr: "127.0.0.1"
    port: 9000
    exclude: "lo,tun"
    get_ip_url: ""
"""


class TestLoadYamlConfig:
    def test_first_entry(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text(YAML, encoding="utf-8")
        assert load_yaml_config(str(p))["port"] == 9000

    def test_missing_file(self, tmp_path):
        assert load_yaml_config(str(tmp_path / "absent.yaml")) == {}

    def test_unparsable(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("service-config: [unclosed", encoding="utf-8")
        assert load_yaml_config(str(p)) == {}

    def test_service_config_not_a_list(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text("service-config:\n  addr: 127.0.0.1\n  port: 9000\n", encoding="utf-8")
        assert load_yaml_config(str(p)) == {}

    def test_no_path(self):
        assert load_yaml_config(None) == {}


class TestInitCfg:
    """Defaults, then YAML, then explicit flags."""

    def test_defaults(self):
        cfg = init_cfg_from_args(parse_args([]))
        assert cfg == CFG()
        assert cfg.exclude_interfaces == ["lo", "br-", "veth", "docker0"]
        assert cfg.public_ip_url == "https://4.ipw.cn"

    def test_yaml_values(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text(YAML, encoding="utf-8")
        cfg = init_cfg_from_args(parse_args(["--config", str(p)]))
        assert cfg.addr == "127.0.0.1"
        assert cfg.port == 9000
        assert cfg.exclude_interfaces == ["lo", "tun"]
        assert cfg.public_ip_url is None

    def test_flags_override_yaml(self, tmp_path):
        p = tmp_path / "config.yaml"
        p.write_text(YAML, encoding="utf-8")
        cfg = init_cfg_from_args(parse_args([
            "--config", str(p), "--webport", "8000", "--exclude", "wg",
            "--data-file", str(tmp_path / "ann.json"), "--log-file", "",
        ]))
        assert cfg.port == 8000
        assert cfg.exclude_interfaces == ["wg"]
        assert cfg.data_file == Path(tmp_path / "ann.json").resolve()
        assert cfg.log_file is None


class TestPortRange:
    def test_presets(self):
        assert port_range("10001-30000") == (10001, 30000)

    def test_unknown_falls_back(self):
        assert port_range("1-2") == (1000, 65530)
        assert port_range(None) == (1000, 65530)
