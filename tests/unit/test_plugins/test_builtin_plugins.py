"""
Tests for the built-in psutil metric sources.
"""

from unittest.mock import Mock, patch

import pytest

from metricagent.plugins.builtin import ProcessMetricsPlugin, SystemMetricsPlugin
from metricagent.plugins.builtin.system import _mount_label


def configured(plugin_cls, make_config, section):
    plugin = plugin_cls()
    plugin.init()
    plugin.configure(make_config(ModulesConfigs={plugin_cls.config_section_name: section}))
    return plugin


@pytest.mark.unit
class TestSystemMetricsPlugin:
    """Test cases for SystemMetricsPlugin."""

    @patch("metricagent.plugins.builtin.system.psutil")
    def test_selected_counters(self, mock_psutil, make_config):
        mock_psutil.cpu_percent.return_value = 12.5
        mock_psutil.virtual_memory.return_value = Mock(
            total=1000, available=400, used=600, percent=60.0
        )
        plugin = configured(
            SystemMetricsPlugin, make_config,
            {"Enabled": "true", "Counters": ["cpu", "memory"]},
        )

        samples = {s.path: s.value for s in plugin.get_metrics()}

        assert samples == {
            "cpu.percent": 12.5,
            "memory.total": 1000,
            "memory.available": 400,
            "memory.used": 600,
            "memory.percent": 60.0,
        }
        mock_psutil.disk_usage.assert_not_called()

    @patch("metricagent.plugins.builtin.system.psutil")
    def test_disk_counter_uses_mount_labels(self, mock_psutil, make_config):
        mock_psutil.disk_usage.return_value = Mock(free=10, used=90, percent=90.0)
        plugin = configured(
            SystemMetricsPlugin, make_config,
            {"Enabled": "true", "Counters": ["disk"], "Mounts": ["/", "/var/log"]},
        )

        paths = [s.path for s in plugin.get_metrics()]

        assert "disk.root.free" in paths
        assert "disk.var_log.percent" in paths

    @patch("metricagent.plugins.builtin.system.psutil")
    def test_unreadable_mount_skipped(self, mock_psutil, make_config):
        mock_psutil.disk_usage.side_effect = OSError("no such mount")
        plugin = configured(
            SystemMetricsPlugin, make_config,
            {"Enabled": "true", "Counters": ["disk"], "Mounts": ["/missing"]},
        )

        assert plugin.get_metrics() == []

    @patch("metricagent.plugins.builtin.system.psutil")
    def test_unknown_counter_ignored(self, mock_psutil, make_config, caplog):
        mock_psutil.getloadavg.return_value = (0.5, 0.25, 0.1)
        plugin = configured(
            SystemMetricsPlugin, make_config,
            {"Enabled": "true", "Counters": ["bogus", "load"]},
        )

        paths = [s.path for s in plugin.get_metrics()]

        assert paths == ["load.1min", "load.5min", "load.15min"]
        assert "Unknown system counter 'bogus'" in caplog.text

    @patch("metricagent.plugins.builtin.system.psutil")
    def test_network_counters_per_nic(self, mock_psutil, make_config):
        mock_psutil.net_io_counters.return_value = {
            "eth0": Mock(bytes_sent=1, bytes_recv=2),
        }
        plugin = configured(
            SystemMetricsPlugin, make_config,
            {"Enabled": "true", "Counters": ["network"]},
        )

        samples = {s.path: s.value for s in plugin.get_metrics()}

        assert samples == {"network.eth0.bytes_sent": 1, "network.eth0.bytes_recv": 2}

    @pytest.mark.parametrize("mount,label", [("/", "root"), ("/var/log", "var_log"), ("C:\\", "C")])
    def test_mount_label(self, mount, label):
        assert _mount_label(mount) == label


@pytest.mark.unit
class TestProcessMetricsPlugin:
    """Test cases for ProcessMetricsPlugin."""

    @staticmethod
    def _proc(name, cmdline, rss):
        proc = Mock()
        proc.info = {"name": name, "cmdline": cmdline, "memory_info": Mock(rss=rss)}
        return proc

    @patch("metricagent.plugins.builtin.processes.psutil.process_iter")
    def test_counts_and_rss(self, mock_process_iter, make_config):
        mock_process_iter.return_value = [
            self._proc("python3", ["python3", "app.py"], 100),
            self._proc("bash", ["bash", "-c", "python worker.py"], 50),
            self._proc("nginx", ["nginx"], 25),
        ]
        plugin = configured(
            ProcessMetricsPlugin, make_config,
            {"Enabled": "true", "Patterns": [
                {"Name": "python", "Pattern": "python"},
                {"Name": "nginx", "Pattern": "^nginx$"},
            ]},
        )

        samples = {s.path: s.value for s in plugin.get_metrics()}

        assert samples == {
            "processes.python.count": 2,
            "processes.python.rss": 150,
            "processes.nginx.count": 1,
            "processes.nginx.rss": 25,
        }

    @patch("metricagent.plugins.builtin.processes.psutil.process_iter")
    def test_no_patterns_skips_scan(self, mock_process_iter, make_config):
        plugin = configured(ProcessMetricsPlugin, make_config, {"Enabled": "true"})

        assert plugin.get_metrics() == []
        mock_process_iter.assert_not_called()

    @patch("metricagent.plugins.builtin.processes.psutil.process_iter")
    def test_inaccessible_memory_info(self, mock_process_iter, make_config):
        proc = Mock()
        proc.info = {"name": "secret", "cmdline": None, "memory_info": None}
        mock_process_iter.return_value = [proc]
        plugin = configured(
            ProcessMetricsPlugin, make_config,
            {"Enabled": "true", "Patterns": [{"Name": "secret", "Pattern": "secret"}]},
        )

        samples = {s.path: s.value for s in plugin.get_metrics()}

        assert samples == {"processes.secret.count": 1, "processes.secret.rss": 0}

    def test_malformed_patterns_ignored(self, make_config, caplog):
        plugin = configured(
            ProcessMetricsPlugin, make_config,
            {"Enabled": "true", "Patterns": [{"Name": "x"}, {"Name": "y", "Pattern": "("}]},
        )

        assert plugin._compiled_patterns() == []
        assert "Invalid process pattern" in caplog.text
