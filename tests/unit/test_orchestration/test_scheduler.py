"""
Unit tests for the Scheduler loop.

The scheduler is driven with a fixed clock, a scripted monotonic clock and a
recording transmitter so ticks run instantly and deterministically.
"""

import itertools
import logging
import os
import socket
import sys
import textwrap
from datetime import datetime, timezone

import pytest

from metricagent.config import ConfigStore
from metricagent.executor import CallGuard
from metricagent.orchestration import Scheduler
from metricagent.pipeline import MetricPipeline
from metricagent.transport import Transmitter
from metricagent.validation import ConfigError, TransmissionError

PLUGIN_SOURCE = textwrap.dedent(
    """
    from metricagent import MetricPlugin, Sample


    class CpuPlugin(MetricPlugin):
        plugin_name = "cpu"
        config_section_name = "cpu"

        def __init__(self):
            super().__init__()
            self.calls = 0

        def get_metrics(self):
            self.calls += 1
            return [Sample("cpu.pct", 42)]


    class SqlPlugin(MetricPlugin):
        plugin_name = "sql"
        config_section_name = "sql"

        def __init__(self):
            super().__init__()
            self.calls = 0

        def get_metrics(self):
            self.calls += 1
            return [Sample("queries.active", 3)]
    """
)

BLOCKING_PLUGIN_SOURCE = textwrap.dedent(
    """
    import threading

    from metricagent import MetricPlugin

    RELEASE = threading.Event()


    class BlockingPlugin(MetricPlugin):
        plugin_name = "blocking"

        def configure(self, config):
            RELEASE.wait(30)
            return super().configure(config)

        def get_metrics(self):
            return []
    """
)

TICK_START = datetime(2023, 11, 14, 22, 14, 37, 250000, tzinfo=timezone.utc)
ROUNDED_TICK = 1700000040


def bump_mtime(path, seconds=10):
    stat = os.stat(path)
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + seconds * 1_000_000_000))


def scripted_monotonic(*values):
    """Monotonic clock returning `values` in order, then advancing by 1s."""
    last = values[-1]
    sequence = itertools.chain(values, itertools.count(last + 1))
    return lambda: next(sequence)


@pytest.fixture
def plugin_dir(temp_dir):
    path = temp_dir / "plugins"
    path.mkdir()
    (path / "sample_plugins.py").write_text(PLUGIN_SOURCE)
    return path


@pytest.fixture
def scheduler_config(temp_dir, sample_config_data, write_config):
    sample_config_data["ModulesConfigs"] = {
        "cpu": {"Enabled": "true", "CustomPrefix": "host1", "CustomNodeHostName": "host1"},
        "sql": {"Queries": ["select 1"]},
    }
    return write_config(temp_dir / "agent.toml", sample_config_data)


@pytest.fixture
def make_scheduler(scheduler_config, plugin_dir, recording_transmitter):
    created = []

    def _make(transmitter=None, monotonic=None, **kwargs):
        guard = CallGuard()
        scheduler = Scheduler(
            config_store=ConfigStore(scheduler_config),
            plugin_directory=plugin_dir,
            include_builtin=False,
            pipeline=MetricPipeline(call_guard=guard, local_host_name="buildbox"),
            transmitter=transmitter or recording_transmitter,
            clock=lambda: TICK_START,
            monotonic=monotonic or scripted_monotonic(0.0),
            **kwargs,
        )
        created.append(guard)
        return scheduler

    yield _make
    for guard in created:
        guard.shutdown()


@pytest.mark.unit
class TestSchedulerStartup:
    """Test cases for initial epoch construction."""

    def test_start_builds_epoch(self, make_scheduler):
        scheduler = make_scheduler()

        epoch = scheduler.start()

        assert scheduler.epoch is epoch
        assert [p.plugin_name for p in epoch.plugins] == ["cpu", "sql"]
        assert [p.plugin_name for p in epoch.enabled_plugins] == ["cpu"]

    def test_start_with_missing_config_raises(self, temp_dir, plugin_dir):
        scheduler = Scheduler(ConfigStore(temp_dir / "missing.toml"), plugin_directory=plugin_dir)

        with pytest.raises(ConfigError):
            scheduler.start()

    def test_blocking_configure_is_abandoned(
        self, make_scheduler, plugin_dir, scheduler_config, sample_config_data, write_config, caplog
    ):
        (plugin_dir / "blocking.py").write_text(BLOCKING_PLUGIN_SOURCE)
        sample_config_data["PluginTimeoutSeconds"] = 0.05
        sample_config_data["ModulesConfigs"]["blocking"] = {"Enabled": "true"}
        write_config(scheduler_config, sample_config_data)
        scheduler = make_scheduler()

        try:
            epoch = scheduler.start()
        finally:
            sys.modules["metricagent_plugins_blocking"].RELEASE.set()

        assert [p.plugin_name for p in epoch.plugins] == ["cpu", "sql"]
        assert "configure did not finish within 0.05s" in caplog.text

    def test_run_tick_before_start(self, make_scheduler):
        with pytest.raises(RuntimeError):
            make_scheduler().run_tick()


@pytest.mark.unit
class TestSchedulerTick:
    """Test cases for a single tick."""

    def test_single_plugin_scenario(self, make_scheduler, recording_transmitter):
        scheduler = make_scheduler()
        scheduler.start()

        scheduler.run_tick()

        batch, endpoint, test_mode = recording_transmitter.sent[0]
        assert batch.metrics == {"host1.cpu.pct": 42}
        assert batch.timestamp == ROUNDED_TICK
        assert endpoint.host == "127.0.0.1"
        assert endpoint.port == 2003
        assert test_mode is False

    def test_section_without_enabled_contributes_nothing(self, make_scheduler, recording_transmitter):
        scheduler = make_scheduler()
        scheduler.start()

        scheduler.run_tick()

        sql = next(p for p in scheduler.epoch.plugins if p.plugin_name == "sql")
        assert sql.enabled is False
        assert sql.calls == 0
        batch = recording_transmitter.sent[0][0]
        assert not any(path.endswith("queries.active") for path in batch.metrics)

    def test_sleep_compensates_for_processing(self, make_scheduler):
        scheduler = make_scheduler(monotonic=scripted_monotonic(100.0, 101.5))
        scheduler.start()

        assert scheduler.run_tick() == pytest.approx(58.5)

    def test_overrun_starts_next_tick_immediately(self, make_scheduler, caplog):
        scheduler = make_scheduler(monotonic=scripted_monotonic(100.0, 175.0))
        scheduler.start()

        assert scheduler.run_tick() == 0
        assert "starting the next tick immediately" in caplog.text

    def test_test_mode_passed_to_transmitter(self, make_scheduler, recording_transmitter):
        scheduler = make_scheduler(test_mode=True)
        scheduler.start()

        scheduler.run_tick()

        assert recording_transmitter.sent[0][2] is True

    def test_transmission_failure_is_not_fatal(self, make_scheduler, failing_transmitter, caplog):
        failing = failing_transmitter(TransmissionError("connection refused"))
        scheduler = make_scheduler(transmitter=failing)
        scheduler.start()

        sleep_seconds = scheduler.run_tick()

        assert sleep_seconds > 0
        assert scheduler.state.transmission_failures == 1
        assert scheduler.state.ticks_completed == 1
        assert "connection refused" in caplog.text

    def test_unreachable_endpoint(self, make_scheduler, scheduler_config, sample_config_data, write_config, caplog):
        # Reserve a port and release it so nothing is listening there.
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            probe.bind(("127.0.0.1", 0))
            closed_port = probe.getsockname()[1]
        sample_config_data["CarbonServerPort"] = closed_port
        sample_config_data["TransmitTimeoutSeconds"] = 0.5
        sample_config_data["ModulesConfigs"] = {"cpu": {"Enabled": "true"}}
        write_config(scheduler_config, sample_config_data)

        scheduler = make_scheduler(transmitter=Transmitter())
        scheduler.start()

        sleep_seconds = scheduler.run_tick()

        assert sleep_seconds > 0
        assert scheduler.state.transmission_failures == 1
        assert f"127.0.0.1:{closed_port}" in caplog.text


@pytest.mark.unit
class TestSchedulerReload:
    """Test cases for configuration hot reload."""

    def test_reload_replaces_epoch_with_fresh_plugins(
        self, make_scheduler, scheduler_config, sample_config_data, write_config, recording_transmitter
    ):
        scheduler = make_scheduler()
        first_epoch = scheduler.start()

        sample_config_data["ModulesConfigs"] = {
            "cpu": {"Enabled": "true", "CustomPrefix": "renamed"},
            "sql": {"Enabled": "TRUE", "CustomPrefix": "db"},
        }
        write_config(scheduler_config, sample_config_data)
        bump_mtime(scheduler_config)

        scheduler.run_tick()

        # The tick that detected the change still used the old configuration.
        assert recording_transmitter.sent[0][0].metrics == {"host1.cpu.pct": 42}
        assert scheduler.state.reloads == 1
        second_epoch = scheduler.epoch
        assert second_epoch is not first_epoch
        assert not set(map(id, second_epoch.plugins)) & set(map(id, first_epoch.plugins))

        scheduler.run_tick()

        assert recording_transmitter.sent[1][0].metrics == {
            "renamed.cpu.pct": 42,
            "db.queries.active": 3,
        }

    def test_bad_reload_keeps_active_epoch(self, make_scheduler, scheduler_config, caplog):
        scheduler = make_scheduler()
        first_epoch = scheduler.start()

        scheduler_config.write_text("MetricSendIntervalSeconds = \n")
        bump_mtime(scheduler_config)

        scheduler.run_tick()

        assert scheduler.epoch is first_epoch
        assert scheduler.state.reloads == 0
        assert "keeping previous configuration" in caplog.text

    def test_reload_uses_new_interval_for_sleep(
        self, make_scheduler, scheduler_config, sample_config_data, write_config
    ):
        scheduler = make_scheduler(monotonic=scripted_monotonic(0.0, 1.0))
        scheduler.start()

        sample_config_data["MetricSendIntervalSeconds"] = 10
        write_config(scheduler_config, sample_config_data)
        bump_mtime(scheduler_config)

        assert scheduler.run_tick() == pytest.approx(9.0)


@pytest.mark.unit
class TestSchedulerRun:
    """Test cases for the unbounded loop and cancellation."""

    def test_shutdown_before_first_tick(self, make_scheduler, recording_transmitter):
        scheduler = make_scheduler()
        scheduler.request_shutdown()

        assert scheduler.run() == 0
        assert recording_transmitter.sent == []

    def test_max_ticks(self, make_scheduler, recording_transmitter):
        # Every monotonic read advances 100s, so no tick ever sleeps.
        clock = itertools.count(0, 100)
        scheduler = make_scheduler(monotonic=lambda: next(clock))

        assert scheduler.run(max_ticks=3) == 3
        assert len(recording_transmitter.sent) == 3

    def test_shutdown_completes_inflight_transmission(self, make_scheduler, caplog):
        caplog.set_level(logging.INFO)

        class ShutdownDuringSend:
            timeout = 5.0

            def __init__(self):
                self.sent = []
                self.scheduler = None

            def send(self, batch, endpoint, test_mode=False):
                self.scheduler.request_shutdown()
                self.sent.append(batch)
                return []

        transmitter = ShutdownDuringSend()
        scheduler = make_scheduler(transmitter=transmitter)
        transmitter.scheduler = scheduler

        assert scheduler.run() == 1
        assert len(transmitter.sent) == 1
        assert "Scheduler stopped after 1 tick(s)" in caplog.text
