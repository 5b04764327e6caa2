"""
Pytest configuration and shared fixtures for the metricagent test suite.

This module provides common fixtures, test plugins and configuration
builders for all test modules.
"""

import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from metricagent.config.validators import validate_agent_config  # noqa: E402
from metricagent.models import AgentConfig, Sample  # noqa: E402
from metricagent.plugins.base import MetricPlugin  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config_data() -> Dict[str, Any]:
    """Raw configuration document as it would be parsed from TOML."""
    return {
        "MetricSendIntervalSeconds": 60,
        "CarbonServer": "127.0.0.1",
        "CarbonServerPort": 2003,
        "SendUsingUDP": False,
        "ShowOutput": False,
        "MetricPath": "datacenter1",
        "NodeHostName": "host1",
        "Filters": "",
        "MetricReplace": [],
        "ModulesConfigs": {
            "static": {"Enabled": "true"},
        },
    }


@pytest.fixture
def make_config(sample_config_data):
    """Build a validated AgentConfig from the sample data plus overrides."""

    def _make(**overrides: Any) -> AgentConfig:
        data = dict(sample_config_data)
        data.update(overrides)
        return validate_agent_config(data)

    return _make


@pytest.fixture
def config_file(temp_dir, sample_config_data):
    """Write the sample configuration to a TOML file and return its path."""
    import toml

    path = temp_dir / "agent.toml"
    with open(path, "w") as f:
        toml.dump(sample_config_data, f)
    return path


@pytest.fixture
def write_config():
    """Write a configuration dict to a TOML file."""
    import toml

    def _write(path: Path, data: Dict[str, Any]) -> Path:
        with open(path, "w") as f:
            toml.dump(data, f)
        return path

    return _write


# ============================================================================
# Plugin Fixtures
# ============================================================================


class StaticPlugin(MetricPlugin):
    """Plugin returning a fixed list of samples and counting calls."""

    plugin_name = "static"
    config_section_name = "static"

    def __init__(self, samples: Optional[List[Sample]] = None, error: Optional[Exception] = None):
        super().__init__()
        self.samples = list(samples or [])
        self.error = error
        self.calls = 0

    def get_metrics(self) -> List[Sample]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.samples)


@pytest.fixture
def make_plugin():
    """
    Create an initialized StaticPlugin with a given name and section.

    Usage:
        plugin = make_plugin("cpu", [Sample("cpu.pct", 42)], config=cfg)
    """

    def _make(
        name: str = "static",
        samples: Optional[List[Sample]] = None,
        section: Optional[str] = None,
        error: Optional[Exception] = None,
        config: Optional[AgentConfig] = None,
    ) -> StaticPlugin:
        cls = type(
            f"{name.title()}Plugin",
            (StaticPlugin,),
            {"plugin_name": name, "config_section_name": section or name},
        )
        plugin = cls(samples=samples, error=error)
        plugin.init()
        if config is not None:
            plugin.configure(config)
        return plugin

    return _make


class RecordingTransmitter:
    """Transmitter double that records what it was asked to send."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.sent = []
        self.timeout = 5.0

    def send(self, batch, endpoint, test_mode=False):
        self.sent.append((batch, endpoint, test_mode))
        if self.error is not None:
            raise self.error
        return []


@pytest.fixture
def recording_transmitter():
    return RecordingTransmitter()


@pytest.fixture
def failing_transmitter():
    """Create a RecordingTransmitter that raises the given error on send."""

    def _make(error: Exception) -> RecordingTransmitter:
        return RecordingTransmitter(error=error)

    return _make
