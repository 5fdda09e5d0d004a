"""
Unit tests for EngineConfig and FunctionMetrics
"""

import json
import os

import pytest

from viewcompiler.config import EngineConfig
from viewcompiler.metrics import FunctionMetrics, IndexMetrics


class TestEngineConfig:
    """Tests for configuration defaults and validation"""

    def test_defaults(self):
        """Test that no limits are set by default"""
        config = EngineConfig()

        assert config.script_timeout is None
        assert config.script_max_memory is None
        assert config.log_level == 'INFO'

    def test_from_env(self, monkeypatch):
        """Test reading settings from the environment"""
        monkeypatch.setenv('VIEW_SCRIPT_TIMEOUT', '2.5')
        monkeypatch.setenv('VIEW_SCRIPT_MAX_MEMORY', '1048576')
        monkeypatch.setenv('VIEW_LOG_LEVEL', 'debug')

        config = EngineConfig.from_env()

        assert config.script_timeout == 2.5
        assert config.script_max_memory == 1048576
        assert config.log_level == 'DEBUG'

    def test_from_env_unset(self, monkeypatch):
        """Test that missing variables leave defaults"""
        for name in ('VIEW_SCRIPT_TIMEOUT', 'VIEW_SCRIPT_MAX_MEMORY', 'VIEW_LOG_LEVEL'):
            monkeypatch.delenv(name, raising=False)

        assert EngineConfig.from_env() == EngineConfig()

    def test_rejects_non_positive_timeout(self, monkeypatch):
        """Test validation of environment values"""
        monkeypatch.setenv('VIEW_SCRIPT_TIMEOUT', '0')

        with pytest.raises(ValueError, match="VIEW_SCRIPT_TIMEOUT"):
            EngineConfig.from_env()

    def test_rejects_non_numeric_memory(self, monkeypatch):
        """Test that garbage in the environment fails loudly"""
        monkeypatch.setenv('VIEW_SCRIPT_MAX_MEMORY', 'lots')

        with pytest.raises(ValueError):
            EngineConfig.from_env()

    def test_rejects_unknown_log_level(self):
        """Test log level validation"""
        with pytest.raises(ValueError, match="Unknown log level"):
            EngineConfig(log_level='chatty')

    def test_rejects_negative_timeout(self):
        """Test validation in the constructor"""
        with pytest.raises(ValueError):
            EngineConfig(script_timeout=-1)


class TestMetrics:
    """Tests for metrics dataclasses"""

    def test_function_metrics_average(self):
        """Test average call time"""
        metrics = FunctionMetrics()
        metrics.record_call(0.010)
        metrics.record_call(0.030, failed=True)

        assert metrics.calls == 2
        assert metrics.failures == 1
        assert metrics.average_time_ms == pytest.approx(20.0)

    def test_function_metrics_empty_average(self):
        """Test that an unused function reports zero"""
        assert FunctionMetrics().average_time_ms == 0.0

    def test_save_to_file(self, temp_dir):
        """Test writing metrics as JSON"""
        metrics = FunctionMetrics(calls=3, rows_emitted=7)
        path = os.path.join(temp_dir, 'metrics.json')

        metrics.save_to_file(path)

        with open(path) as f:
            data = json.load(f)
        assert data['calls'] == 3
        assert data['rows_emitted'] == 7
        assert 'average_time_ms' in data

    def test_index_metrics_memory_sample(self):
        """Test that resident memory is sampled"""
        metrics = IndexMetrics(start_time=10.0, end_time=12.5)
        metrics.sample_memory()

        assert metrics.memory_rss_bytes > 0
        assert metrics.to_dict()['total_time_seconds'] == pytest.approx(2.5)
