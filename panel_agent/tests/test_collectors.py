"""
Unit tests for host sampling.
"""
from collections import namedtuple
from datetime import datetime, timezone
from unittest.mock import patch

import psutil
import pytest

from panel_agent.collectors import CollectionError, MetricData, SystemMetrics, read_cpu_temperature

Temp = namedtuple('Temp', 'label current high critical')
VirtualMemory = namedtuple('VirtualMemory', 'total used percent')


class TestSystemMetrics:
    """Test SystemMetrics collector"""

    def test_collect_returns_metric_data(self):
        """Should collect real metrics from this host"""
        metrics = SystemMetrics(cpu_interval=0.1).collect()

        assert isinstance(metrics, MetricData)
        assert 0 <= metrics.cpu_percent <= 100
        assert 0 <= metrics.memory_percent <= 100
        assert metrics.memory_total > 0
        assert 0 < metrics.memory_used <= metrics.memory_total
        assert metrics.cpu_temp >= 0
        assert metrics.timestamp.tzinfo == timezone.utc

    def test_collect_reads_psutil(self):
        """Should copy CPU, memory and temperature readings"""
        with patch('panel_agent.collectors.psutil.cpu_percent', return_value=37.5), \
             patch('panel_agent.collectors.psutil.virtual_memory',
                   return_value=VirtualMemory(total=8000, used=2000, percent=25.0)), \
             patch('panel_agent.collectors.read_cpu_temperature', return_value=61.0):
            metrics = SystemMetrics().collect()

        assert metrics.cpu_percent == 37.5
        assert metrics.memory_total == 8000
        assert metrics.memory_used == 2000
        assert metrics.memory_percent == 25.0
        assert metrics.cpu_temp == 61.0

    def test_disabled_metrics_are_zero(self):
        """Should report disabled metrics as 0 without reading them"""
        with patch('panel_agent.collectors.psutil.cpu_percent') as cpu, \
             patch('panel_agent.collectors.psutil.virtual_memory') as mem, \
             patch('panel_agent.collectors.read_cpu_temperature') as temp:
            metrics = SystemMetrics(enable_cpu=False, enable_memory=False, enable_temp=False).collect()

        cpu.assert_not_called()
        mem.assert_not_called()
        temp.assert_not_called()
        assert (metrics.cpu_percent, metrics.memory_total, metrics.memory_used,
                metrics.memory_percent, metrics.cpu_temp) == (0, 0, 0, 0, 0)

    def test_temperature_failure_is_zero(self):
        """Should report 0 when the temperature cannot be read"""
        with patch('panel_agent.collectors.psutil.cpu_percent', return_value=5.0), \
             patch('panel_agent.collectors.read_cpu_temperature', side_effect=OSError('no sensors')):
            metrics = SystemMetrics().collect()

        assert metrics.cpu_temp == 0.0

    def test_memory_failure_raises(self):
        """Should raise CollectionError when memory cannot be read"""
        with patch('panel_agent.collectors.psutil.virtual_memory', side_effect=psutil.AccessDenied()):
            with pytest.raises(CollectionError):
                SystemMetrics(enable_cpu=False).collect()

    def test_cpu_failure_raises(self):
        """Should raise CollectionError when CPU usage cannot be read"""
        with patch('panel_agent.collectors.psutil.cpu_percent', side_effect=OSError('proc unavailable')):
            with pytest.raises(CollectionError):
                SystemMetrics().collect()


class TestReadCpuTemperature:
    """Test read_cpu_temperature"""

    def test_prefers_cpu_chip(self):
        """Should prefer a known CPU sensor over other chips"""
        readings = {
            'nvme': [Temp('Composite', 38.0, None, None)],
            'coretemp': [Temp('Package id 0', 54.0, 80.0, 100.0)],
        }
        with patch('panel_agent.collectors.psutil.sensors_temperatures', return_value=readings, create=True):
            assert read_cpu_temperature() == 54.0

    def test_falls_back_to_first_sensor(self):
        """Should use any sensor when no CPU chip is present"""
        readings = {'nvme': [Temp('Composite', 38.0, None, None)]}
        with patch('panel_agent.collectors.psutil.sensors_temperatures', return_value=readings, create=True):
            assert read_cpu_temperature() == 38.0

    def test_no_sensors(self):
        """Should return None when the host has no sensors"""
        with patch('panel_agent.collectors.psutil.sensors_temperatures', return_value={}, create=True):
            assert read_cpu_temperature() is None


class TestMetricData:
    """Test MetricData payload"""

    def test_to_payload(self):
        """Should produce the ingest body with a canonical UTC timestamp"""
        metrics = MetricData(
            timestamp=datetime(2026, 10, 18, 12, 0, 0, 250000, tzinfo=timezone.utc),
            cpu_percent=10.0,
            memory_total=100,
            memory_used=40,
            memory_percent=40.0,
            cpu_temp=45.5
        )

        assert metrics.to_payload() == {
            'cpu_percent': 10.0,
            'memory_total': 100,
            'memory_used': 40,
            'memory_percent': 40.0,
            'cpu_temp': 45.5,
            'timestamp': '2026-10-18T12:00:00.250000Z',
        }
        assert 'node_id' not in metrics.to_payload()
