"""
Host sampling: CPU load, memory usage and CPU temperature via psutil.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import psutil

# Sensor chips that report the CPU package, in order of preference
CPU_SENSOR_CHIPS = ('coretemp', 'k10temp', 'cpu_thermal', 'zenpower', 'acpitz')


class CollectionError(Exception):
    """A required metric could not be read from the host"""
    pass


@dataclass
class MetricData:
    """One host health snapshot"""
    timestamp: datetime
    cpu_percent: float = 0.0
    memory_total: int = 0
    memory_used: int = 0
    memory_percent: float = 0.0
    cpu_temp: float = 0.0

    def to_payload(self) -> Dict[str, Any]:
        """JSON body accepted by the hub's POST /api/metrics"""
        return {
            'cpu_percent': self.cpu_percent,
            'memory_total': self.memory_total,
            'memory_used': self.memory_used,
            'memory_percent': self.memory_percent,
            'cpu_temp': self.cpu_temp,
            'timestamp': self.timestamp.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ'),
        }


def read_cpu_temperature() -> Optional[float]:
    """
    Best-effort CPU temperature in degrees Celsius.

    Returns: the first reading of a known CPU sensor chip, else the first
    reading of any sensor, else None when the host exposes none
    """
    sensors = getattr(psutil, 'sensors_temperatures', None)
    if sensors is None:
        return None

    readings = sensors() or {}
    for chip in CPU_SENSOR_CHIPS:
        entries = readings.get(chip)
        if entries:
            return float(entries[0].current)

    for entries in readings.values():
        if entries:
            return float(entries[0].current)

    return None


class SystemMetrics:
    """Collects the enabled host metrics; disabled ones are reported as 0"""

    def __init__(
        self,
        enable_cpu: bool = True,
        enable_memory: bool = True,
        enable_temp: bool = True,
        cpu_interval: float = 1.0
    ):
        self.enable_cpu = enable_cpu
        self.enable_memory = enable_memory
        self.enable_temp = enable_temp
        self.cpu_interval = cpu_interval

    def collect(self) -> MetricData:
        """
        Take one snapshot.

        Raises:
            CollectionError: CPU or memory could not be read
        """
        metrics = MetricData(timestamp=datetime.now(timezone.utc))

        if self.enable_cpu:
            try:
                # Blocks for cpu_interval seconds
                metrics.cpu_percent = float(psutil.cpu_percent(interval=self.cpu_interval))
            except (OSError, psutil.Error) as e:
                raise CollectionError(f"Failed to read CPU usage: {e}") from e

        if self.enable_memory:
            try:
                mem = psutil.virtual_memory()
            except (OSError, psutil.Error) as e:
                raise CollectionError(f"Failed to read memory info: {e}") from e
            metrics.memory_total = int(mem.total)
            metrics.memory_used = int(mem.used)
            metrics.memory_percent = float(mem.percent)

        if self.enable_temp:
            # A missing or broken sensor never fails the snapshot
            try:
                temp = read_cpu_temperature()
            except (OSError, psutil.Error, ValueError):
                temp = None
            metrics.cpu_temp = temp if temp is not None else 0.0

        return metrics
