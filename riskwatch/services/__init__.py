"""Service modules"""
from .monitor import LiveRiskMonitor, ScheduledTask

__all__ = ["LiveRiskMonitor", "ScheduledTask"]
