"""
Operational helpers: structured logging and background index rebuilds.
"""

from .telemetry import configure_logging, get_logger, timed
from .jobs import RebuildJob, RebuildJobs

__all__ = ["configure_logging", "get_logger", "timed", "RebuildJob", "RebuildJobs"]
