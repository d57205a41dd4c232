"""
Storage Layer.

This package handles all data persistence: the configuration file, the
downloaded packages and the run reports.
"""

from .config_manager import ConfigManager
from .report import write_failed_list, write_report
from .sink import PayloadSink

__all__ = ["ConfigManager", "PayloadSink", "write_failed_list", "write_report"]
