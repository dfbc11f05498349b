"""
Core infrastructure for stegascan.
"""

from stegascan.core.base_analyzer import BaseAnalyzer
from stegascan.core.report_manager import ReportManager
from stegascan.core.log_manager import setup_logging

__all__ = ["BaseAnalyzer", "ReportManager", "setup_logging"]
