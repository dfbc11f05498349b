"""
Base analyzer class that all stegascan analyzers inherit from.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from stegascan import config


class BaseAnalyzer(ABC):
    """Abstract base class for all detection analyzers."""

    name: str = "base_analyzer"
    description: str = "Base steganography analyzer"
    config_section: Optional[str] = None

    def __init__(self, config_overrides: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the analyzer.

        Args:
            config_overrides: Optional values replacing the defaults of this
                analyzer's settings section
        """
        self.logger = logging.getLogger(f"stegascan.analyzers.{self.name}")
        self.config: Dict[str, Any] = (
            config.section(self.config_section, config_overrides) if self.config_section else {}
        )

    @abstractmethod
    def analyze(self, *args: Any, **kwargs: Any) -> Any:
        """
        Run the analyzer over its input.

        Returns:
            The analyzer's immutable result model
        """
        pass
