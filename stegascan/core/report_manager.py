"""
Report persistence for stegascan scan results.
"""
import json
from pathlib import Path
from typing import Any, Dict, Optional

from stegascan.core.serialization import make_json_serializable


class ReportManager:
    """Reads and writes JSON scan reports under a results directory."""

    def __init__(self, reports_dir: Optional[Path] = None) -> None:
        """
        Initialize the report manager.

        Args:
            reports_dir: Optional directory for reports. If None, uses results/reports/
        """
        self.reports_dir = Path(reports_dir) if reports_dir else Path("results/reports")
        self.reports_dir.mkdir(parents=True, exist_ok=True)

    def report_path(self, filename: str) -> Path:
        if not filename.endswith(".json"):
            filename += ".json"
        return self.reports_dir / filename

    def save_json(self, data: Dict[str, Any], filename: str) -> Path:
        """
        Save a report as JSON.

        Args:
            data: Result document to save
            filename: Name of the file (with or without .json extension)

        Returns:
            Path the report was written to
        """
        path = self.report_path(filename)
        with open(path, "w") as f:
            json.dump(make_json_serializable(data), f, indent=2)
        return path

    def load_json(self, filename: str) -> Dict[str, Any]:
        """
        Load a report from JSON.

        Args:
            filename: Name of the file (with or without .json extension)

        Returns:
            Dictionary containing the loaded report
        """
        with open(self.report_path(filename), "r") as f:
            return json.load(f)
