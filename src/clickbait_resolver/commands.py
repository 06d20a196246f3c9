"""Command channel vocabulary and issue reporting."""

import json
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .logger import get_logger
from .models import IssueReport


class Command(str, Enum):
    """Commands accepted by HeadlinePipeline.handle_command."""
    TOGGLE_ACTIVE = "toggle_active"
    UPDATE_DISPLAY_STYLE = "update_display_style"
    UPDATE_USE_AI = "update_use_ai"
    UPDATE_AI_KEY = "update_ai_key"
    UPDATE_BATCH_SIZE = "update_batch_size"
    UPDATE_MAX_HEADLINES = "update_max_headlines"
    UPDATE_DEBUG_MODE = "update_debug_mode"
    REPORT_ISSUE = "report_issue"


class IssueReporter:
    """Stores user issue reports as JSON lines."""

    def __init__(self, report_file: Path):
        """
        Initialize issue reporter.

        Args:
            report_file: JSON-lines file receiving one report per line
        """
        self.report_file = report_file
        self.logger = get_logger()

    def submit(
        self,
        description: str,
        headline: Optional[str] = None,
        page_url: Optional[str] = None
    ) -> IssueReport:
        """
        Record an issue report.

        Args:
            description: What went wrong, in the user's words
            headline: Text of the headline concerned, if any
            page_url: URL of the page, if known

        Returns:
            The stored IssueReport
        """
        report = IssueReport(
            description=description.strip(),
            headline=headline,
            page_url=page_url
        )

        try:
            self.report_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.report_file, 'a', encoding='utf-8') as f:
                f.write(json.dumps(report.to_dict(), ensure_ascii=False) + "\n")
            self.logger.info(f"Issue reported: {report.description}")
        except Exception as e:
            self.logger.error(f"Failed to save issue report: {e}")

        return report

    def load_all(self) -> List[IssueReport]:
        """Read back every stored report."""
        if not self.report_file.exists():
            return []

        reports = []
        with open(self.report_file, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line:
                    reports.append(IssueReport.from_dict(json.loads(line)))
        return reports
