# ==============================================
# ProgressReporter
# ==============================================
#
# PURPOSE:
#   File-based progress sink read by the task runner that launched
#   the analysis. Every update rewrites the whole JSON document:
#
#     {"progress": 0.5, "inserted": 12, "errors": [...], "completed": false}
#
# CLASS: ProgressReporter
# -----------------------
#   - write_progress(progress, count)
#   - inc_count(count_inc=1)
#   - write_error(description)
#   - write_complete(count)
#
# ==============================================

import json
import logging
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Accumulates progress and errors and flushes them to a JSON file."""

    def __init__(self, path: Optional[str] = "info.json"):
        """
        Args:
            path: Target file. None keeps everything in memory only.
        """
        self.path = Path(path) if path else None
        self.progress = 0.0
        self.count = 0
        self.errors: List[str] = []
        self.completed = False

    def write_progress(self, progress: float, count: int) -> None:
        self.progress = progress
        self.count = count
        self._flush()

    def inc_count(self, count_inc: int = 1) -> None:
        self.count += count_inc
        self._flush()

    def write_error(self, description: str) -> None:
        logger.error(f"✗ {description}")
        self.errors.append(description)
        self._flush()

    def write_complete(self, count: int) -> None:
        self.completed = True
        self.write_progress(1.0, count)

    def to_dict(self) -> dict:
        return {
            "progress": self.progress,
            "inserted": self.count,
            "errors": list(self.errors),
            "completed": self.completed,
        }

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False)
