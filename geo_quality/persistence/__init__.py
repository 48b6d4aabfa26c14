# ==============================================
# PERSISTENCE: Progress and error reporting
# ==============================================
#
# Quality states are written through DocumentStore.write_state;
# this package only holds the progress sink consumed by the task
# runner.
#
# Modules:
# --------
# - progress.py  → ProgressReporter (JSON file sink)
#
# ==============================================

from .progress import ProgressReporter

__all__ = ["ProgressReporter"]
