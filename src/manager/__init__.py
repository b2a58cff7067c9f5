"""Module lifecycle operations built on the scanner.

- reporter.py: outdated detection and report export
- updater.py: update and clean batches
- selector.py: interactive desired-set selection (curses view in tui.py)
"""

from .batch import BatchOutcome
from .reporter import ModuleReport, ModuleStatus, export_csv, export_json, report_all
from .scanner import ScanResult, scan, scan_all
from .selector import ChangePlan, SelectionState, SelectorModel, apply_plan, plan_changes, run_selector
from .updater import clean_all, remove_superseded, update_all

__all__ = [
    "BatchOutcome",
    "ChangePlan",
    "ModuleReport",
    "ModuleStatus",
    "ScanResult",
    "SelectionState",
    "SelectorModel",
    "apply_plan",
    "clean_all",
    "export_csv",
    "export_json",
    "plan_changes",
    "remove_superseded",
    "report_all",
    "run_selector",
    "scan",
    "scan_all",
    "update_all",
]
