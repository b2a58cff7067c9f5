"""Interactive selection of the desired installed-module set.

The model here is independent of the terminal: ``SelectorModel`` holds the
grid, focus and selection and reacts to abstract ``SelectorAction`` values;
``manager.tui`` maps keys to actions and draws the model. Committing diffs
the selection against a fresh scan and applies the result as one batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from backend.models import InstallScope, InstalledPackage
from catalog import ModuleDescriptor, find_descriptor
from constants import Constants
from errors import BackendError
from session import SessionContext
from .batch import BatchOutcome, attempt, log_backend_failure
from .scanner import ScanResult, installed_versions, scan

logger = logging.getLogger(__name__)


class SelectorAction(Enum):
    """Logical operator inputs."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    TOGGLE = "toggle"
    TOGGLE_SCOPE = "toggle_scope"
    COMMIT = "commit"
    CANCEL = "cancel"


class SelectorMode(Enum):
    """Session state; Committed and Cancelled are terminal."""
    BROWSING = "Browsing"
    COMMITTED = "Committed"
    CANCELLED = "Cancelled"


@dataclass
class SelectionState:
    """Desired-installed flag per module name."""
    desired: Dict[str, bool] = field(default_factory=dict)

    def is_desired(self, name: str) -> bool:
        return self.desired.get(name, False)

    def toggle(self, name: str) -> bool:
        self.desired[name] = not self.is_desired(name)
        return self.desired[name]


def seed_selection(scans: Iterable[Tuple[ModuleDescriptor, ScanResult]]) -> SelectionState:
    """Initial selection: every installed module is desired."""
    return SelectionState({descriptor.name: result.installed for descriptor, result in scans})


@dataclass
class SelectorModel:
    """Grid of catalog entries with a single focused cell.

    Navigation clamps at the grid edges. Once the mode is terminal every
    further action is ignored.
    """
    entries: Tuple[ModuleDescriptor, ...]
    selection: SelectionState
    columns: int = Constants.GRID_COLUMNS
    scope: InstallScope = InstallScope.CURRENT_USER
    focus: int = 0
    mode: SelectorMode = SelectorMode.BROWSING

    def __post_init__(self):
        self.entries = tuple(self.entries)
        if self.columns < 1:
            raise ValueError("columns must be at least 1")

    @property
    def rows(self) -> int:
        return -(-len(self.entries) // self.columns)

    @property
    def focused(self) -> Optional[ModuleDescriptor]:
        if not self.entries:
            return None
        return self.entries[self.focus]

    def position(self, index: int) -> Tuple[int, int]:
        """(row, column) of ``index`` in the grid."""
        return divmod(index, self.columns)

    def _move(self, action: SelectorAction) -> None:
        if not self.entries:
            return
        row, col = self.position(self.focus)
        target = self.focus
        if action is SelectorAction.UP and row > 0:
            target = self.focus - self.columns
        elif action is SelectorAction.DOWN:
            target = self.focus + self.columns
        elif action is SelectorAction.LEFT and col > 0:
            target = self.focus - 1
        elif action is SelectorAction.RIGHT and col < self.columns - 1:
            target = self.focus + 1
        # Ragged last row: a missing cell is an edge.
        if 0 <= target < len(self.entries):
            self.focus = target

    def dispatch(self, action: SelectorAction) -> SelectorMode:
        """Apply one action and return the resulting mode."""
        if self.mode is not SelectorMode.BROWSING:
            return self.mode
        if action in (SelectorAction.UP, SelectorAction.DOWN, SelectorAction.LEFT, SelectorAction.RIGHT):
            self._move(action)
        elif action is SelectorAction.TOGGLE:
            if self.focused is not None:
                self.selection.toggle(self.focused.name)
        elif action is SelectorAction.TOGGLE_SCOPE:
            self.scope = self.scope.toggled()
        elif action is SelectorAction.COMMIT:
            self.mode = SelectorMode.COMMITTED
        elif action is SelectorAction.CANCEL:
            self.mode = SelectorMode.CANCELLED
        return self.mode


@dataclass(frozen=True)
class ChangePlan:
    """Install and uninstall batches derived from a committed selection."""
    install: Tuple[ModuleDescriptor, ...] = ()
    uninstall: Tuple[InstalledPackage, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.install and not self.uninstall


def plan_changes(ctx: SessionContext, selection: SelectionState) -> ChangePlan:
    """Diff ``selection`` against a fresh scan of every catalog module."""
    install: List[ModuleDescriptor] = []
    uninstall: List[InstalledPackage] = []
    for descriptor in ctx.catalog:
        if descriptor.name not in selection.desired:
            continue
        try:
            result = scan(ctx, descriptor)
        except BackendError as exc:
            log_backend_failure("scan", exc)
            continue
        wanted = selection.is_desired(descriptor.name)
        if wanted and not result.installed:
            install.append(descriptor)
        elif not wanted and result.installed:
            uninstall.append(result.record)
    return ChangePlan(install=tuple(install), uninstall=tuple(uninstall))


def _uninstall_matched(
    ctx: SessionContext, name: str, authority: Optional[str]
) -> List[BatchOutcome]:
    """Uninstall each version of ``name`` installed from ``authority``, one at a time.

    Same-named copies from other registries are a different module and stay.
    """
    try:
        records = installed_versions(ctx, name, authority)
    except BackendError as exc:
        if exc.module is None:
            exc.module = name
        log_backend_failure("scan", exc)
        return []
    return [
        attempt(
            "uninstall", name, record.version,
            lambda r=record: ctx.backend.uninstall(r.name, r.version, scope=r.scope),
        )
        for record in records
    ]


def apply_plan(
    ctx: SessionContext,
    plan: ChangePlan,
    scope: InstallScope,
    allow_prerelease: bool = False,
) -> List[BatchOutcome]:
    """Run the install batch in ``scope``, then the uninstall batch.

    Each uninstall removes the module's declared dependencies first
    (best-effort) and then the module itself, whatever happened to the
    dependencies. Only versions installed from the module's own registry
    are removed, each in the scope it was found in.
    """
    backend = ctx.backend
    outcomes: List[BatchOutcome] = []

    for descriptor in plan.install:
        outcomes.append(attempt(
            "install", descriptor.name, None,
            lambda d=descriptor: backend.install(d.name, scope=scope, prerelease=allow_prerelease,
                                                 allow_clobber=True),
        ))

    for record in plan.uninstall:
        authority = record.source_authority
        for dependency in record.dependencies:
            # A catalog module keeps its own registry; anything else came with the parent.
            known = find_descriptor(ctx.catalog, dependency.name)
            outcomes.extend(_uninstall_matched(ctx, dependency.name, known.authority if known else authority))
        outcomes.extend(_uninstall_matched(ctx, record.name, authority))
    return outcomes


def seed_entries(ctx: SessionContext) -> Tuple[Tuple[ModuleDescriptor, ...], SelectionState]:
    """Scan every catalog module for the grid.

    A module whose listing fails is logged and left out of the grid, so the
    selection never plans a change for it.
    """
    scans: List[Tuple[ModuleDescriptor, ScanResult]] = []
    for descriptor in ctx.catalog:
        try:
            scans.append((descriptor, scan(ctx, descriptor)))
        except BackendError as exc:
            if exc.module is None:
                exc.module = descriptor.name
            log_backend_failure("scan", exc)
    return tuple(d for d, _ in scans), seed_selection(scans)


def run_selector(ctx: SessionContext, driver=None) -> List[BatchOutcome]:
    """Run one interactive session and apply the committed selection.

    ``driver`` takes a ``SelectorModel`` and runs it until it reaches a
    terminal mode; it defaults to the curses view.

    Returns:
        The batch outcomes; empty when cancelled or nothing changed.
    """
    if driver is None:
        from .tui import run_curses  # pylint: disable=import-outside-toplevel
        driver = run_curses

    entries, selection = seed_entries(ctx)
    model = SelectorModel(
        entries=entries,
        selection=selection,
        columns=ctx.settings.columns,
        scope=ctx.scope,
    )
    driver(model)

    if model.mode is not SelectorMode.COMMITTED:
        logger.info("Selection cancelled; nothing was changed.")
        return []

    ctx.scope = model.scope
    plan = plan_changes(ctx, model.selection)
    if plan.is_empty:
        logger.info("Selection matches the installed modules; nothing to do.")
        return []
    logger.info("Installing %d module(s) in scope %s and uninstalling %d.",
                len(plan.install), model.scope.value, len(plan.uninstall))
    return apply_plan(ctx, plan, model.scope, ctx.allow_prerelease)
