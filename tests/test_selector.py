"""Tests for the interactive selector model, planning and apply."""

from unittest.mock import patch

import pytest

from backend.models import InstallScope
from catalog import ModuleDescriptor
from errors import BackendDependencyError, BackendPermissionError, BackendUnknownError
from manager.selector import (
    ChangePlan,
    SelectionState,
    SelectorAction,
    SelectorMode,
    SelectorModel,
    apply_plan,
    plan_changes,
    run_selector,
    seed_selection,
)
from manager.scanner import scan_all
from manager.tui import action_for_key

GALLERY = "https://www.powershellgallery.com/api/v2"


def _entries(count):
    return tuple(ModuleDescriptor(f"M{i}", f"Module {i}", GALLERY) for i in range(count))


def _model(count=7, columns=3):
    return SelectorModel(entries=_entries(count), selection=SelectionState(), columns=columns)


class TestNavigation:
    """Test grid focus movement."""

    def test_clamps_at_top_left(self):
        model = _model()
        model.dispatch(SelectorAction.UP)
        model.dispatch(SelectorAction.LEFT)
        assert model.focus == 0

    def test_moves_by_row_and_column(self):
        model = _model()
        model.dispatch(SelectorAction.DOWN)
        assert model.focus == 3
        model.dispatch(SelectorAction.RIGHT)
        assert model.focus == 4
        model.dispatch(SelectorAction.UP)
        assert model.focus == 1

    def test_no_wrap_at_right_edge(self):
        model = _model()
        model.focus = 2
        model.dispatch(SelectorAction.RIGHT)
        assert model.focus == 2

    def test_ragged_last_row_is_edge(self):
        # 7 entries in 3 columns: the last row only holds M6.
        model = _model()
        model.focus = 4
        model.dispatch(SelectorAction.DOWN)
        assert model.focus == 4
        model.focus = 6
        model.dispatch(SelectorAction.RIGHT)
        assert model.focus == 6
        model.dispatch(SelectorAction.DOWN)
        assert model.focus == 6

    def test_grid_geometry(self):
        model = _model()
        assert model.rows == 3
        assert model.position(5) == (1, 2)

    def test_empty_grid(self):
        model = _model(count=0)
        model.dispatch(SelectorAction.DOWN)
        model.dispatch(SelectorAction.TOGGLE)
        assert model.focused is None

    def test_invalid_columns(self):
        with pytest.raises(ValueError):
            _model(columns=0)


class TestSelection:
    """Test toggles and terminal states."""

    def test_toggle_focused_entry(self):
        model = _model()
        model.dispatch(SelectorAction.RIGHT)
        model.dispatch(SelectorAction.TOGGLE)
        assert model.selection.desired == {"M1": True}
        model.dispatch(SelectorAction.TOGGLE)
        assert model.selection.is_desired("M1") is False

    def test_toggle_scope(self):
        model = _model()
        model.dispatch(SelectorAction.TOGGLE_SCOPE)
        assert model.scope is InstallScope.ALL_USERS

    def test_actions_ignored_after_commit(self):
        model = _model()
        assert model.dispatch(SelectorAction.COMMIT) is SelectorMode.COMMITTED
        model.dispatch(SelectorAction.TOGGLE)
        model.dispatch(SelectorAction.CANCEL)
        assert model.mode is SelectorMode.COMMITTED
        assert model.selection.desired == {}

    def test_seed_from_scans(self, fake_backend, make_ctx):
        fake_backend.add("B", "1.0")
        selection = seed_selection(scan_all(make_ctx("A", "B")))
        assert selection.desired == {"A": False, "B": True}


class TestKeyBindings:
    """Test key-to-action mapping of the curses view."""

    def test_keys(self):
        import curses  # pylint: disable=import-outside-toplevel
        assert action_for_key(curses.KEY_LEFT) is SelectorAction.LEFT
        assert action_for_key(ord(" ")) is SelectorAction.TOGGLE
        assert action_for_key(ord("s")) is SelectorAction.TOGGLE_SCOPE
        assert action_for_key(10) is SelectorAction.COMMIT
        assert action_for_key(27) is SelectorAction.CANCEL
        assert action_for_key(ord("x")) is None


class TestPlanAndApply:
    """Test diffing the selection and applying the batches."""

    def test_commit_diff(self, fake_backend, make_ctx):
        fake_backend.add("B", "1.0")
        ctx = make_ctx("A", "B")

        plan = plan_changes(ctx, SelectionState({"A": True, "B": False}))

        assert [d.name for d in plan.install] == ["A"]
        assert [r.name for r in plan.uninstall] == ["B"]

    def test_unchanged_selection_is_empty_plan(self, fake_backend, make_ctx):
        fake_backend.add("B", "1.0")
        plan = plan_changes(make_ctx("A", "B"), SelectionState({"A": False, "B": True}))
        assert plan.is_empty

    def test_install_before_uninstall(self, fake_backend, make_ctx):
        fake_backend.add("B", "1.0")
        fake_backend.remote["a"] = "2.0"
        ctx = make_ctx("A", "B")
        plan = plan_changes(ctx, SelectionState({"A": True, "B": False}))

        outcomes = apply_plan(ctx, plan, InstallScope.ALL_USERS)

        assert fake_backend.mutations() == [("install", "A", "2.0"), ("uninstall", "B", "1.0")]
        assert [o.describe() for o in outcomes] == ["installed: A 2.0", "uninstalled: B 1.0"]
        assert fake_backend.records[-1].scope is InstallScope.ALL_USERS

    def test_dependencies_then_module_itself(self, fake_backend, make_ctx):
        fake_backend.add("Graph", "2.0", dependencies=["Graph.Auth", "Graph.Core"])
        fake_backend.add("Graph.Auth", "2.0")
        fake_backend.add("Graph.Core", "2.0")
        fake_backend.fail("uninstall", "Graph.Auth", BackendDependencyError("required by Graph.Users"))
        ctx = make_ctx("Graph")
        plan = plan_changes(ctx, SelectionState({"Graph": False}))

        outcomes = apply_plan(ctx, plan, InstallScope.CURRENT_USER)

        assert [(o.name, o.ok) for o in outcomes] == [
            ("Graph.Auth", False), ("Graph.Core", True), ("Graph", True),
        ]
        assert fake_backend.versions_of("Graph") == []

    def test_install_failure_does_not_stop_batch(self, fake_backend, make_ctx):
        fake_backend.fail("install", "A", BackendPermissionError("Administrator rights are required"))
        ctx = make_ctx("A", "C")
        plan = ChangePlan(install=ctx.catalog)

        outcomes = apply_plan(ctx, plan, InstallScope.ALL_USERS)

        assert [(o.name, o.ok, o.kind) for o in outcomes] == [("A", False, "permission"), ("C", True, None)]

    def test_other_registry_copy_survives(self, fake_backend, make_ctx):
        fake_backend.add("B", "1.0")
        fake_backend.add("B", "1.1-preview2")
        fake_backend.add("B", "5.0", repository="https://www.poshtestgallery.com/api/v2")
        ctx = make_ctx("B")
        plan = plan_changes(ctx, SelectionState({"B": False}))

        outcomes = apply_plan(ctx, plan, InstallScope.CURRENT_USER)

        assert fake_backend.mutations() == [("uninstall", "B", "1.1-preview2"), ("uninstall", "B", "1.0")]
        assert all(o.ok for o in outcomes)
        assert fake_backend.versions_of("B") == ["5.0"]

    def test_catalog_dependency_uses_its_own_registry(self, fake_backend, make_ctx):
        testing = "https://www.poshtestgallery.com/api/v2"
        fake_backend.add("Graph", "2.0", dependencies=["Graph.Auth"])
        fake_backend.add("Graph.Auth", "0.9", repository=testing)
        ctx = make_ctx("Graph", ModuleDescriptor("Graph.Auth", "Auth", testing))
        plan = plan_changes(ctx, SelectionState({"Graph": False}))

        apply_plan(ctx, plan, InstallScope.CURRENT_USER)

        assert fake_backend.mutations() == [("uninstall", "Graph.Auth", "0.9"), ("uninstall", "Graph", "2.0")]

    def test_uninstall_keeps_each_record_scope(self, fake_backend, make_ctx):
        fake_backend.add("B", "1.0", scope=InstallScope.ALL_USERS)
        seen = []
        original = fake_backend.uninstall

        def spy(name, version="All", scope=None, prerelease=False):
            seen.append(scope)
            return original(name, version, scope=scope, prerelease=prerelease)

        fake_backend.uninstall = spy
        ctx = make_ctx("B")
        apply_plan(ctx, plan_changes(ctx, SelectionState({"B": False})), InstallScope.CURRENT_USER)

        assert seen == [InstallScope.ALL_USERS]


class TestRunSelector:
    """Test a full session with a scripted driver."""

    @staticmethod
    def _driver(*actions):
        def drive(model):
            for action in actions:
                model.dispatch(action)
        return drive

    def test_cancel_has_no_side_effects(self, fake_backend, make_ctx):
        fake_backend.add("B", "1.0")
        ctx = make_ctx("A", "B")

        outcomes = run_selector(ctx, driver=self._driver(
            SelectorAction.TOGGLE, SelectorAction.RIGHT, SelectorAction.TOGGLE, SelectorAction.CANCEL,
        ))

        assert outcomes == []
        assert fake_backend.mutations() == []

    def test_commit_applies_selection(self, fake_backend, make_ctx):
        fake_backend.add("B", "1.0")
        fake_backend.remote["a"] = "3.1"
        ctx = make_ctx("A", "B")

        outcomes = run_selector(ctx, driver=self._driver(
            SelectorAction.TOGGLE, SelectorAction.RIGHT, SelectorAction.TOGGLE,
            SelectorAction.TOGGLE_SCOPE, SelectorAction.COMMIT,
        ))

        assert [(o.action, o.name) for o in outcomes] == [("install", "A"), ("uninstall", "B")]
        assert ctx.scope is InstallScope.ALL_USERS

    def test_curses_driver_by_default(self, fake_backend, make_ctx):
        with patch("manager.tui.run_curses") as mock_curses:
            assert run_selector(make_ctx("A")) == []
        mock_curses.assert_called_once()

    def test_listing_failure_leaves_module_out(self, fake_backend, make_ctx, caplog):
        fake_backend.add("B", "1.0")
        fake_backend.fail("list", "A", BackendUnknownError("listing broke"))
        seen = []

        def drive(model):
            seen.extend(e.name for e in model.entries)
            model.dispatch(SelectorAction.TOGGLE)
            model.dispatch(SelectorAction.COMMIT)

        outcomes = run_selector(make_ctx("A", "B"), driver=drive)

        assert seen == ["B"]
        assert [(o.action, o.name, o.ok) for o in outcomes] == [("uninstall", "B", True)]
        assert "listing broke" in caplog.text
