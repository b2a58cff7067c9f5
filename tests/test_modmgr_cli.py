"""Tests for the modmgr entry point: wiring, exports and exit codes."""

import json
import logging
from unittest.mock import patch

import pytest

import modmgr
from catalog import ModuleDescriptor
from constants import ExitCodes
from errors import BackendUnavailableError, RegistryUnavailable
from manager.selector import SelectorAction

GALLERY = "https://www.powershellgallery.com/api/v2"
CATALOG = (
    ModuleDescriptor("Az", "Azure", GALLERY),
    ModuleDescriptor("MSOnline", "MSOnline", GALLERY, replaced_by="Microsoft.Graph"),
)


@pytest.fixture(autouse=True)
def keep_test_logging():
    """Leave pytest's log handlers in place."""
    with patch("modmgr.configure_logging"):
        yield


@pytest.fixture
def wired(fake_backend, monkeypatch):
    """Patch the entry point so it runs against the in-memory backend."""
    monkeypatch.delenv("MODMGR_CONFIG", raising=False)
    with patch("modmgr.load_catalog", return_value=CATALOG), \
            patch("modmgr.PowerShellRunner"), \
            patch("modmgr.select_backend", return_value=fake_backend):
        yield fake_backend


def _exit_code(argv):
    with pytest.raises(SystemExit) as info:
        modmgr.main(argv)
    return info.value.code


class TestReportCommand:
    """Test the report action."""

    def test_success(self, wired):
        wired.add("Az", "2.0")
        wired.remote["az"] = "2.0"
        assert _exit_code(["report"]) == ExitCodes.SUCCESS.value

    def test_outdated_with_error_on_warnings(self, wired):
        wired.add("Az", "1.0")
        wired.remote["az"] = "2.0"
        assert _exit_code(["report", "--error-on-warnings"]) == ExitCodes.EXIT_WARNINGS.value
        assert _exit_code(["report"]) == ExitCodes.SUCCESS.value

    def test_registry_unreachable(self, wired):
        wired.add("Az", "1.0")
        wired.remote["az"] = RegistryUnavailable("down")
        assert _exit_code(["report"]) == ExitCodes.CONNECTION_ERROR.value

    def test_export_json_by_extension(self, wired, tmp_path):
        wired.add("Az", "1.0")
        wired.remote["az"] = "2.0"
        out = tmp_path / "report.json"
        assert _exit_code(["report", "-a", "-o", str(out)]) == ExitCodes.SUCCESS.value
        data = json.loads(out.read_text(encoding="utf-8"))
        assert [row["module"] for row in data] == ["Az", "MSOnline"]

    def test_export_csv_by_format(self, wired, tmp_path):
        out = tmp_path / "report.out"
        _exit_code(["report", "-o", str(out), "-f", "csv"])
        assert out.read_text(encoding="utf-8").startswith("Module,Description")


class TestBatchCommands:
    """Test update and clean wiring."""

    @patch("common.host.is_elevated", return_value=False)
    def test_update_not_elevated(self, _elevated, wired):
        wired.add("Az", "1.0")
        wired.remote["az"] = "2.0"
        assert _exit_code(["update"]) == ExitCodes.PRECONDITION_FAILED.value
        assert wired.mutations() == []

    @patch("common.host.count_host_sessions", return_value=1)
    @patch("common.host.is_elevated", return_value=True)
    def test_clean_failure_with_error_on_warnings(self, _elevated, _sessions, wired):
        from errors import BackendInUseError  # pylint: disable=import-outside-toplevel
        wired.add("Az", "1.0")
        wired.add("Az", "2.0")
        wired.fail("uninstall", "Az", BackendInUseError("currently in use"))
        assert _exit_code(["clean", "--error-on-warnings"]) == ExitCodes.EXIT_WARNINGS.value

    def test_select_requires_terminal(self, wired):
        with patch("modmgr.sys.stdin") as stdin:
            stdin.isatty.return_value = False
            assert _exit_code(["select"]) == ExitCodes.FILE_ERROR.value

    def test_select_logs_each_change_once(self, wired, caplog):
        def uninstall_az(model):
            model.dispatch(SelectorAction.TOGGLE)
            model.dispatch(SelectorAction.COMMIT)

        wired.add("Az", "1.0")
        with patch("modmgr.sys.stdin") as stdin, \
                patch("manager.tui.run_curses", side_effect=uninstall_az), \
                caplog.at_level(logging.INFO):
            stdin.isatty.return_value = True
            assert _exit_code(["select"]) == ExitCodes.SUCCESS.value

        assert wired.versions_of("Az") == []
        assert [r.getMessage() for r in caplog.records].count("uninstalled: Az 1.0") == 1


class TestStartupFailures:
    """Test fatal startup errors."""

    def test_bad_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MODMGR_CONFIG", raising=False)
        config = tmp_path / "bad.yml"
        config.write_text("backend: chocolatey\n", encoding="utf-8")
        assert _exit_code(["report", "-c", str(config)]) == ExitCodes.FILE_ERROR.value

    def test_missing_catalog(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MODMGR_CONFIG", raising=False)
        assert _exit_code(["report", "--catalog", str(tmp_path / "none.yaml")]) == ExitCodes.FILE_ERROR.value

    def test_no_powershell(self, monkeypatch):
        monkeypatch.delenv("MODMGR_CONFIG", raising=False)
        with patch("modmgr.PowerShellRunner", side_effect=BackendUnavailableError("no pwsh")):
            assert _exit_code(["report"]) == ExitCodes.FILE_ERROR.value
