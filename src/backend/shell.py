"""Run PowerShell scripts and read their JSON output.

Each call starts a fresh ``pwsh -NoProfile -NonInteractive`` process. The
script is wrapped so that terminating errors are reported on stderr and the
process exits non-zero; the caller maps the message to a BackendError kind.
"""
from __future__ import annotations

import json
import logging
import shutil
import subprocess
from typing import Any, List, Optional, Sequence

from common.logging_utils import extra_context, is_debug_enabled, Timer
from constants import Constants
from errors import BackendUnavailableError, BackendUnknownError, classify_backend_failure

logger = logging.getLogger(__name__)


def quote_ps(value: str) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def _wrap(script: str) -> str:
    return (
        "$ErrorActionPreference = 'Stop'; $ProgressPreference = 'SilentlyContinue'; "
        "try { " + script + " } catch { [Console]::Error.WriteLine($_.Exception.Message); exit 1 }"
    )


def find_powershell(candidates: Optional[Sequence[str]] = None) -> Optional[str]:
    """Return the path of the first PowerShell executable found on PATH."""
    for candidate in candidates or Constants.POWERSHELL_EXECUTABLES:
        path = shutil.which(candidate)
        if path:
            return path
    return None


class PowerShellRunner:
    """Execute PowerShell snippets in a child process.

    Args:
        executable: PowerShell executable name or path; discovered on PATH when omitted.
        timeout: Optional per-call timeout in seconds. None blocks until the call returns.
    """

    def __init__(self, executable: Optional[str] = None, timeout: Optional[float] = None):
        resolved = shutil.which(executable) if executable else find_powershell()
        if not resolved:
            raise BackendUnavailableError(
                f"No PowerShell executable found (looked for {executable or ', '.join(Constants.POWERSHELL_EXECUTABLES)})"
            )
        self.executable = resolved
        self.timeout = timeout

    def _command(self, script: str) -> List[str]:
        return [self.executable, "-NoLogo", "-NoProfile", "-NonInteractive", "-Command", _wrap(script)]

    def run(self, script: str, *, module: Optional[str] = None, version: Optional[str] = None) -> str:
        """Run ``script`` and return its stdout.

        Raises:
            BackendError: A classified subclass when the script fails.
        """
        with Timer() as t:
            try:
                proc = subprocess.run(  # noqa: S603
                    self._command(script),
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise BackendUnknownError(
                    f"PowerShell call timed out after {exc.timeout} seconds", module=module, version=version
                ) from exc
            except OSError as exc:
                raise BackendUnavailableError(str(exc), module=module, version=version) from exc

        if is_debug_enabled(logger):
            logger.debug(
                "PowerShell call",
                extra=extra_context(
                    event="backend_call",
                    component="shell",
                    target=module,
                    status_code=proc.returncode,
                    duration_ms=t.duration_ms(),
                ),
            )
        if proc.returncode != 0:
            message = (proc.stderr or proc.stdout or "").strip() or f"exit code {proc.returncode}"
            error_type = classify_backend_failure(message)
            raise error_type(message, module=module, version=version)
        return proc.stdout

    def run_json(self, script: str, *, module: Optional[str] = None, version: Optional[str] = None) -> List[Any]:
        """Run ``script`` piped through ConvertTo-Json and return a list of objects.

        An empty output yields an empty list; a single object is wrapped in a list.
        """
        output = self.run(
            f"@({script}) | ConvertTo-Json -Depth {Constants.JSON_DEPTH} -Compress",
            module=module,
            version=version,
        ).strip()
        if not output:
            return []
        try:
            data = json.loads(output)
        except json.JSONDecodeError as exc:
            raise BackendUnknownError(f"Unreadable backend output: {exc}", module=module, version=version) from exc
        if isinstance(data, list):
            return data
        return [data]

    def has_command(self, command: str) -> bool:
        """True when ``command`` resolves in a fresh PowerShell session."""
        output = self.run(
            f"[bool](Get-Command -Name {quote_ps(command)} -ErrorAction SilentlyContinue)"
        )
        return output.strip().lower() == "true"
