"""Visual Studio DTE automation over COM (Windows only, via pywin32)."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from tc_static_analysis.core.version import Version
from tc_static_analysis.errors import AutomationFailure
from tc_static_analysis.models import DiagnosticRecord, Severity

logger = logging.getLogger(__name__)

_PROG_ID_PREFIX = "VisualStudio.DTE."
_IS_WINDOWS = sys.platform == "win32"


def prog_id_for(ide_version: Version) -> str:
    major, minor = ide_version.parts[:2]
    return f"{_PROG_ID_PREFIX}{major}.{minor}"


def _dispatch(prog_id: str) -> Any:
    import pywintypes
    import win32com.client

    try:
        return win32com.client.Dispatch(prog_id)
    except pywintypes.com_error as exc:
        raise AutomationFailure(f"Unable to find type from ProgID: {prog_id}") from exc


def _to_record(item: Any) -> DiagnosticRecord:
    return DiagnosticRecord(
        description=str(item.Description),
        severity=Severity(int(item.ErrorLevel)),
        source_file=str(item.FileName) if item.FileName else None,
    )


class DteBuildSession:
    """An open Visual Studio instance with the solution loaded."""

    def __init__(self, dte: Any) -> None:
        self._dte = dte
        self._closed = False

    def set_tool_version(self, version: str) -> None:
        remote_manager = self._dte.GetObject("TcRemoteManager")
        remote_manager.Version = version
        logger.debug("TcRemoteManager version set to %s", version)

    def clean(self) -> None:
        self._dte.Solution.SolutionBuild.Clean(True)

    def build(self) -> None:
        self._dte.Solution.SolutionBuild.Build(True)

    def list_diagnostics(self) -> Sequence[DiagnosticRecord]:
        items = self._dte.ToolWindows.ErrorList.ErrorItems
        # ErrorItems is a 1-based COM collection
        return [_to_record(items.Item(i)) for i in range(1, items.Count + 1)]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._dte.Quit()
        logger.debug("Visual Studio instance closed")


class DteBuildAutomation:
    """Launch the Visual Studio version the solution was created with."""

    def __init__(self, ide_version: Version) -> None:
        self.prog_id = prog_id_for(ide_version)

    def open(self, solution_path: Path) -> DteBuildSession:
        if not _IS_WINDOWS:
            raise AutomationFailure(f"{self.prog_id} automation is only available on Windows")
        dte = _dispatch(self.prog_id)
        session = DteBuildSession(dte)
        try:
            dte.SuppressUI = True
            dte.MainWindow.Visible = False
            dte.Solution.Open(str(solution_path.resolve()))
        except Exception:
            try:
                session.close()
            except Exception:
                logger.warning("Quitting %s after a failed open failed", self.prog_id, exc_info=True)
            raise
        logger.info("Opened %s with %s", solution_path, self.prog_id)
        return session


# IOleMessageFilter return codes (objidl.h)
SERVERCALL_ISHANDLED = 0
SERVERCALL_RETRYLATER = 2
PENDINGMSG_WAITDEFPROCESS = 2
_RETRY_DELAY_MS = 99
_CANCEL_CALL = -1


class RetryingMessageFilter:
    """IOleMessageFilter that retries calls Visual Studio rejects while busy.

    Without it, DTE calls made during a build fail with RPC_E_CALL_REJECTED.
    """

    _public_methods_ = ["HandleInComingCall", "RetryRejectedCall", "MessagePending"]

    def HandleInComingCall(  # noqa: N802
        self, call_type: int, caller: Any, tick_count: int, interface_info: Any
    ) -> int:
        return SERVERCALL_ISHANDLED

    def RetryRejectedCall(self, callee: Any, tick_count: int, reject_type: int) -> int:  # noqa: N802
        if reject_type == SERVERCALL_RETRYLATER:
            return _RETRY_DELAY_MS
        return _CANCEL_CALL

    def MessagePending(self, callee: Any, tick_count: int, pending_type: int) -> int:  # noqa: N802
        return PENDINGMSG_WAITDEFPROCESS


class ComMessageFilter:
    """Install ``RetryingMessageFilter`` on the calling thread for the build's duration."""

    def __init__(self) -> None:
        self._registered = False
        self._previous: Any = None

    def register(self) -> None:
        if not _IS_WINDOWS:
            raise AutomationFailure("COM automation is only available on Windows")
        import pythoncom
        from win32com.server.util import wrap

        pythoncom.CoInitialize()
        handler = RetryingMessageFilter()
        handler._com_interfaces_ = [pythoncom.IID_IMessageFilter]  # type: ignore[attr-defined]
        self._previous = pythoncom.CoRegisterMessageFilter(wrap(handler, pythoncom.IID_IMessageFilter))
        self._registered = True
        logger.debug("COM message filter registered")

    def revoke(self) -> None:
        if not self._registered:
            return
        import pythoncom

        try:
            pythoncom.CoRegisterMessageFilter(self._previous)
        finally:
            self._previous = None
            self._registered = False
            pythoncom.CoUninitialize()
        logger.debug("COM message filter revoked")
