"""Tests for the Visual Studio DTE adapter with a mocked COM layer."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, call, patch

import pytest

from tc_static_analysis.automation.dte import (
    SERVERCALL_RETRYLATER,
    ComMessageFilter,
    DteBuildAutomation,
    DteBuildSession,
    RetryingMessageFilter,
    prog_id_for,
)
from tc_static_analysis.core.version import Version
from tc_static_analysis.errors import AutomationFailure
from tc_static_analysis.models import Severity


def _error_items(*items: Any) -> MagicMock:
    collection = MagicMock()
    collection.Count = len(items)
    collection.Item.side_effect = lambda i: items[i - 1]
    return collection


def test_prog_id_uses_major_and_minor() -> None:
    assert prog_id_for(Version.of(16, 0)) == "VisualStudio.DTE.16.0"
    assert prog_id_for(Version.of(17, 0, 31903, 59)) == "VisualStudio.DTE.17.0"


class TestDteBuildAutomation:
    def test_open_configures_ide_and_loads_solution(self, solution_file: Path) -> None:
        dte = MagicMock()
        with (
            patch("tc_static_analysis.automation.dte._IS_WINDOWS", True),
            patch("tc_static_analysis.automation.dte._dispatch", return_value=dte) as dispatch,
        ):
            session = DteBuildAutomation(Version.of(16, 0)).open(solution_file)

        dispatch.assert_called_once_with("VisualStudio.DTE.16.0")
        assert isinstance(session, DteBuildSession)
        assert dte.SuppressUI is True
        assert dte.MainWindow.Visible is False
        dte.Solution.Open.assert_called_once_with(str(solution_file.resolve()))

    def test_open_quits_ide_when_solution_fails_to_load(self, solution_file: Path) -> None:
        dte = MagicMock()
        dte.Solution.Open.side_effect = RuntimeError("solution is corrupt")
        with (
            patch("tc_static_analysis.automation.dte._IS_WINDOWS", True),
            patch("tc_static_analysis.automation.dte._dispatch", return_value=dte),
            pytest.raises(RuntimeError),
        ):
            DteBuildAutomation(Version.of(16, 0)).open(solution_file)

        dte.Quit.assert_called_once()

    def test_open_requires_windows(self, solution_file: Path) -> None:
        with (
            patch("tc_static_analysis.automation.dte._IS_WINDOWS", False),
            pytest.raises(AutomationFailure, match="only available on Windows"),
        ):
            DteBuildAutomation(Version.of(16, 0)).open(solution_file)


class TestDteBuildSession:
    def test_set_tool_version(self) -> None:
        dte = MagicMock()
        DteBuildSession(dte).set_tool_version("3.1.4024.1")

        dte.GetObject.assert_called_once_with("TcRemoteManager")
        assert dte.GetObject.return_value.Version == "3.1.4024.1"

    def test_clean_and_build_wait_for_completion(self) -> None:
        dte = MagicMock()
        session = DteBuildSession(dte)
        session.clean()
        session.build()

        dte.Solution.SolutionBuild.Clean.assert_called_once_with(True)
        dte.Solution.SolutionBuild.Build.assert_called_once_with(True)

    def test_list_diagnostics_maps_error_items(self) -> None:
        dte = MagicMock()
        dte.ToolWindows.ErrorList.ErrorItems = _error_items(
            SimpleNamespace(Description="SA0033: Unused variable", ErrorLevel=1, FileName="C:\\p\\MAIN.TcPOU"),
            SimpleNamespace(Description="Build started", ErrorLevel=0, FileName=""),
            SimpleNamespace(Description="SA0011: Useless scope", ErrorLevel=2, FileName=None),
        )

        records = DteBuildSession(dte).list_diagnostics()

        assert [r.severity for r in records] == [Severity.MEDIUM, Severity.LOW, Severity.HIGH]
        assert records[0].description == "SA0033: Unused variable"
        assert records[0].source_file == "C:\\p\\MAIN.TcPOU"
        assert records[1].source_file is None
        assert records[2].source_file is None

    def test_list_diagnostics_empty(self) -> None:
        dte = MagicMock()
        dte.ToolWindows.ErrorList.ErrorItems = _error_items()

        assert list(DteBuildSession(dte).list_diagnostics()) == []

    def test_close_quits_once(self) -> None:
        dte = MagicMock()
        session = DteBuildSession(dte)
        session.close()
        session.close()

        dte.Quit.assert_called_once()


class TestComMessageFilter:
    def test_revoke_without_register_is_noop(self) -> None:
        ComMessageFilter().revoke()

    def test_register_requires_windows(self) -> None:
        with (
            patch("tc_static_analysis.automation.dte._IS_WINDOWS", False),
            pytest.raises(AutomationFailure),
        ):
            ComMessageFilter().register()

    def test_register_installs_retrying_filter(self, com: SimpleNamespace) -> None:
        previous = object()
        com.pythoncom.CoRegisterMessageFilter.return_value = previous
        message_filter = ComMessageFilter()

        message_filter.register()

        com.pythoncom.CoInitialize.assert_called_once()
        handler, iid = com.util.wrap.call_args.args
        assert isinstance(handler, RetryingMessageFilter)
        assert iid is com.pythoncom.IID_IMessageFilter
        assert handler._com_interfaces_ == [com.pythoncom.IID_IMessageFilter]
        com.pythoncom.CoRegisterMessageFilter.assert_called_once_with(com.util.wrap.return_value)

        message_filter.revoke()

        assert com.pythoncom.CoRegisterMessageFilter.call_args_list[-1] == call(previous)
        com.pythoncom.CoUninitialize.assert_called_once()

    def test_revoke_restores_previous_filter_once(self, com: SimpleNamespace) -> None:
        message_filter = ComMessageFilter()
        message_filter.register()

        message_filter.revoke()
        message_filter.revoke()

        assert com.pythoncom.CoRegisterMessageFilter.call_count == 2
        com.pythoncom.CoUninitialize.assert_called_once()


@pytest.fixture
def com() -> Iterator[SimpleNamespace]:
    pythoncom = MagicMock()
    util = MagicMock()
    modules = {
        "pythoncom": pythoncom,
        "win32com": MagicMock(),
        "win32com.server": MagicMock(),
        "win32com.server.util": util,
    }
    with patch.dict(sys.modules, modules), patch("tc_static_analysis.automation.dte._IS_WINDOWS", True):
        yield SimpleNamespace(pythoncom=pythoncom, util=util)


class TestRetryingMessageFilter:
    def test_busy_callee_is_retried(self) -> None:
        assert RetryingMessageFilter().RetryRejectedCall(None, 0, SERVERCALL_RETRYLATER) == 99

    def test_rejected_call_is_cancelled(self) -> None:
        # SERVERCALL_REJECTED
        assert RetryingMessageFilter().RetryRejectedCall(None, 0, 1) == -1

    def test_incoming_calls_are_handled(self) -> None:
        assert RetryingMessageFilter().HandleInComingCall(0, None, 0, None) == 0

    def test_pending_messages_use_default_processing(self) -> None:
        assert RetryingMessageFilter().MessagePending(None, 0, 0) == 2
