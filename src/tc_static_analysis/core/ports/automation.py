from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from tc_static_analysis.models import DiagnosticRecord


class BuildSession(Protocol):
    def set_tool_version(self, version: str) -> None: ...

    def clean(self) -> None: ...

    def build(self) -> None: ...

    def list_diagnostics(self) -> Sequence[DiagnosticRecord]: ...

    def close(self) -> None: ...


class BuildAutomation(Protocol):
    def open(self, solution_path: Path) -> BuildSession: ...


class MessageFilter(Protocol):
    def register(self) -> None: ...

    def revoke(self) -> None: ...
