from collections.abc import Iterable, Sequence
from pathlib import Path

from tc_static_analysis.models import DiagnosticRecord


class InMemoryBuildSession:
    def __init__(self, owner: "InMemoryBuildAutomation") -> None:
        self._owner = owner

    def _step(self, name: str) -> None:
        self._owner.calls.append(name)
        if self._owner.fail_on == name:
            raise RuntimeError(f"simulated failure in {name}")

    def set_tool_version(self, version: str) -> None:
        self._step("set_tool_version")
        self._owner.tool_version = version

    def clean(self) -> None:
        self._step("clean")

    def build(self) -> None:
        self._step("build")

    def list_diagnostics(self) -> Sequence[DiagnosticRecord]:
        self._step("list_diagnostics")
        return list(self._owner.diagnostics)

    def close(self) -> None:
        self._owner.calls.append("close")


class InMemoryBuildAutomation:
    """Build automation that replays a fixed diagnostic list.

    ``fail_on`` names a step (``open``, ``clean``, ``build`` ...) that raises.
    """

    def __init__(self, diagnostics: Iterable[DiagnosticRecord] = (), fail_on: str | None = None) -> None:
        self.diagnostics = list(diagnostics)
        self.fail_on = fail_on
        self.calls: list[str] = []
        self.solution_path: Path | None = None
        self.tool_version: str | None = None

    def open(self, solution_path: Path) -> InMemoryBuildSession:
        self.calls.append("open")
        if self.fail_on == "open":
            raise RuntimeError("simulated failure in open")
        self.solution_path = solution_path
        return InMemoryBuildSession(self)


class NullMessageFilter:
    def __init__(self) -> None:
        self.registered = False

    def register(self) -> None:
        self.registered = True

    def revoke(self) -> None:
        self.registered = False
