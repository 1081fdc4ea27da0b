"""Run pipeline: validate inputs, gate on versions, build, then reduce diagnostics to an exit status."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from tc_static_analysis.core.diagnostics import classify, resolve_exit_status
from tc_static_analysis.core.ports.automation import BuildAutomation, BuildSession, MessageFilter
from tc_static_analysis.core.version import (
    MIN_TC_VERSION,
    PROJECT_VERSION,
    SOLUTION_VERSION,
    Version,
    is_supported,
    read_version,
)
from tc_static_analysis.errors import AutomationFailure, ConfigurationError, RunAborted, UnsupportedVersion
from tc_static_analysis.models import ClassificationCounts, DiagnosticRecord, ExitStatus, RunConfig

logger = logging.getLogger(__name__)

AutomationFactory = Callable[[Version], BuildAutomation]


def _release_quietly(release: Callable[[], None], what: str) -> None:
    """Run a cleanup step while another exception is propagating; log instead of masking it."""
    try:
        release()
    except Exception:
        logger.warning("%s failed", what, exc_info=True)


class RunState(Enum):
    INIT = "init"
    PATHS_VALIDATED = "paths_validated"
    VERSIONS_EXTRACTED = "versions_extracted"
    GATE_CHECKED = "gate_checked"
    BUILDING = "building"
    DIAGNOSTICS_COLLECTED = "diagnostics_collected"
    RESOLVED = "resolved"
    ABORTED = "aborted"


@dataclass(frozen=True)
class RunResult:
    status: ExitStatus
    state: RunState
    ide_version: Version | None = None
    platform_version: Version | None = None
    counts: ClassificationCounts | None = None
    reason: str | None = None


class BuildOrchestrator:
    """Sequence one static-analysis run.

    ``automation_factory`` receives the Visual Studio version read from the
    solution file and returns the automation used for the build. The optional
    ``message_filter`` is registered only while the build session is alive.
    """

    def __init__(self, automation_factory: AutomationFactory, message_filter: MessageFilter | None = None) -> None:
        self._automation_factory = automation_factory
        self._message_filter = message_filter
        self.state = RunState.INIT

    def _enter(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self.state.name, state.name)
        self.state = state

    def validate_paths(self, config: RunConfig) -> None:
        if not config.solution_path.is_file():
            raise ConfigurationError(f"Visual Studio solution {config.solution_path} does not exist")
        if not config.project_path.is_file():
            raise ConfigurationError(f"TwinCAT project file {config.project_path} does not exist")
        self._enter(RunState.PATHS_VALIDATED)

    def extract_versions(self, config: RunConfig) -> tuple[Version, Version]:
        ide_version = read_version(config.solution_path, SOLUTION_VERSION)
        platform_version = read_version(config.project_path, PROJECT_VERSION)
        self._enter(RunState.VERSIONS_EXTRACTED)
        return ide_version, platform_version

    def check_gate(self, platform_version: Version, minimum: Version = MIN_TC_VERSION) -> None:
        if not is_supported(platform_version, minimum):
            raise UnsupportedVersion(
                f"The detected TwinCAT version {platform_version} does not support TE1200 static code analysis; "
                f"the minimum version that supports TE1200 is {minimum}"
            )
        self._enter(RunState.GATE_CHECKED)

    @contextmanager
    def _filter_scope(self) -> Iterator[None]:
        if self._message_filter is None:
            yield
            return
        self._message_filter.register()
        try:
            yield
        except BaseException:
            _release_quietly(self._message_filter.revoke, "Revoking the message filter")
            raise
        self._message_filter.revoke()

    @contextmanager
    def _session(self, automation: BuildAutomation, solution_path: Path) -> Iterator[BuildSession]:
        session = automation.open(solution_path)
        try:
            yield session
        except BaseException:
            _release_quietly(session.close, "Closing the build session")
            raise
        session.close()

    def collect_diagnostics(
        self, config: RunConfig, ide_version: Version, platform_version: Version
    ) -> list[DiagnosticRecord]:
        """Clean and build the solution, returning the IDE's error list.

        The session and message filter are released on every exit path. Any
        failure raised by the automation layer surfaces as ``AutomationFailure``.
        """
        self._enter(RunState.BUILDING)
        try:
            with self._filter_scope():
                automation = self._automation_factory(ide_version)
                with self._session(automation, config.solution_path) as session:
                    session.set_tool_version(str(platform_version))
                    session.clean()
                    session.build()
                    diagnostics = list(session.list_diagnostics())
        except RunAborted:
            raise
        except Exception as exc:
            raise AutomationFailure(f"Build automation failed: {exc}") from exc
        self._enter(RunState.DIAGNOSTICS_COLLECTED)
        return diagnostics

    def resolve(
        self, diagnostics: Iterable[DiagnosticRecord], tag_prefix: str
    ) -> tuple[ClassificationCounts, ExitStatus]:
        counts = classify(diagnostics, tag_prefix)
        status = resolve_exit_status(counts)
        self._enter(RunState.RESOLVED)
        return counts, status

    def run(self, config: RunConfig) -> RunResult:
        self.state = RunState.INIT
        ide_version: Version | None = None
        platform_version: Version | None = None
        try:
            self.validate_paths(config)
            ide_version, platform_version = self.extract_versions(config)
            self.check_gate(platform_version)
            diagnostics = self.collect_diagnostics(config, ide_version, platform_version)
            counts, status = self.resolve(diagnostics, config.tag_prefix)
        except RunAborted as exc:
            logger.error("ERROR: %s", exc.reason)
            self._enter(RunState.ABORTED)
            return RunResult(
                status=ExitStatus.ERROR,
                state=RunState.ABORTED,
                ide_version=ide_version,
                platform_version=platform_version,
                reason=exc.reason,
            )
        return RunResult(
            status=status,
            state=self.state,
            ide_version=ide_version,
            platform_version=platform_version,
            counts=counts,
        )
