from tc_static_analysis.automation.dte import (
    ComMessageFilter,
    DteBuildAutomation,
    DteBuildSession,
    RetryingMessageFilter,
    prog_id_for,
)
from tc_static_analysis.automation.memory import (
    InMemoryBuildAutomation,
    InMemoryBuildSession,
    NullMessageFilter,
)

__all__ = [
    "ComMessageFilter",
    "DteBuildAutomation",
    "DteBuildSession",
    "InMemoryBuildAutomation",
    "InMemoryBuildSession",
    "NullMessageFilter",
    "RetryingMessageFilter",
    "prog_id_for",
]
