"""Reasons a run can be aborted before an exit status is resolved."""


class RunAborted(Exception):
    """Base class for every condition that stops the pipeline with an error status."""

    @property
    def reason(self) -> str:
        return str(self) or type(self).__name__


class ConfigurationError(RunAborted):
    pass


class VersionNotFound(RunAborted):
    pass


class MalformedVersion(RunAborted):
    pass


class UnsupportedVersion(RunAborted):
    pass


class AutomationFailure(RunAborted):
    """The build automation layer raised or could not be reached."""
