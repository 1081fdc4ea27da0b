"""Version discovery in solution/project descriptors and the minimum-version gate."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from itertools import zip_longest
from pathlib import Path

from tc_static_analysis.errors import ConfigurationError, MalformedVersion, VersionNotFound

logger = logging.getLogger(__name__)

_MIN_COMPONENTS = 2
_MAX_COMPONENTS = 4


@dataclass(frozen=True)
class Version:
    """Dotted numeric version with two to four components."""

    parts: tuple[int, ...]

    def __post_init__(self) -> None:
        if not _MIN_COMPONENTS <= len(self.parts) <= _MAX_COMPONENTS:
            raise ValueError(f"Version needs {_MIN_COMPONENTS}-{_MAX_COMPONENTS} components, got {len(self.parts)}")
        if any(p < 0 for p in self.parts):
            raise ValueError(f"Version components must be non-negative: {self.parts}")

    @classmethod
    def of(cls, *parts: int) -> Version:
        return cls(tuple(parts))

    @classmethod
    def parse(cls, text: str) -> Version:
        raw = text.strip().split(".")
        if not _MIN_COMPONENTS <= len(raw) <= _MAX_COMPONENTS:
            raise MalformedVersion(f"'{text}' is not a version with {_MIN_COMPONENTS}-{_MAX_COMPONENTS} components")
        if not all(p.isascii() and p.isdigit() for p in raw):
            raise MalformedVersion(f"'{text}' contains a non-numeric version component")
        return cls(tuple(int(p) for p in raw))

    def compare(self, other: Version) -> int:
        """Return -1, 0 or 1. Missing trailing components count as zero."""
        for mine, theirs in zip_longest(self.parts, other.parts, fillvalue=0):
            if mine != theirs:
                return -1 if mine < theirs else 1
        return 0

    def __str__(self) -> str:
        return ".".join(str(p) for p in self.parts)


MIN_TC_VERSION = Version.of(3, 1, 4022, 0)


def is_supported(detected: Version, minimum: Version = MIN_TC_VERSION) -> bool:
    """True when *detected* is at or above *minimum*."""
    return detected.compare(minimum) >= 0


@dataclass(frozen=True)
class VersionLocator:
    """Where a version lives in a line-oriented descriptor file.

    With ``prefix`` unset the value is whatever follows the last ``=`` on the
    matched line. Otherwise it is the text between the last ``prefix`` and the
    last ``suffix`` after it. ``components`` keeps only the leading N dotted
    components; anything after them is ignored unparsed.
    """

    marker: str
    source: str
    description: str
    prefix: str | None = None
    suffix: str | None = None
    components: int | None = None
    anchored: bool = False

    def matches(self, line: str) -> bool:
        if self.anchored:
            return line.startswith(self.marker)
        return self.marker in line

    def value_from(self, line: str) -> str:
        if self.prefix is None:
            idx = line.rfind("=")
            if idx < 0:
                raise MalformedVersion(f"{self.marker} line in {self.source} has no '=': {line!r}")
            return line[idx + 1 :].strip()

        start = line.rfind(self.prefix)
        if start < 0:
            raise MalformedVersion(f"{self.marker} line in {self.source} lacks {self.prefix!r}: {line!r}")
        value_start = start + len(self.prefix)
        end = line.rfind(self.suffix, value_start) if self.suffix else len(line)
        if end <= value_start:
            raise MalformedVersion(f"{self.marker} line in {self.source} has no value: {line!r}")
        return line[value_start:end]


SOLUTION_VERSION = VersionLocator(
    marker="VisualStudioVersion",
    source="Visual Studio solution file",
    description="visual studio version",
    components=2,
    anchored=True,
)

PROJECT_VERSION = VersionLocator(
    marker="TcVersion",
    source="TwinCAT project file",
    description="TcVersion",
    prefix='TcVersion="',
    suffix='">',
)


def extract_version(lines: Iterable[str], locator: VersionLocator) -> Version:
    """Parse the version from the first line carrying ``locator.marker``.

    Only the first matching line is considered. If its value cannot be parsed
    the result is ``MalformedVersion`` even when a later line would parse.
    """
    for line in lines:
        line = line.rstrip()
        if not locator.matches(line):
            continue
        value = locator.value_from(line)
        if locator.components is not None:
            parts = value.split(".")
            if len(parts) < locator.components:
                raise MalformedVersion(f"{locator.description} '{value}' in {locator.source} is incomplete")
            value = ".".join(parts[: locator.components])
        try:
            return Version.parse(value)
        except MalformedVersion as exc:
            raise MalformedVersion(f"Invalid {locator.description} in {locator.source}: {exc}") from exc
    raise VersionNotFound(f"Did not find {locator.description} in {locator.source}")


def read_version(path: Path, locator: VersionLocator) -> Version:
    try:
        with path.open(encoding="utf-8-sig", errors="replace") as fh:
            version = extract_version(fh, locator)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {locator.source} {path}: {exc}") from exc
    logger.info("In %s, found %s %s", locator.source, locator.description, version)
    return version
