import logging
from collections.abc import Iterable

from tc_static_analysis.models import ClassificationCounts, DiagnosticRecord, ExitStatus, Severity

logger = logging.getLogger(__name__)

DEFAULT_TAG_PREFIX = "SA"


def _is_selected(item: DiagnosticRecord, tag_prefix: str) -> bool:
    return item.description.startswith(tag_prefix) and item.severity != Severity.LOW


def classify(items: Iterable[DiagnosticRecord], tag_prefix: str = DEFAULT_TAG_PREFIX) -> ClassificationCounts:
    """Count static-analysis warnings and errors.

    Only records whose description starts with *tag_prefix* and whose severity
    is above LOW take part; each of them is logged in input order.
    """
    warnings = 0
    errors = 0
    seen = 0
    for item in items:
        seen += 1
        if not _is_selected(item, tag_prefix):
            continue
        logger.info(
            "Description: %s | ErrorLevel: %s | Filename: %s",
            item.description,
            item.severity.name.capitalize(),
            item.source_file or "-",
        )
        if item.severity == Severity.MEDIUM:
            warnings += 1
        elif item.severity == Severity.HIGH:
            errors += 1
    logger.info("Errors count: %d (%d warnings, %d errors tagged %s)", seen, warnings, errors, tag_prefix)
    return ClassificationCounts(warnings=warnings, errors=errors)


def resolve_exit_status(counts: ClassificationCounts) -> ExitStatus:
    if counts.errors > 0:
        return ExitStatus.ERROR
    if counts.warnings > 0:
        return ExitStatus.UNSTABLE
    return ExitStatus.SUCCESS
