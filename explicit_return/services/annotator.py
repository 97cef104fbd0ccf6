"""
Rewrite entry point.

``rewrite`` is a pure function from source text to source text: every call
builds its own Program Context, and nothing is cached between calls.
"""

from typing import Optional

from explicit_return.analyzers.program import ProgramContext
from explicit_return.config import Settings, settings as default_settings
from explicit_return.models.rewrite import RewriteResult
from explicit_return.services.rewriter import AnnotationRewriter
from explicit_return.services.serializer import Serializer
from explicit_return.utils.logging import get_logger, log_phase_transition

logger = get_logger(__name__)


def annotate(
    source_text: str,
    dialect: str = "typescript",
    settings: Optional[Settings] = None,
    file_name: Optional[str] = None,
) -> RewriteResult:
    """
    Parse, type-check and collect return-type annotations for a source file.

    Raises:
        SourceParseError: If the source text does not parse cleanly
    """
    settings = settings or default_settings
    file_name = file_name or settings.file_name

    log_phase_transition(logger, file_name, "check", "started")
    context = ProgramContext(source_text, dialect=dialect, settings=settings, file_name=file_name)
    log_phase_transition(logger, file_name, "check", "completed")

    log_phase_transition(logger, file_name, "rewrite", "started")
    result = AnnotationRewriter(context).rewrite()
    log_phase_transition(logger, file_name, "rewrite", "completed")

    logger.info(
        f"Annotated {result.annotation_count} function(s) in {file_name}",
        extra={
            "file_name": file_name,
            "annotations": result.annotation_count,
            "skipped": result.skipped_count,
        },
    )
    return result


def rewrite(
    source_text: str,
    dialect: str = "typescript",
    settings: Optional[Settings] = None,
    file_name: Optional[str] = None,
) -> str:
    """
    Insert inferred return-type annotations into a TypeScript source file.

    Args:
        source_text: Complete text of one file
        dialect: 'typescript' or 'tsx'
        settings: Rewriter settings; the module-level settings by default
        file_name: Name used in errors and logs

    Returns:
        The full annotated source text

    Raises:
        SourceParseError: If the source text does not parse cleanly
    """
    settings = settings or default_settings
    result = annotate(source_text, dialect=dialect, settings=settings, file_name=file_name)

    log_phase_transition(logger, file_name or settings.file_name, "serialize", "started")
    text = Serializer(settings).serialize(result)
    log_phase_transition(logger, file_name or settings.file_name, "serialize", "completed")
    return text
