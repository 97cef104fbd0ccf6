"""
Utility modules for the return-type rewriter.
"""

from explicit_return.utils.logging import (
    get_logger,
    setup_logging,
    LogContext,
    log_phase_transition,
    log_annotation_added,
    log_error_with_context,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "log_phase_transition",
    "log_annotation_added",
    "log_error_with_context",
]
