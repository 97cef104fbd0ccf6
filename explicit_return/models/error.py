"""Error tracking data models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ErrorRecord(BaseModel):
    """Record of a rewrite that fell back to the original text."""

    phase: str
    error_type: str
    message: str
    file_path: Optional[str] = None
    stack_trace: Optional[str] = None
    timestamp: datetime
