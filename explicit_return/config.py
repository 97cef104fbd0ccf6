"""
Rewriter configuration management.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Rewriter settings loaded from environment variables."""

    # Logging
    log_level: str = "INFO"

    # Type checking
    strict_null_checks: bool = False
    max_truncation_length: int = 160

    # Compilation unit
    file_name: str = "temp.ts"

    # Output
    new_line: str = "\n"

    class Config:
        env_prefix = "EXPLICIT_RETURN_"
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
