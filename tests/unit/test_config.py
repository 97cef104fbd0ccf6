"""Unit tests for configuration management."""

import os
from unittest.mock import patch

import pytest

from explicit_return.config import Settings


def test_settings_defaults():
    """Test settings defaults match the checker's compatibility mode."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.log_level == "INFO"
        assert settings.strict_null_checks is False
        assert settings.max_truncation_length == 160
        assert settings.file_name == "temp.ts"
        assert settings.new_line == "\n"


def test_settings_from_environment():
    """Test settings loading from prefixed environment variables."""
    env_vars = {
        "EXPLICIT_RETURN_LOG_LEVEL": "DEBUG",
        "EXPLICIT_RETURN_STRICT_NULL_CHECKS": "true",
        "EXPLICIT_RETURN_MAX_TRUNCATION_LENGTH": "80",
        "EXPLICIT_RETURN_FILE_NAME": "widget.ts",
    }

    with patch.dict(os.environ, env_vars, clear=True):
        settings = Settings(_env_file=None)

        assert settings.log_level == "DEBUG"
        assert settings.strict_null_checks is True
        assert settings.max_truncation_length == 80
        assert settings.file_name == "widget.ts"


def test_settings_case_insensitive():
    """Test environment variable names are matched case-insensitively."""
    with patch.dict(os.environ, {"explicit_return_file_name": "lower.ts"}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.file_name == "lower.ts"


def test_settings_ignores_unprefixed_variables():
    """Test variables without the prefix do not leak into settings."""
    with patch.dict(os.environ, {"LOG_LEVEL": "ERROR", "FILE_NAME": "other.ts"}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.log_level == "INFO"
        assert settings.file_name == "temp.ts"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
