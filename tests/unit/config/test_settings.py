"""Tests for configuration settings.

Tests the Config class and HELM_ environment variable handling.
"""

import os
import pytest
from pathlib import Path
from unittest.mock import patch

from helm_ai.common.config.settings import (
    Config,
    Environment,
    LogLevel,
    AuditStorageType,
    get_config,
    reset_config,
)
from helm_ai.common.constants import AuditConstants, ReasoningConstants


@pytest.fixture
def memory_env(tmp_path):
    """Minimal environment that keeps Config from touching the working dir."""
    return {
        "HELM_AUDIT_STORAGE_TYPE": "memory",
        "HELM_AUDIT_LOG_DIR": str(tmp_path / "audit"),
    }


class TestEnums:
    """Tests for configuration enums."""

    def test_environment_from_string(self):
        assert Environment("production") == Environment.PRODUCTION

    def test_storage_types(self):
        assert AuditStorageType("local") == AuditStorageType.LOCAL
        assert AuditStorageType("s3") == AuditStorageType.S3
        assert AuditStorageType("memory") == AuditStorageType.MEMORY


class TestConfig:
    """Tests for Config class."""

    def test_default_config(self, memory_env):
        """Defaults apply when nothing else is set."""
        with patch.dict(os.environ, memory_env, clear=True):
            config = Config()

            assert config.environment == Environment.DEVELOPMENT
            assert config.debug is False
            assert config.log_level == LogLevel.INFO
            assert config.api_port == 8000
            assert config.reasoning_api_key is None
            assert config.reasoning_api_url == ReasoningConstants.DEFAULT_API_URL
            assert config.reasoning_model == ReasoningConstants.DEFAULT_MODEL
            assert config.reasoning_timeout_seconds == ReasoningConstants.TIMEOUT_SECONDS
            assert config.policy_file is None
            assert config.audit_background_writer is False

    def test_reasoning_settings_from_env(self, memory_env):
        """Reasoning service settings come from HELM_ variables."""
        env = dict(memory_env, **{
            "HELM_REASONING_API_KEY": "xai-secret",
            "HELM_REASONING_MODEL": "grok-test",
            "HELM_REASONING_TIMEOUT_SECONDS": "12.5",
        })
        with patch.dict(os.environ, env, clear=True):
            config = Config()

            assert config.reasoning_api_key == "xai-secret"
            assert config.reasoning_model == "grok-test"
            assert config.reasoning_timeout_seconds == 12.5
            assert config.reasoning_configured is True

    def test_legacy_credential_names(self, memory_env):
        """GROK_API_KEY and AUDIT_SECRET are honoured as fallbacks."""
        env = dict(memory_env, GROK_API_KEY="legacy-key", AUDIT_SECRET="legacy-secret")
        with patch.dict(os.environ, env, clear=True):
            config = Config()

            assert config.reasoning_api_key == "legacy-key"
            assert config.audit_secret == "legacy-secret"

    def test_secrets_not_in_repr(self, memory_env):
        """Credentials never appear in the config repr."""
        env = dict(memory_env, HELM_REASONING_API_KEY="xai-secret", HELM_AUDIT_SECRET="sign-me")
        with patch.dict(os.environ, env, clear=True):
            text = repr(Config())

            assert "xai-secret" not in text
            assert "sign-me" not in text

    def test_default_signing_key_detection(self, memory_env):
        with patch.dict(os.environ, memory_env, clear=True):
            assert Config().uses_default_signing_key is True

        env = dict(memory_env, HELM_AUDIT_SECRET=AuditConstants.DEFAULT_SIGNING_KEY)
        with patch.dict(os.environ, env, clear=True):
            assert Config().uses_default_signing_key is True

        env = dict(memory_env, HELM_AUDIT_SECRET="real-secret")
        with patch.dict(os.environ, env, clear=True):
            assert Config().uses_default_signing_key is False

    def test_s3_requires_bucket(self, memory_env):
        """S3 storage without a bucket is rejected."""
        env = dict(memory_env, HELM_AUDIT_STORAGE_TYPE="s3")
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match="HELM_AUDIT_S3_BUCKET"):
                Config()

    def test_non_positive_timeout_rejected(self, memory_env):
        env = dict(memory_env, HELM_REASONING_TIMEOUT_SECONDS="0")
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValueError, match="TIMEOUT"):
                Config()

    def test_local_storage_creates_log_dir(self, tmp_path):
        """Local storage creates the audit directory."""
        log_dir = tmp_path / "nested" / "audit"
        env = {"HELM_AUDIT_STORAGE_TYPE": "local", "HELM_AUDIT_LOG_DIR": str(log_dir)}
        with patch.dict(os.environ, env, clear=True):
            Config()

        assert log_dir.is_dir()

    def test_policy_file_from_env(self, memory_env, tmp_path):
        policy = tmp_path / "policy.yaml"
        env = dict(memory_env, HELM_POLICY_FILE=str(policy))
        with patch.dict(os.environ, env, clear=True):
            assert Config().policy_file == Path(policy)

    def test_is_production(self, memory_env):
        env = dict(memory_env, HELM_ENVIRONMENT="production")
        with patch.dict(os.environ, env, clear=True):
            config = Config()

            assert config.is_production is True


class TestGetConfig:
    """Tests for the config singleton."""

    def test_singleton_until_reset(self, memory_env):
        reset_config()
        with patch.dict(os.environ, memory_env, clear=True):
            first = get_config()
            assert get_config() is first

            reset_config()
            assert get_config() is not first
        reset_config()
