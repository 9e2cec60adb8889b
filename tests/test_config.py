"""
Unit tests for configuration module.
"""
import pytest
import os
from unittest.mock import patch
from config import Config, get_config


class TestConfig:
    """Tests for Config class."""

    @patch.dict(os.environ, {
        'DYNAMODB_TABLE': 'test-table',
    }, clear=True)
    def test_from_env_minimal(self):
        """Test Config.from_env with only the table name set."""
        config = Config.from_env()
        assert config.dynamodb_table == 'test-table'
        assert config.idempotency_table == ''
        assert config.ses_from_email == 'noreply@projecthub.com'  # default
        assert config.app_url == 'http://localhost:3000'  # default
        assert config.slack_webhook_url is None
        assert config.invitation_ttl_days == 7
        assert config.trial_days == 14
        assert config.aws_region == 'us-east-1'  # default
        assert config.log_level == 'INFO'  # default

    @patch.dict(os.environ, {
        'DYNAMODB_TABLE': 'test-table',
        'IDEMPOTENCY_TABLE': 'test-idempotency',
        'ATTACHMENTS_BUCKET': 'attachments',
        'EXPORT_BUCKET': 'exports',
        'SES_FROM_EMAIL': 'team@example.com',
        'APP_URL': 'https://app.example.com/',
        'SLACK_WEBHOOK_URL': 'https://hooks.slack.com/services/T/B/X',
        'INVITATION_TTL_DAYS': '3',
        'TRIAL_DAYS': '30',
        'WEBHOOK_TIMEOUT_SECONDS': '5',
        'AWS_REGION': 'us-west-2',
        'LOG_LEVEL': 'debug',
    }, clear=True)
    def test_from_env_all_variables(self):
        """Test Config.from_env with all variables set."""
        config = Config.from_env()
        assert config.idempotency_table == 'test-idempotency'
        assert config.attachments_bucket == 'attachments'
        assert config.export_bucket == 'exports'
        assert config.ses_from_email == 'team@example.com'
        assert config.app_url == 'https://app.example.com'  # trailing slash stripped
        assert config.slack_webhook_url == 'https://hooks.slack.com/services/T/B/X'
        assert config.invitation_ttl_days == 3
        assert config.trial_days == 30
        assert config.webhook_timeout_seconds == 5
        assert config.aws_region == 'us-west-2'
        assert config.log_level == 'DEBUG'

    @patch.dict(os.environ, {}, clear=True)
    def test_from_env_missing_required(self):
        """Test Config.from_env raises error when the table name is missing."""
        with pytest.raises(ValueError, match="DYNAMODB_TABLE"):
            Config.from_env()

    @patch.dict(os.environ, {
        'DYNAMODB_TABLE': 'test-table',
        'LOG_LEVEL': 'INVALID',
    }, clear=True)
    def test_from_env_invalid_log_level(self):
        """Test Config.from_env raises error for invalid log level."""
        with pytest.raises(ValueError, match="LOG_LEVEL"):
            Config.from_env()

    @pytest.mark.parametrize('value', ['abc', '0', '-2'])
    def test_from_env_invalid_ttl(self, value):
        """Invitation TTL must be a positive integer."""
        with patch.dict(os.environ, {
            'DYNAMODB_TABLE': 'test-table',
            'INVITATION_TTL_DAYS': value,
        }, clear=True):
            with pytest.raises(ValueError, match="INVITATION_TTL_DAYS"):
                Config.from_env()

    @patch.dict(os.environ, {
        'DYNAMODB_TABLE': 'test-table',
    })
    def test_get_config_singleton(self):
        """Test get_config returns singleton instance."""
        import config
        config._config = None

        config1 = get_config()
        config2 = get_config()

        assert config1 is config2
