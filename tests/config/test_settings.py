import pytest
from aws_cdk import App

from infrastructure.lib.config.errors import ConfigurationError, require_context
from infrastructure.lib.config.settings import PipelineSettings


class TestPipelineSettings:
    """Test suite for environment-variable settings."""

    def test_from_env_reads_known_variables(self):
        """Test that known variables are picked up and unknown ones ignored."""
        # When
        settings = PipelineSettings.from_env(
            {"repo_owner": "example-org", "region": "us-east-1", "UNRELATED": "x"}
        )

        # Then
        assert settings.repo_owner == "example-org"
        assert settings.region == "us-east-1"
        assert settings.base_domain == ""

    def test_branch_defaults_to_trunk(self):
        """Test that an unset branch keeps its default."""
        # When
        settings = PipelineSettings.from_env({"branch": ""})

        # Then
        assert settings.branch == "trunk"

    def test_connection_arn(self, settings):
        """Test that the CodeStar connection ARN is built from region and connection id."""
        # When
        arn = settings.connection_arn("123456789012")

        # Then
        assert arn == "arn:aws:codestar-connections:us-east-1:123456789012:connection/abcd-1234"

    def test_connection_arn_requires_connection_id(self):
        """Test that a missing connection id is a configuration error."""
        # Given
        settings = PipelineSettings(region="us-east-1")

        # When/Then
        with pytest.raises(ConfigurationError, match="codestar_connectionid"):
            settings.connection_arn("123456789012")


class TestRequireContext:
    """Test suite for required context values."""

    def test_returns_context_value(self):
        # Given
        app = App(context={"appName": "test-app"})

        # Then
        assert require_context(app, "appName") == "test-app"

    def test_missing_context_value_raises(self):
        # Given
        app = App()

        # When/Then
        with pytest.raises(ConfigurationError, match="Missing required context value 'appName'"):
            require_context(app, "appName")

    def test_configuration_error_is_a_value_error(self):
        assert issubclass(ConfigurationError, ValueError)
