"""Unit tests for the exception hierarchy"""
import logging
from datetime import datetime

from breed_load.exceptions import BreedLoadError, ConfigurationError, ThresholdSyntaxError


class TestBreedLoadError:
    """Test base exception class"""

    def test_basic_exception(self):
        error = BreedLoadError("Test error")
        assert error.message == "Test error"
        assert str(error) == "Test error"
        assert error.context == {}
        assert isinstance(error.timestamp, datetime)

    def test_exception_with_cause(self):
        original_error = OSError("disk full")
        error = BreedLoadError(message="Report failed", operation="handle_summary", cause=original_error)
        assert error.cause is original_error
        assert error.operation == "handle_summary"

    def test_to_dict(self):
        error = BreedLoadError("Boom", operation="op", context={"k": "v"})
        data = error.to_dict()
        assert data["error"] == "BreedLoadError"
        assert data["message"] == "Boom"
        assert data["context"] == {"k": "v"}
        assert "timestamp" in data

    def test_logs_on_creation(self, caplog):
        with caplog.at_level(logging.ERROR, logger="breed_load.exceptions"):
            BreedLoadError("Logged error", operation="test")
        assert "BreedLoadError: Logged error" in caplog.text


class TestConfigurationError:
    def test_config_key(self):
        error = ConfigurationError("Bad seed", config_key="LOAD_TEST_SEED")
        assert error.config_key == "LOAD_TEST_SEED"
        assert error.context["config_key"] == "LOAD_TEST_SEED"
        assert isinstance(error, BreedLoadError)


class TestThresholdSyntaxError:
    def test_expression_in_context(self):
        error = ThresholdSyntaxError("Invalid threshold", expression="rate<<1")
        assert error.expression == "rate<<1"
        assert error.config_key == "thresholds"
        assert error.context == {"expression": "rate<<1", "config_key": "thresholds"}
        assert isinstance(error, ConfigurationError)
