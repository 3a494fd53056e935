"""
Tests for logging configuration.
"""

import logging
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from interceptly.logging_config import SetupServerNoiseFilter, get_logging_config


def make_record(name, message, level=logging.INFO):
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


class TestSetupServerNoiseFilter:
    def test_drops_lifecycle_messages(self):
        noise_filter = SetupServerNoiseFilter()

        assert noise_filter.filter(make_record("uvicorn.error", "Started server process [123]")) is False
        assert noise_filter.filter(make_record("uvicorn.error", "Shutting down")) is False
        assert noise_filter.filter(
            make_record("uvicorn.error", "Uvicorn running on http://127.0.0.1:9001")
        ) is False

    def test_keeps_errors(self):
        noise_filter = SetupServerNoiseFilter()

        assert noise_filter.filter(
            make_record("uvicorn.error", "Exception in ASGI application", logging.ERROR)
        ) is True

    def test_keeps_other_loggers(self):
        noise_filter = SetupServerNoiseFilter()

        assert noise_filter.filter(make_record("interceptly.setup", "Shutting down")) is True


class TestGetLoggingConfig:
    def test_level_applies_to_package_logger(self):
        config = get_logging_config("DEBUG")

        assert config["loggers"]["interceptly"]["level"] == "DEBUG"
        assert config["loggers"]["uvicorn.error"]["level"] == "INFO"

    def test_filter_attached_to_default_handler(self):
        config = get_logging_config()

        assert config["handlers"]["default"]["filters"] == ["setup_server_filter"]
        assert config["filters"]["setup_server_filter"]["()"] is SetupServerNoiseFilter
        assert config["disable_existing_loggers"] is False
