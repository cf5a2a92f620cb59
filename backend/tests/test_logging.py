"""Tests for logging setup."""

import logging
from unittest.mock import patch

from app.config import Settings
from app.core.logging import NOISY_LOGGERS, configure_logging


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_quiets_third_party_loggers(self):
        with patch("logging.basicConfig") as basic_config:
            configure_logging(logging.INFO)

        basic_config.assert_called_once()
        assert basic_config.call_args.kwargs["level"] == logging.INFO
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_debug_setting_selects_debug_level(self):
        with patch("app.core.logging.get_settings", return_value=Settings(debug=True)), \
                patch("logging.basicConfig") as basic_config:
            configure_logging()

        assert basic_config.call_args.kwargs["level"] == logging.DEBUG

    def test_default_level_is_info(self):
        with patch("app.core.logging.get_settings", return_value=Settings(debug=False)), \
                patch("logging.basicConfig") as basic_config:
            configure_logging()

        assert basic_config.call_args.kwargs["level"] == logging.INFO
