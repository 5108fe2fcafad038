import logging

from routine.core.config import Settings
from routine.core.logging import _resolve_level


def test_environment_picks_the_default_level():
    assert _resolve_level(Settings(environment="development")) == logging.DEBUG
    assert _resolve_level(Settings(environment="Production")) == logging.INFO


def test_log_level_overrides_the_environment():
    assert _resolve_level(Settings(environment="production", log_level="warning")) == logging.WARNING


def test_unknown_log_level_falls_back_to_the_environment_default():
    assert _resolve_level(Settings(environment="production", log_level="chatty")) == logging.INFO
