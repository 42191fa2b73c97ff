"""Unit tests for server.lifespan module."""

import sys
import threading
from unittest.mock import MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from server import lifespan as lifespan_module
from server.lifespan import (
    _get_logger,
    _is_test_environment,
    _list_configs,
    _start_scheduled_tasks,
    _stop_scheduled_tasks,
    lifespan,
)


@pytest.mark.unit
def test_is_test_environment_detects_pytest():
    assert _is_test_environment() is True


@pytest.mark.unit
def test_is_test_environment_detects_non_pytest():
    original_modules = sys.modules.copy()
    if "pytest" in sys.modules:
        del sys.modules["pytest"]

    try:
        assert lifespan_module._is_test_environment() is False
    finally:
        sys.modules.update(original_modules)


@pytest.mark.unit
@patch("server.lifespan.configure_logging")
def test_get_logger_configures_logging(mock_configure_logging, mock_settings):
    mock_logger = MagicMock()
    mock_configure_logging.return_value = mock_logger

    logger = _get_logger(mock_settings)

    mock_configure_logging.assert_called_once_with(settings=mock_settings)
    assert logger == mock_logger


@pytest.mark.unit
def test_list_configs_logs_sections(mock_settings):
    mock_settings.model_dump.return_value = {
        "GIT_SHA": "abc123",
        "notifications": {"max_retries": 3, "sweep_enabled": True},
        "persistence": {"backend": "memory"},
    }
    mock_logger = MagicMock()

    _list_configs(mock_settings, mock_logger)

    mock_logger.info.assert_any_call(
        "configuration_initialized", base_settings=[{"GIT_SHA": "abc123"}]
    )
    mock_logger.info.assert_any_call(
        "configuration_loaded",
        config_setting="notifications",
        keys=["max_retries", "sweep_enabled"],
    )
    mock_logger.info.assert_any_call(
        "configuration_loaded", config_setting="persistence", keys=["backend"]
    )


@pytest.mark.unit
class TestScheduledTasks:
    def test_skipped_when_sweep_disabled(self, mock_settings):
        mock_settings.notifications.sweep_enabled = False
        mock_logger = MagicMock()

        assert _start_scheduled_tasks(mock_settings, mock_logger) is None
        mock_logger.info.assert_called_once_with(
            "scheduled_tasks_skipped", reason="sweep_disabled"
        )

    @patch("server.lifespan.scheduled_tasks")
    def test_skipped_under_pytest(self, mock_scheduled_tasks, mock_settings):
        mock_settings.notifications.sweep_enabled = True

        assert _start_scheduled_tasks(mock_settings, MagicMock()) is None
        mock_scheduled_tasks.init.assert_not_called()

    @patch("server.lifespan._is_test_environment", return_value=False)
    @patch("server.lifespan.scheduled_tasks")
    def test_started(self, mock_scheduled_tasks, _mock_is_test, mock_settings):
        mock_settings.notifications.sweep_enabled = True
        stop_event = threading.Event()
        mock_scheduled_tasks.run_continuously.return_value = stop_event

        result = _start_scheduled_tasks(mock_settings, MagicMock())

        assert result is stop_event
        mock_scheduled_tasks.init.assert_called_once_with()
        mock_scheduled_tasks.run_continuously.assert_called_once_with()

    @patch("server.lifespan.scheduled_tasks")
    def test_stop_sets_event_and_clears_jobs(self, mock_scheduled_tasks):
        stop_event = threading.Event()

        _stop_scheduled_tasks(stop_event)

        assert stop_event.is_set()
        mock_scheduled_tasks.clear.assert_called_once_with()

    @patch("server.lifespan.scheduled_tasks")
    def test_stop_without_event(self, mock_scheduled_tasks):
        _stop_scheduled_tasks(None)

        mock_scheduled_tasks.clear.assert_not_called()


@pytest.mark.unit
@patch("server.lifespan._start_scheduled_tasks")
@patch("server.lifespan._list_configs")
@patch("server.lifespan._get_logger")
@patch("server.lifespan.get_settings")
def test_lifespan_startup_and_shutdown(
    mock_get_settings, mock_get_logger, mock_list_configs, mock_start
):
    app = FastAPI(lifespan=lifespan)
    stop_event = threading.Event()
    mock_start.return_value = stop_event

    with TestClient(app):
        assert app.state.settings is mock_get_settings.return_value
        assert app.state.logger is mock_get_logger.return_value
        assert app.state.scheduled_stop_event is stop_event
        mock_list_configs.assert_called_once()

    assert stop_event.is_set()
    mock_get_logger.return_value.info.assert_any_call("application_shutdown")
