from __future__ import annotations

# ruff: noqa: S101
import importlib
import sys

import pytest

import manage


def test_manage_main_defaults_settings_and_delegates(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    called = {}

    def _fake_execute(argv: list[str]) -> None:
        called["argv"] = argv

    monkeypatch.setattr(
        "django.core.management.execute_from_command_line",
        _fake_execute,
    )
    monkeypatch.setattr(sys, "argv", ["manage.py", "migrate"])

    manage.main()

    assert called["argv"] == ["manage.py", "migrate"]


@pytest.mark.parametrize("module_name", ["config.asgi", "config.wsgi"])
def test_server_entrypoints_expose_application(module_name: str) -> None:
    module = importlib.reload(importlib.import_module(module_name))
    assert callable(module.application)


def test_celery_app_registers_analysis_task() -> None:
    from config import celery_app

    assert celery_app.main == "land_indices"
    celery_app.loader.import_default_modules()
    assert "indices.tasks.run_analysis" in celery_app.tasks


def test_mypy_settings_fill_required_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("DJANGO_SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///mypy.sqlite3")

    module = importlib.reload(importlib.import_module("config.mypy_settings"))

    assert module.DEBUG is False
    assert module.USE_TZ is True
    assert module.INDICES_EMPTY_RASTER_BYTES == 1200
