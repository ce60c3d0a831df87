"""Tests for the ``python -m ensavatar`` entry point."""

import pytest
from fastapi import FastAPI

import ensavatar.__main__ as main_module


def test_parse_args_defaults() -> None:
    args = main_module._parse_args([])
    assert args.host == "0.0.0.0"  # noqa: S104
    assert args.port == 3000
    assert args.log_level is None


def test_main_runs_uvicorn_with_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[dict[str, object]] = []
    levels: list[str] = []

    def _run(app: object, **kwargs: object) -> None:
        calls.append({"app": app, **kwargs})

    monkeypatch.setattr(main_module.uvicorn, "run", _run)
    monkeypatch.setattr(main_module, "configure_logging", levels.append)
    monkeypatch.setenv("LOG_LEVEL", "warning")

    main_module.main(["--port", "8080"])

    assert levels == ["WARNING"]
    assert len(calls) == 1
    assert isinstance(calls[0]["app"], FastAPI)
    assert calls[0]["port"] == 8080
    assert calls[0]["log_level"] == "warning"


def test_log_level_flag_overrides_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    levels: list[str] = []
    monkeypatch.setattr(main_module.uvicorn, "run", lambda app, **kwargs: None)
    monkeypatch.setattr(main_module, "configure_logging", levels.append)
    monkeypatch.setenv("LOG_LEVEL", "warning")

    main_module.main(["--log-level", "debug"])
    assert levels == ["DEBUG"]
