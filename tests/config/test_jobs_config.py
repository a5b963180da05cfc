from __future__ import annotations

import pytest

from splkit.config import ConfigurationError, JobConfig, get_job_config


def test_defaults_without_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SPLKIT_JOB_WORKERS", raising=False)
    monkeypatch.delenv("SPLKIT_JOB_RETENTION_SECONDS", raising=False)

    assert get_job_config() == JobConfig()


def test_values_are_read_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPLKIT_JOB_WORKERS", " 8 ")
    monkeypatch.setenv("SPLKIT_JOB_RETENTION_SECONDS", "90.5")

    config = get_job_config()

    assert config.max_workers == 8
    assert config.retention_seconds == 90.5


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("SPLKIT_JOB_WORKERS", "many", "must be a number"),
        ("SPLKIT_JOB_WORKERS", "0", "at least 1"),
        ("SPLKIT_JOB_RETENTION_SECONDS", "-1", "must not be negative"),
    ],
)
def test_invalid_values_are_rejected(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError, match=message):
        get_job_config()
