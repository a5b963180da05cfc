"""Errors raised while reading splkit settings from the environment."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A ``SPLKIT_*`` or ``DATABASE_URI`` setting holds an unusable value.

    ``setting`` names the environment variable so the CLI can point at it.
    """

    def __init__(self, setting: str, message: str) -> None:
        super().__init__(f"{setting} {message}")
        self.setting = setting
