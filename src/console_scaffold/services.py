"""Demo services resolved into command handlers by type."""

from __future__ import annotations

import logging
from dataclasses import dataclass


@dataclass(frozen=True)
class NameProvider:
    """Supplies the name greeted by ``with-di``; registered as a singleton."""

    name: str

    def get_name(self) -> str:
        return self.name


class MessageLogger:
    """Writes a message through the application logger; registered as transient."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def hello(self, message: str) -> None:
        self._logger.info(message)
