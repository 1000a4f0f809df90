"""Deterministic failure helper behind the hidden ``fail`` command.

Purpose
    Give end-to-end tests a fault that travels the whole error path: the
    dispatcher logs it, the host lets it escape, and ``lib_cli_exit_tools``
    renders it (summary or full traceback depending on ``--traceback``).
"""

from __future__ import annotations

from typing import Final

FAILURE_MESSAGE: Final[str] = "i should fail"
"""Message carried by the raised error; tests assert on it verbatim."""


def i_should_fail() -> None:
    """Always raise :class:`RuntimeError` with :data:`FAILURE_MESSAGE`.

    >>> i_should_fail()
    Traceback (most recent call last):
    ...
    RuntimeError: i should fail
    """

    raise RuntimeError(FAILURE_MESSAGE)
