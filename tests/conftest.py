"""Shared fixtures: keep logging and trace state from leaking between tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from console_scaffold.observability import bind_trace_id, reset_logging


@pytest.fixture(autouse=True)
def _isolate_logging() -> Iterator[None]:
    yield
    reset_logging()
    bind_trace_id(None)
