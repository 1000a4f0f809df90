"""Public package surface for building console applications.

Exposes the host builder, the argument markers handlers annotate their
parameters with, the filter base class, and the result and error types a
handler or filter may return or raise. ``python -m console_scaffold`` runs
the demo command set through :mod:`console_scaffold.cli`.
"""

from __future__ import annotations

from .application.binding import Argument, Option
from .application.cancellation import CancellationToken
from .application.context import ExecutionContext
from .application.dispatch import CommandFilter
from .core import create_app, read_settings
from .domain.commands import CommandResult, Visibility
from .domain.config import Config
from .domain.errors import CommandExitedError, OperationCancelledError, PermissionDeniedError
from .host import ConsoleApp, GroupBuilder

__all__ = [
    "Argument",
    "CancellationToken",
    "CommandExitedError",
    "CommandFilter",
    "CommandResult",
    "Config",
    "ConsoleApp",
    "ExecutionContext",
    "GroupBuilder",
    "OperationCancelledError",
    "Option",
    "PermissionDeniedError",
    "Visibility",
    "create_app",
    "read_settings",
]
