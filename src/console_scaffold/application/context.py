"""Per-invocation execution context passed through the filter chain."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from ..domain.commands import CommandDescriptor
from .cancellation import CancellationToken

if TYPE_CHECKING:
    from .ports import ServiceProvider


@dataclass
class ExecutionContext:
    """State for one invocation; created fresh by the dispatcher and discarded afterwards.

    Attributes
    ----------
    command:
        Resolved descriptor.
    arguments:
        Raw tokens left after command resolution.
    parameters:
        Values bound from ``arguments`` keyed by handler parameter name.
    cancellation:
        Cooperative cancellation signal.
    services:
        Container used to fill injected handler parameters.
    trace_id:
        Identifier bound into log records emitted during the invocation.
    items:
        Scratch space filters may use to hand data inwards.
    """

    command: CommandDescriptor
    arguments: tuple[str, ...]
    parameters: Mapping[str, Any]
    cancellation: CancellationToken
    services: ServiceProvider
    trace_id: str | None = None
    items: dict[str, Any] = field(default_factory=dict)
