"""Bind handler parameters from invocation tokens or from the service container.

Purpose
-------
Turn a handler signature into a click command so click parses the tokens left
after resolution, and work out which parameters are filled by injection
instead.

Contents
--------
* :class:`Argument` / :class:`Option` – ``typing.Annotated`` markers.
* :class:`BindingPlan` – parsed signature for one descriptor.
* :class:`ArgumentBinder` – ``bind`` tokens, then ``inject`` services.

Binding rules
-------------
* ``Annotated[T, Argument()]`` is positional; every other token-bound
  parameter is an option ``--param-name``.
* ``Optional[T]`` / ``T | None`` or a default value makes a parameter
  optional; a missing value binds to ``None`` (or the default).
* ``bool`` parameters are flags; ``list[T]`` / ``tuple[T, ...]`` accept
  repeated values.
* ``ExecutionContext``, ``CancellationToken``, and any type the container can
  resolve are injected and never read from tokens.
"""

from __future__ import annotations

import inspect
import types
import typing
import weakref
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

import click

from ..domain.commands import CommandDescriptor
from ..domain.errors import CommandExitedError, UsageError
from .cancellation import CancellationToken
from .context import ExecutionContext
from .ports import ServiceProvider

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@dataclass(frozen=True)
class Argument:
    """Mark a parameter as positional: ``name: Annotated[str | None, Argument()]``."""

    help: str | None = None
    metavar: str | None = None


@dataclass(frozen=True)
class Option:
    """Attach help text or a one-letter short flag to an option parameter."""

    help: str | None = None
    short: str | None = None


@dataclass(frozen=True)
class InjectedParameter:
    """Parameter filled at call time rather than from tokens."""

    name: str
    source: str
    service_type: Any = None


@dataclass(frozen=True)
class BindingPlan:
    """Click command parsing the token-bound parameters plus the injected ones."""

    command: click.Command
    injected: tuple[InjectedParameter, ...]
    sequence_types: tuple[tuple[str, type], ...] = ()


class ArgumentBinder:
    """Build and cache binding plans per descriptor.

    Parameters
    ----------
    services:
        Container consulted to decide whether a parameter type is injectable.
    prog_name:
        Program name used in usage and help lines.
    """

    def __init__(self, services: ServiceProvider, *, prog_name: str = "console-scaffold") -> None:
        self._services = services
        self._prog_name = prog_name
        self._plans: weakref.WeakKeyDictionary[CommandDescriptor, BindingPlan] = weakref.WeakKeyDictionary()

    def plan(self, descriptor: CommandDescriptor) -> BindingPlan:
        cached = self._plans.get(descriptor)
        if cached is None:
            cached = self._build_plan(descriptor)
            self._plans[descriptor] = cached
        return cached

    def bind(self, descriptor: CommandDescriptor, tokens: Sequence[str]) -> dict[str, Any]:
        """Parse *tokens* into handler keyword arguments.

        Raises
        ------
        UsageError
            When click rejects the tokens (unknown option, missing argument,
            bad value).
        CommandExitedError
            With exit code 0 after ``--help`` printed the command help.
        """

        plan = self.plan(descriptor)
        info_name = f"{self._prog_name} {descriptor.qualified_name}"
        try:
            ctx = plan.command.make_context(info_name, list(tokens))
        except click.exceptions.Exit as exc:
            raise CommandExitedError(None, exc.exit_code) from None
        except click.UsageError as exc:
            usage = exc.ctx.get_usage() if exc.ctx is not None else None
            raise UsageError(exc.format_message(), usage=usage) from exc
        params = dict(ctx.params)
        for name, container in plan.sequence_types:
            if params.get(name) is not None:
                params[name] = container(params[name])
        return params

    def inject(self, descriptor: CommandDescriptor, context: ExecutionContext) -> dict[str, Any]:
        """Resolve injected parameters for *descriptor* from *context*."""

        values: dict[str, Any] = {}
        for parameter in self.plan(descriptor).injected:
            if parameter.source == "context":
                values[parameter.name] = context
            elif parameter.source == "cancellation":
                values[parameter.name] = context.cancellation
            else:
                values[parameter.name] = context.services.resolve(parameter.service_type)
        return values

    def _build_plan(self, descriptor: CommandDescriptor) -> BindingPlan:
        handler = descriptor.handler
        if handler is None:
            raise TypeError(f"{descriptor!r} has no handler to bind")
        hints = _type_hints(descriptor, handler)
        params: list[click.Parameter] = []
        injected: list[InjectedParameter] = []
        sequences: list[tuple[str, type]] = []
        for parameter in inspect.signature(handler).parameters.values():
            if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                raise TypeError(f"{descriptor!r}: variadic parameter '{parameter.name}' cannot be bound")
            annotation = hints.get(parameter.name, parameter.annotation)
            if annotation is inspect.Parameter.empty or isinstance(annotation, str):
                annotation = str
            base, markers = _split_annotated(annotation)
            if base is ExecutionContext:
                injected.append(InjectedParameter(parameter.name, "context"))
                continue
            if base is CancellationToken:
                injected.append(InjectedParameter(parameter.name, "cancellation"))
                continue
            service_type, _ = _split_optional(base)
            if _is_service(self._services, service_type):
                injected.append(InjectedParameter(parameter.name, "service", service_type))
                continue
            click_param, container = _click_parameter(parameter, base, markers)
            params.append(click_param)
            if container is not None:
                sequences.append((parameter.name, container))
        command = click.Command(
            descriptor.name,
            params=params,
            help=descriptor.description,
            context_settings=CLICK_CONTEXT_SETTINGS,
        )
        return BindingPlan(command, tuple(injected), tuple(sequences))


def _type_hints(descriptor: CommandDescriptor, handler: Callable[..., Any]) -> dict[str, Any]:
    target = handler if inspect.isfunction(handler) or inspect.ismethod(handler) else getattr(handler, "__call__", handler)
    try:
        return typing.get_type_hints(target, include_extras=True)
    except (NameError, TypeError) as exc:
        raise TypeError(f"{descriptor!r}: cannot resolve parameter annotations ({exc})") from exc


def _split_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    if typing.get_origin(annotation) is typing.Annotated:
        base, *markers = typing.get_args(annotation)
        return base, tuple(markers)
    return annotation, ()


def _split_optional(annotation: Any) -> tuple[Any, bool]:
    """Return ``(inner, optional)`` for ``Optional[X]`` / ``X | None``.

    >>> _split_optional(int | None)
    (<class 'int'>, True)
    >>> _split_optional(str)
    (<class 'str'>, False)
    """

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        optional = len(members) != len(typing.get_args(annotation))
        if len(members) == 1:
            return members[0], optional
        return str, optional
    return annotation, False


def _split_sequence(annotation: Any) -> tuple[Any, type | None]:
    origin = typing.get_origin(annotation)
    if origin in (list, tuple) or origin is typing.get_origin(Sequence[str]):
        args = [arg for arg in typing.get_args(annotation) if arg is not Ellipsis]
        container = list if origin is list else tuple
        return (args[0] if args else str), container
    return annotation, None


def _is_service(services: ServiceProvider, annotation: Any) -> bool:
    if not isinstance(annotation, type) or annotation in (str, int, float, bool, Path):
        return False
    return services.contains(annotation)


def _click_type(annotation: Any) -> Any:
    if annotation is Path:
        return click.Path(path_type=Path)
    if annotation in (str, int, float):
        return annotation
    return click.STRING


def _click_parameter(
    parameter: inspect.Parameter,
    annotation: Any,
    markers: tuple[Any, ...],
) -> tuple[click.Parameter, type | None]:
    inner, optional = _split_optional(annotation)
    inner, container = _split_sequence(inner)
    has_default = parameter.default is not inspect.Parameter.empty
    default = parameter.default if has_default else None
    # click treats an explicit default=None as a supplied value
    default_kwargs = {"default": default} if has_default else {}
    required = not optional and not has_default
    argument = next((marker for marker in markers if isinstance(marker, Argument)), None)
    option = next((marker for marker in markers if isinstance(marker, Option)), Option())

    if argument is not None:
        return (
            click.Argument(
                [parameter.name],
                type=_click_type(inner),
                required=required,
                nargs=-1 if container is not None else 1,
                metavar=argument.metavar,
                **default_kwargs,
            ),
            container,
        )

    declarations = [f"--{parameter.name.replace('_', '-')}"]
    if option.short:
        declarations.append(f"-{option.short}")
    declarations.append(parameter.name)
    if inner is bool:
        return (
            click.Option(declarations, is_flag=True, default=bool(default), help=option.help),
            None,
        )
    return (
        click.Option(
            declarations,
            type=_click_type(inner),
            required=required,
            multiple=container is not None,
            help=option.help,
            show_default=has_default and default is not None,
            **default_kwargs,
        ),
        container,
    )
