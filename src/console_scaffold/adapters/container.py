"""Service container adapter.

Purpose
-------
Hold the services resolved into handler parameters. Registrations happen once
at startup; afterwards handlers only read from the container.

Contents
--------
* :class:`ServiceContainer` – singleton and transient registrations keyed by
  type, implementing :class:`console_scaffold.application.ports.ServiceProvider`.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, TypeVar

from ..domain.errors import ServiceNotFoundError
from ..observability import log_debug

T = TypeVar("T")

Factory = Callable[["ServiceContainer"], Any]


class ServiceContainer:
    """Type-keyed service locator.

    Examples
    --------
    >>> container = ServiceContainer()
    >>> _ = container.add_singleton(str, "Karen")
    >>> container.resolve(str)
    'Karen'
    >>> container.contains(int)
    False
    """

    def __init__(self) -> None:
        self._singletons: dict[type, Any] = {}
        self._lazy: dict[type, Factory] = {}
        self._transients: dict[type, Factory] = {}
        self._lock = threading.Lock()

    def add_singleton(self, service_type: type[T], instance: T | None = None, *, factory: Factory | None = None) -> ServiceContainer:
        """Register one shared instance, either given directly or built on first use by *factory*."""

        if instance is None and factory is None:
            raise ValueError("add_singleton requires an instance or a factory")
        self._forget(service_type)
        if factory is not None:
            self._lazy[service_type] = factory
        else:
            self._singletons[service_type] = instance
        log_debug("service_registered", service=service_type.__name__, lifetime="singleton")
        return self

    def add_transient(self, service_type: type[T], factory: Factory | None = None) -> ServiceContainer:
        """Register *factory* (default: calling *service_type* with the container) for a fresh instance per resolve."""

        self._forget(service_type)
        self._transients[service_type] = factory or (lambda container: service_type())
        log_debug("service_registered", service=service_type.__name__, lifetime="transient")
        return self

    def contains(self, service_type: Any) -> bool:
        return service_type in self._singletons or service_type in self._lazy or service_type in self._transients

    def resolve(self, service_type: type[T]) -> T:
        """Return an instance of *service_type*.

        Raises
        ------
        ServiceNotFoundError
            When nothing is registered for *service_type*.
        """

        if service_type in self._singletons:
            return self._singletons[service_type]
        if service_type in self._lazy:
            with self._lock:
                if service_type not in self._singletons:
                    self._singletons[service_type] = self._lazy[service_type](self)
                return self._singletons[service_type]
        factory = self._transients.get(service_type)
        if factory is None:
            name = getattr(service_type, "__name__", repr(service_type))
            raise ServiceNotFoundError(f"No service registered for {name}")
        return factory(self)

    def _forget(self, service_type: type) -> None:
        self._singletons.pop(service_type, None)
        self._lazy.pop(service_type, None)
        self._transients.pop(service_type, None)
