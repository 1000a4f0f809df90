"""Composition root for ``console_scaffold``.

Purpose
-------
Wire configuration sources, the service container, and the command set into
a ready-to-run :class:`~console_scaffold.host.ConsoleApp`. This is the one
place that knows the precedence order of settings layers and which services
exist.

Contents
--------
* :func:`resolve_environment` – pick the active environment name.
* :func:`read_settings` / :func:`read_settings_raw` – load and merge layers.
* :func:`parse_overrides` – turn ``--set key=value`` items into a mapping.
* :func:`build_services` – register services derived from settings.
* :func:`create_app` – build the app and register the demo commands.

Settings precedence (lowest first)
----------------------------------
``appsettings.*`` → ``appsettings.<Environment>.*`` → ``.env`` (Development
only) → ``CONSOLE_SCAFFOLD_*`` environment variables → ``--set`` overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final, Iterable, Mapping, Sequence

from .adapters.container import ServiceContainer
from .adapters.env import DefaultDotEnvLoader, DefaultEnvLoader, assign_nested, coerce, default_env_prefix
from .adapters.file_loaders import FILE_LOADERS
from .application.merge import merge_layers
from .domain.config import Config
from .domain.errors import InvalidFormat, LayerLoadError, NotFound
from .host import ConsoleApp
from .observability import get_logger, log_debug
from .services import MessageLogger, NameProvider

APP_SLUG: Final[str] = "console-scaffold"
ENV_PREFIX: Final[str] = default_env_prefix(APP_SLUG)
SETTINGS_STEM: Final[str] = "appsettings"
DEFAULT_ENVIRONMENT: Final[str] = "Production"
DEVELOPMENT_ENVIRONMENT: Final[str] = "Development"
BUNDLED_SETTINGS_DIR: Final[Path] = Path(__file__).resolve().parent
DEFAULT_SERVICE_NAME: Final[str] = "Karen"
APP_DESCRIPTION: Final[str] = "Console application host with filters, sub-commands, and layered settings"


def resolve_environment(explicit: str | None = None, *, environ: Mapping[str, str] | None = None) -> str:
    """Return the environment name: *explicit*, then ``CONSOLE_SCAFFOLD_ENVIRONMENT``, then Production.

    >>> resolve_environment("Staging", environ={})
    'Staging'
    >>> resolve_environment(None, environ={"CONSOLE_SCAFFOLD_ENVIRONMENT": "Development"})
    'Development'
    >>> resolve_environment(None, environ={})
    'Production'
    """

    if explicit:
        return explicit
    source = os.environ if environ is None else environ
    return source.get(f"{ENV_PREFIX}_ENVIRONMENT") or DEFAULT_ENVIRONMENT


def is_development(environment: str) -> bool:
    return environment.lower() == DEVELOPMENT_ENVIRONMENT.lower()


def parse_overrides(items: Iterable[str]) -> dict[str, object]:
    """Parse ``key.path=value`` items into a nested mapping.

    >>> parse_overrides(["logging.level=DEBUG", "commands.long_running.seconds=2"])
    {'logging': {'level': 'DEBUG'}, 'commands': {'long_running': {'seconds': 2}}}

    Raises
    ------
    InvalidFormat
        When an item has no ``=`` or an empty key.
    """

    result: dict[str, object] = {}
    for item in items:
        key, separator, value = item.partition("=")
        key = key.strip()
        if not separator or not key:
            raise InvalidFormat(f"Override '{item}' must look like key.path=value")
        assign_nested(result, key.replace(".", "__"), coerce(value.strip()), error_cls=InvalidFormat)
    return result


def read_settings(
    *,
    environment: str | None = None,
    overrides: Sequence[str] = (),
    settings_dir: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    start_dir: str | None = None,
) -> Config:
    """Return the merged settings as an immutable :class:`Config`.

    Parameters
    ----------
    environment:
        Explicit environment name; see :func:`resolve_environment`.
    overrides:
        ``key.path=value`` items applied last.
    settings_dir:
        Directory holding ``appsettings.*``; defaults to the bundled files.
    environ:
        Mapping used instead of :data:`os.environ` (tests).
    start_dir:
        Where the Development ``.env`` search starts (default: CWD).
    """

    data, meta = read_settings_raw(
        environment=environment,
        overrides=overrides,
        settings_dir=settings_dir,
        environ=environ,
        start_dir=start_dir,
    )
    return Config(data, meta)  # type: ignore[arg-type]


def read_settings_raw(
    *,
    environment: str | None = None,
    overrides: Sequence[str] = (),
    settings_dir: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    start_dir: str | None = None,
) -> tuple[dict[str, object], dict[str, dict[str, object]]]:
    """Load every layer and return ``(merged, provenance)``.

    Raises
    ------
    LayerLoadError
        When no base ``appsettings`` file exists or a file fails to parse.
    """

    env_name = resolve_environment(environment, environ=environ)
    base_dir = Path(settings_dir) if settings_dir is not None else BUNDLED_SETTINGS_DIR
    layers: list[tuple[str, Mapping[str, object], str | None]] = []

    base_files = _settings_files(base_dir, SETTINGS_STEM)
    if not base_files:
        raise LayerLoadError(f"Required settings file {SETTINGS_STEM}.json not found in {base_dir}")
    layers.extend(_load_files("appsettings", base_files))
    layers.extend(_load_files("environment", _settings_files(base_dir, f"{SETTINGS_STEM}.{env_name}")))

    if is_development(env_name):
        dotenv = DefaultDotEnvLoader()
        dotenv_data = dotenv.load(start_dir)
        if dotenv_data:
            layers.append(("dotenv", dotenv_data, dotenv.last_loaded_path))

    env_data = DefaultEnvLoader(environ=environ).load(ENV_PREFIX)
    if env_data:
        layers.append(("env", env_data, None))

    cmdline = parse_overrides(overrides)
    cmdline["environment"] = env_name
    layers.append(("cmdline", cmdline, None))

    merged, meta = merge_layers(layers)
    log_debug("settings_merged", layer="final", path=None, environment=env_name, total_layers=len(layers))
    return merged, meta


def _settings_files(directory: Path, stem: str) -> list[str]:
    return [str(directory / f"{stem}{suffix}") for suffix in FILE_LOADERS if (directory / f"{stem}{suffix}").is_file()]


def _load_files(layer: str, paths: Iterable[str]) -> list[tuple[str, Mapping[str, object], str | None]]:
    collected: list[tuple[str, Mapping[str, object], str | None]] = []
    for path in paths:
        loader = FILE_LOADERS[Path(path).suffix.lower()]
        try:
            data = loader.load(path)
        except NotFound:
            continue
        except InvalidFormat as exc:
            raise LayerLoadError(f"Failed to load {layer} layer file {path}: {exc}") from exc
        if data:
            log_debug("layer_loaded", layer=layer, path=path, keys=len(data))
            collected.append((layer, data, path))
    return collected


def build_services(config: Config, container: ServiceContainer | None = None) -> ServiceContainer:
    """Register the services handlers may ask for.

    * :class:`Config` and the package :class:`logging.Logger` (singletons).
    * :class:`NameProvider` named from ``services.name`` (singleton).
    * :class:`MessageLogger` (transient, one per resolve).
    """

    services = container or ServiceContainer()
    services.add_singleton(Config, config)
    services.add_singleton(logging.Logger, get_logger())
    services.add_singleton(NameProvider, NameProvider(str(config.get("services.name", DEFAULT_SERVICE_NAME))))
    services.add_transient(MessageLogger, lambda _: MessageLogger(get_logger("services")))
    return services


def create_app(
    config: Config,
    *,
    services: ServiceContainer | None = None,
    prog_name: str = APP_SLUG,
    global_options: Sequence[tuple[str, str]] = (),
) -> ConsoleApp:
    """Build the application with the demo command set registered."""

    from .commands import register_commands

    app = ConsoleApp(
        config=config,
        services=build_services(config, services),
        prog_name=prog_name,
        description=APP_DESCRIPTION,
        global_options=global_options,
    )
    register_commands(app)
    return app


__all__ = [
    "APP_DESCRIPTION",
    "APP_SLUG",
    "ENV_PREFIX",
    "build_services",
    "create_app",
    "parse_overrides",
    "read_settings",
    "read_settings_raw",
    "resolve_environment",
]
