"""Multi-source value collection.

A *source* is a callable, sync or async, returning one value describing
the host (its platform, CPU count, timezone, ...).  Most take no
arguments; a source that declares a positional parameter is called with
the collection's cache, holding the components gathered so far, so it
can build on sources that ran before it.
:func:`load_sources` prepares a set of sources and returns an async
callable that collects them all into a mapping of
:class:`Component` records, one per source.

Usage::

    get_components = load_sources(DEFAULT_SOURCES, LoadOptions(), exclusions=["locale"])
    components = await get_components()
    components["platform"].value
"""

from __future__ import annotations

import asyncio
import inspect
import locale
import os
import platform
import socket
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping

from latbench.bench.clock import monotonic_ms
from latbench.logging import get_logger
from latbench.workloads.hashing import x64hash128

log = get_logger("workloads.sources")

Source = Callable[..., Any]


@dataclass
class LoadOptions:
    """Options shared by one collection.

    ``cache`` maps source names to already collected components.  A
    source found there is not called again, and sources that take an
    argument receive this mapping.  ``debug`` logs every collected
    component.
    """

    cache: dict[str, Component] = field(default_factory=dict)
    debug: bool = False


@dataclass(frozen=True)
class Component:
    """Outcome of collecting one source."""

    value: Any = None
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


def _takes_cache(source: Source) -> bool:
    """Whether *source* declares a positional parameter for the cache."""
    try:
        params = inspect.signature(source).parameters.values()
    except (TypeError, ValueError):
        return False
    return any(p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) for p in params)


async def _collect(
    name: str,
    source: Source,
    options: LoadOptions,
    takes_cache: bool,
) -> Component:
    cached = options.cache.get(name)
    if cached is not None:
        return cached

    start = monotonic_ms()
    try:
        value = source(options.cache) if takes_cache else source()
        if inspect.isawaitable(value):
            value = await value
    except Exception as exc:  # noqa: BLE001
        component = Component(
            error=f"{type(exc).__name__}: {exc}",
            duration_ms=monotonic_ms() - start,
        )
    else:
        component = Component(value=value, duration_ms=monotonic_ms() - start)

    options.cache[name] = component
    if options.debug:
        log.debug("Source %s: %r (%.3fms)", name, component.value, component.duration_ms)
    return component


def load_sources(
    source_map: Mapping[str, Source],
    options: LoadOptions | None = None,
    exclusions: Iterable[str] = (),
) -> Callable[[], Awaitable[dict[str, Component]]]:
    """Prepare a collection over *source_map* minus *exclusions*.

    The selection is fixed when this is called; the returned coroutine
    function collects the selected sources one after another, in
    mapping order.  A source that raises produces a Component with
    ``error`` set instead of aborting the collection.

    Args:
        source_map: Source name to callable.
        options: Cache and debug settings; a fresh LoadOptions if None.
        exclusions: Names to skip.

    Returns:
        A zero-argument coroutine function returning name -> Component.
    """
    opts = options or LoadOptions()
    excluded = set(exclusions)
    selected = [
        (name, src, _takes_cache(src)) for name, src in source_map.items() if name not in excluded
    ]

    async def get_components() -> dict[str, Component]:
        components: dict[str, Component] = {}
        for name, source, takes_cache in selected:
            components[name] = await _collect(name, source, opts, takes_cache)
        return components

    return get_components


# ---------------------------------------------------------------------------
# Host sources
# ---------------------------------------------------------------------------


def _platform() -> str:
    return sys.platform


def _vendor() -> str:
    return platform.python_implementation()


def _architecture() -> str:
    return platform.machine()


def _cpu_class(cache: dict[str, Component]) -> str:
    processor = platform.processor()
    if processor:
        return processor
    # Often empty on Linux; fall back to the machine type if already known.
    architecture = cache.get("architecture")
    if architecture is not None and architecture.ok:
        return str(architecture.value)
    return "unknown"


def _hardware_concurrency() -> int:
    return os.cpu_count() or 1


def _python_version() -> str:
    return platform.python_version()


def _timezone() -> tuple[str, ...]:
    return tuple(time.tzname)


def _locale() -> tuple[str | None, str | None]:
    return locale.getlocale()


def _hostname_hash() -> str:
    return x64hash128(socket.gethostname())


async def _event_loop() -> str:
    await asyncio.sleep(0)
    return type(asyncio.get_running_loop()).__name__


DEFAULT_SOURCES: dict[str, Source] = {
    "platform": _platform,
    "vendor": _vendor,
    "architecture": _architecture,
    "cpu_class": _cpu_class,
    "hardware_concurrency": _hardware_concurrency,
    "python_version": _python_version,
    "timezone": _timezone,
    "locale": _locale,
    "hostname_hash": _hostname_hash,
    "event_loop": _event_loop,
}

FAST_SOURCE_NAMES: tuple[str, ...] = (
    "platform",
    "vendor",
    "architecture",
    "cpu_class",
    "hardware_concurrency",
)
