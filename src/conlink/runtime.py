"""
Runtime helpers imported by generated modules.

Generated code never imports project files by package name: entry points
live in folders such as ``@alias/events/app.ready/notify/`` that are not
valid package paths. Instead every module forwards with::

    from conlink.runtime import load_entry
    default = load_entry(__file__, "../mod_core/@alias/chunks/logo/index.py")

``load_entry`` resolves the path relative to the calling module, imports the
file once per process (``.py`` source or ``.pyc`` bytecode alike) and returns
its ``default`` attribute, or the module itself when it has none.

The host application loads the install assemblies with :func:`load_install`
and receives plain callables::

    install = load_install(Path("dist/.codegen"), "server")
    await install(registry, on_site_created)

Tags:
    runtime, loader, events, conlink

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import asyncio
import importlib.util
import inspect
import sys
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

from conlink.core.hashing import compute_hash

_MODULE_PREFIX = "conlink_entry_"


def load_module(path: str | Path) -> ModuleType:
    """Import a file by path, once per process."""
    path = Path(path).resolve()
    module_name = _MODULE_PREFIX + compute_hash(path.as_posix(), length=16)

    cached = sys.modules.get(module_name)
    if cached is not None:
        return cached

    search = [str(path.parent)] if path.stem == "__init__" else None
    spec = importlib.util.spec_from_file_location(module_name, path, submodule_search_locations=search)
    if spec is None or spec.loader is None:
        raise ImportError(f"Can't load {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[module_name]
        raise
    return module


def load_entry(anchor: str | Path, relative: str, attr: str | None = "default") -> Any:
    """
    Load the file at ``relative`` from the directory of ``anchor``.

    Args:
        anchor: Usually the caller's ``__file__``
        relative: Posix path relative to the caller's directory
        attr: Attribute to return (``None`` returns the module)
    """
    module = load_module(Path(anchor).parent / relative)
    if attr is None:
        return module
    return getattr(module, attr, module)


def load_install(output_dir: str | Path, target: str = "server") -> Callable[..., Any] | None:
    """The ``install`` function of a generated install assembly, if present."""
    path = Path(output_dir) / f"install_{target}.py"
    if not path.is_file():
        return None
    return getattr(load_module(path), "install", None)


class StaticEvent:
    """
    A named event with listeners known at generation time.

    Listeners are called in list order; ``send`` returns their results.
    """

    def __init__(self, name: str, listeners: list[Callable[..., Any]] | None = None):
        self.name = name
        self.listeners: list[Callable[..., Any]] = list(listeners or [])

    def add_listener(self, listener: Callable[..., Any]) -> None:
        self.listeners.append(listener)

    def send(self, *args: Any, **kwargs: Any) -> list[Any]:
        return [listener(*args, **kwargs) for listener in self.listeners]

    def __iter__(self) -> Iterator[Callable[..., Any]]:
        return iter(self.listeners)

    def __len__(self) -> int:
        return len(self.listeners)

    def __repr__(self) -> str:
        return f"StaticEvent({self.name!r}, listeners={len(self.listeners)})"


@dataclass
class DataTableHandle:
    """
    A data table declaration as seen by the server.

    ``security_uid`` is the opaque name the table is exposed under, ``acl``
    maps an access target (``READ``, ``WRITE``) to the roles it needs.
    """

    name: str
    security_uid: str
    provider: Callable[[], Any]
    acl: dict[str, tuple[str, ...]] = field(default_factory=dict)
    expose: bool = True
    proxy: bool = True

    def load(self) -> Any:
        return self.provider()

    def roles_for(self, target: str) -> tuple[str, ...]:
        """Roles needed for ``target``; ``ALL`` roles apply to every target."""
        return tuple(self.acl.get(target.upper(), ())) + tuple(self.acl.get("ALL", ()))


@dataclass
class ServerAction:
    """
    A server action as seen by the host.

    ``security_uid`` is the opaque name the action is called under from a
    client; ``roles`` must all be held by the caller.
    """

    name: str
    security_uid: str
    action: Callable[[], Any]
    roles: tuple[str, ...] = ()

    def load(self) -> Any:
        return self.action()

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.load()(*args, **kwargs)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _value_of(result: Any) -> Any:
    if isinstance(result, Mapping):
        return result.get("value")
    return None


class DataProvider:
    """
    A keyed value source with a shared cache.

    ``definition`` takes an optional id and returns ``{"value": ...}`` (or
    an awaitable of it). Values are cached under ``<key>`` or ``<key>:<id>``;
    a missing or None value is returned as None and not cached.
    """

    def __init__(self, key: str, definition: Callable[..., Any], cache: dict[str, Any] | None = None):
        self.key = key
        self.definition = definition
        self.cache: dict[str, Any] = {} if cache is None else cache

    def cache_key(self, id: Any = None) -> str:
        return self.key if id is None else f"{self.key}:{id}"

    async def get_value(self, id: Any = None) -> Any:
        full_key = self.cache_key(id)
        if full_key in self.cache:
            return self.cache[full_key]

        value = _value_of(await _resolve(self.definition(id)))
        if value is not None:
            self.cache[full_key] = value
        return value

    async def delete(self, id: Any = None) -> None:
        self.cache.pop(self.cache_key(id), None)

    async def refresh(self, id: Any = None) -> Any:
        await self.delete(id)
        return await self.get_value(id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r})"


class ObjectProvider(DataProvider):
    """
    A data provider with named sub-caches and request deduplication.

    ``definition`` is an object with ``get_value(id, sub_cache)``. It may
    also define ``get_from_cache(id, sub_cache)`` to take over caching,
    ``add_to_cache(id, sub_cache, result)`` to store results itself and
    ``default_sub_cache()``. Concurrent calls for the same id share one
    ``get_value`` call.
    """

    def __init__(self, key: str, definition: Any, cache: dict[str, Any] | None = None, sub_cache: str | None = None):
        super().__init__(key, definition, cache)
        self.sub_cache = sub_cache
        self._pending: dict[str, asyncio.Future[Any]] = {}

    def use_sub_cache(self, name: str) -> ObjectProvider:
        """A provider sharing this cache store but reading the ``name`` sub-cache."""
        if name == self.sub_cache:
            return self
        return ObjectProvider(self.key, self.definition, self.cache, sub_cache=name)

    def cache_key(self, id: Any = None) -> str:
        key = super().cache_key(id)
        return key if self.sub_cache is None else f"{self.sub_cache}/{key}"

    async def get_value(self, id: Any = None) -> Any:
        definition = self.definition
        if hasattr(definition, "get_from_cache"):
            return await _resolve(definition.get_from_cache(id, self.sub_cache))

        if self.sub_cache is None and hasattr(definition, "default_sub_cache"):
            self.sub_cache = definition.default_sub_cache()

        full_key = self.cache_key(id)
        if full_key in self.cache:
            return self.cache[full_key]

        pending = self._pending.get(full_key)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch(id, full_key))
            self._pending[full_key] = pending
            pending.add_done_callback(lambda _: self._pending.pop(full_key, None))
        return await pending

    async def _fetch(self, id: Any, full_key: str) -> Any:
        definition = self.definition
        result = await _resolve(definition.get_value(id, self.sub_cache))
        value = _value_of(result)
        if value is not None:
            if hasattr(definition, "add_to_cache"):
                await _resolve(definition.add_to_cache(id, self.sub_cache, result))
            else:
                self.cache[full_key] = value
        return value


__all__ = [
    "load_module",
    "load_entry",
    "load_install",
    "StaticEvent",
    "DataTableHandle",
    "ServerAction",
    "DataProvider",
    "ObjectProvider",
]
