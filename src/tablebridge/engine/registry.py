"""Adapter registry: sink factories looked up by name.

The process-wide registry is built by an explicit ``init_registry()`` call.
Registration and lookup are not meant to run concurrently; register adapters
at start-up, before any transfer operation.
"""

from __future__ import annotations

from typing import Any, Callable

from tablebridge.ports.sinks import MemoryTableSink, SelectableMemoryTableSink, TableSink, WorkbookTableSink

AdapterFactory = Callable[..., TableSink]

BUILTIN_ADAPTERS: dict[str, AdapterFactory] = {
    "memory": MemoryTableSink,
    "memory-selectable": SelectableMemoryTableSink,
    "workbook": WorkbookTableSink,
}


class AdapterRegistry:
    """Mapping from adapter name to a factory producing a sink."""

    def __init__(self) -> None:
        self._factories: dict[str, AdapterFactory] = {}

    def register(self, name: str, factory: AdapterFactory, *, replace: bool = False) -> None:
        if name in self._factories and not replace:
            raise ValueError(f"Adapter already registered: {name}")
        self._factories[name] = factory

    def unregister(self, name: str) -> None:
        self._factories.pop(name, None)

    def get(self, name: str) -> AdapterFactory | None:
        return self._factories.get(name)

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def create(self, name: str, *args: Any, **kwargs: Any) -> TableSink:
        factory = self._factories.get(name)
        if factory is None:
            raise ValueError(
                f"Unknown adapter: '{name}'. Registered: {', '.join(self.names()) or '(none)'}"
            )
        return factory(*args, **kwargs)


_registry: AdapterRegistry | None = None


def init_registry(*, builtins: bool = True) -> AdapterRegistry:
    """(Re)build the process-wide registry."""
    global _registry
    _registry = AdapterRegistry()
    if builtins:
        for name, factory in BUILTIN_ADAPTERS.items():
            _registry.register(name, factory)
    return _registry


def get_registry() -> AdapterRegistry:
    if _registry is None:
        raise RuntimeError("Adapter registry not initialised; call init_registry() first")
    return _registry


def register_adapter(name: str, factory: AdapterFactory, *, replace: bool = False) -> None:
    get_registry().register(name, factory, replace=replace)


def get_registered_adapter(name: str) -> AdapterFactory | None:
    return get_registry().get(name)


def registered_adapter_names() -> list[str]:
    return get_registry().names()


def is_adapter_registered(name: str) -> bool:
    return name in get_registry()


def create_adapter(name: str, *args: Any, **kwargs: Any) -> TableSink:
    return get_registry().create(name, *args, **kwargs)
