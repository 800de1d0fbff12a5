"""
Memory Store - Dual System1/System2 memory boundary

WHAT: Protocol for the external fast/slow memory store plus an in-process implementation
WHERE: mnemos/runtime/memory/memory_store.py - sink for pipeline memory updates
WHO: MemoryEventPipeline applying ProcessingResult.memory_updates
TIME: In-process writes O(1) append / O(k) remove

The pipeline only talks to the store through ``update_system1``,
``update_system2`` and ``query``. System1 holds fast pattern memories
(pastInteractions, codePatterns, teamPatterns, ...), System2 holds deliberate
reasoning state (reasoningTraces, currentMode, ...). Cache eviction and trace
lifecycle belong to the concrete store, not to this package.

Operations on ``InMemoryDualMemoryStore``:
- add: append ``data`` to the target's list
- update: replace the target's value with ``data``
- remove: delete items equal to ``data`` (or the whole target when ``data`` is None)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Dict, List, Literal, Protocol

from .models import MemoryUpdate

logger = logging.getLogger(__name__)

SystemName = Literal["system1", "system2"]


class DualMemoryStore(Protocol):
    """Abstract interface for the external dual memory store."""

    async def update_system1(self, update: MemoryUpdate) -> None:
        """Apply an update to the fast-pattern store."""

    async def update_system2(self, update: MemoryUpdate) -> None:
        """Apply an update to the deliberate-reasoning store."""

    async def query(self, system: SystemName, target: str) -> Any:
        """Return the current value held for ``target``."""


class InMemoryDualMemoryStore(DualMemoryStore):
    """Dict-backed store for local runs and tests."""

    def __init__(self) -> None:
        self._systems: Dict[str, DefaultDict[str, Any]] = {
            "system1": defaultdict(list),
            "system2": defaultdict(list),
        }
        self.applied: List[tuple[str, MemoryUpdate]] = []

    async def update_system1(self, update: MemoryUpdate) -> None:
        self._apply("system1", update)

    async def update_system2(self, update: MemoryUpdate) -> None:
        self._apply("system2", update)

    async def query(self, system: SystemName, target: str) -> Any:
        store = self._store(system)
        value = store.get(target)
        return list(value) if isinstance(value, list) else value

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {name: dict(targets) for name, targets in self._systems.items()}

    def _store(self, system: str) -> DefaultDict[str, Any]:
        try:
            return self._systems[system]
        except KeyError:
            raise ValueError(f"Unknown memory system: {system}") from None

    def _apply(self, system: str, update: MemoryUpdate) -> None:
        store = self._store(system)
        if update.operation == "add":
            current = store[update.target]
            if not isinstance(current, list):
                current = [current]
                store[update.target] = current
            current.append(update.data)
        elif update.operation == "update":
            store[update.target] = update.data
        elif update.operation == "remove":
            if update.data is None:
                store.pop(update.target, None)
            elif isinstance(store.get(update.target), list):
                store[update.target] = [item for item in store[update.target] if item != update.data]
            elif store.get(update.target) == update.data:
                store.pop(update.target, None)
        else:
            raise ValueError(f"Unsupported memory operation: {update.operation}")
        self.applied.append((system, update))
        logger.debug(f"{system}.{update.target} <- {update.operation}")


__all__ = ["DualMemoryStore", "InMemoryDualMemoryStore", "SystemName"]
