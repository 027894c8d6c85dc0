from __future__ import annotations
from typing import Any, List, Optional
import threading
import logging

logger = logging.getLogger(__name__)

# heaps that still track cells; a leaked cycle keeps its heap reachable for the life of the
# process instead of being reclaimed by the cycle collector
_live_heaps = set()
_live_heaps_lock = threading.Lock()

# Registry of every cell that has been allocated and not yet freed. A cell stays here while
# either count is non-zero, so whatever is left after all outer bindings are dropped
# is either waiting on weak handles or leaked.

class Heap:
    def __init__(self, name: str = "heap"):
        self.name = name
        self._cells = {} # id(cell) -> cell, allocation order
        self._lock = threading.Lock()

    def alloc(self, payload: Any, label: Optional[str] = None):
        from retain_cycles.ref_cell import Strong
        return Strong.new(payload, self, label)

    def register(self, cell):
        with self._lock:
            self._cells[id(cell)] = cell
        with _live_heaps_lock:
            _live_heaps.add(self)
        logger.debug(f"[{self.name}] alloc {cell.label}")

    def unregister(self, cell):
        with self._lock:
            self._cells.pop(id(cell), None)
            empty = not self._cells
        if empty:
            with _live_heaps_lock:
                _live_heaps.discard(self)
        logger.debug(f"[{self.name}] freed {cell.label}")

    def cells(self) -> List:
        with self._lock:
            return list(self._cells.values())

    def live_cells(self) -> List:
        return [cell for cell in self.cells() if not cell.finalized]

    def snapshot(self) -> List:
        return [cell.stats() for cell in self.cells()]

    def leaked(self) -> List:
        # meaningful once every outer binding has been dropped
        return self.live_cells()

    def report_leaks(self) -> List:
        leaked = self.leaked()
        for cell in leaked:
            logger.warning(
                f"[{self.name}] leaked {cell.label}: strong_count={cell.strong_count}, "
                f"weak_count={cell.weak_count}")
        return leaked

    def __contains__(self, cell) -> bool:
        with self._lock:
            return id(cell) in self._cells

    def __len__(self):
        with self._lock:
            return len(self._cells)

    def __repr__(self):
        return f"Heap({self.name}, cells={len(self)})"


_default_heap = None
_default_heap_lock = threading.Lock()

def default_heap() -> Heap:
    global _default_heap
    with _default_heap_lock:
        if _default_heap is None:
            _default_heap = Heap("default")
        return _default_heap
