from __future__ import annotations
from retain_cycles.errors import (
    over_release_error, weak_over_release_error, null_dereference_error, released_handle_error
    )
from canoser import Struct, Uint64
from libra.rustlib import ensure
from enum import IntEnum
from typing import Any, Generic, Iterator, Optional, Tuple, TypeVar, Union
import sys
import threading
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CellState(IntEnum):
    LIVE = 0
    # strong_count reached 0, the finalizer is running
    FINALIZING = 1
    # payload detached, weak handles may still observe the cell
    FINALIZED = 2
    # strong_count == 0 and weak_count == 0
    FREED = 3


class CellStats(Struct):
    _fields = [
        ('label', str),
        ('strong_count', Uint64),
        ('weak_count', Uint64),
        ('finalized', bool),
    ]


def default_label(payload: Any) -> str:
    label = getattr(payload, 'rc_label', None)
    if label is not None:
        return label
    return type(payload).__name__


class RcCell(Generic[T]):
    """A payload plus its strong and weak reference counts.

    A fresh cell starts with strong_count == 1, owned by whoever created it. When the
    strong count drops to 0 the payload is finalized synchronously: its `deinit()` hook
    runs, then every Strong/Weak handle stored in its fields is released, then the
    payload is detached. The cell is freed (unregistered from its heap) once the weak
    count is 0 as well.

    All counter operations take the cell lock, so try_upgrade() cannot resurrect a
    payload whose strong count has already reached 0.
    """

    def __init__(self, payload: T, heap=None, label: Optional[str] = None):
        self.v0 = payload
        self.strong_count: Uint64 = 1
        self.weak_count: Uint64 = 0
        self.state = CellState.LIVE
        self.label = label if label is not None else default_label(payload)
        self.heap = heap
        self._lock = threading.Lock()
        if heap is not None:
            heap.register(self)

    @property
    def finalized(self) -> bool:
        return self.state >= CellState.FINALIZING

    @property
    def freed(self) -> bool:
        return self.state == CellState.FREED

    def retain(self):
        with self._lock:
            ensure(self.state == CellState.LIVE, "retain() on finalized cell {}", self.label)
            self.strong_count += 1
            count = self.strong_count
        logger.debug(f"retain {self.label}: strong_count -> {count}")

    def release(self):
        with self._lock:
            if self.strong_count == 0:
                raise over_release_error(self.label)
            self.strong_count -= 1
            count = self.strong_count
            if count == 0:
                self.state = CellState.FINALIZING
        logger.debug(f"release {self.label}: strong_count -> {count}")
        if count == 0:
            self._finalize()

    def retain_weak(self):
        with self._lock:
            self.weak_count += 1
            count = self.weak_count
        logger.debug(f"retain_weak {self.label}: weak_count -> {count}")

    def release_weak(self):
        with self._lock:
            if self.weak_count == 0:
                raise weak_over_release_error(self.label)
            self.weak_count -= 1
            count = self.weak_count
        logger.debug(f"release_weak {self.label}: weak_count -> {count}")
        self._maybe_free()

    def try_upgrade(self) -> Optional[Strong[T]]:
        with self._lock:
            if self.strong_count == 0:
                return None
            self.strong_count += 1
            count = self.strong_count
        logger.debug(f"upgrade {self.label}: strong_count -> {count}")
        return Strong._adopt(self)

    def stats(self) -> CellStats:
        return CellStats(self.label, self.strong_count, self.weak_count, self.finalized)

    def _finalize(self):
        payload = self.v0
        logger.info(f"finalizing {self.label}")
        try:
            deinit = getattr(payload, 'deinit', None)
            if callable(deinit):
                deinit()
        finally:
            try:
                # stored properties are released after deinit, in field order
                drop_fields(payload)
            finally:
                self.v0 = None
                self.state = CellState.FINALIZED
                self._maybe_free()

    def _maybe_free(self):
        with self._lock:
            if self.state != CellState.FINALIZED or self.weak_count != 0:
                return
            self.state = CellState.FREED
        logger.debug(f"free {self.label}")
        if self.heap is not None:
            self.heap.unregister(self)

    def __repr__(self):
        return (f"RcCell({self.label}, strong={self.strong_count}, weak={self.weak_count}, "
                f"state={self.state.name})")


class Strong(Generic[T]):
    """Owning handle. Each live Strong counts once toward its cell's strong_count.

    Binding a handle to another Python name aliases it; only clone() retains. Strong(cell)
    takes its own count on `cell`. The count is given back by release(), by leaving a
    `with` block, or when the handle object is collected.
    """

    def __init__(self, cell: RcCell[T]):
        cell.retain()
        self._cell = cell

    @classmethod
    def _adopt(cls, cell: RcCell[T]) -> Strong[T]:
        # takes over a count the caller already holds on the cell
        handle = cls.__new__(cls)
        handle._cell = cell
        return handle

    @classmethod
    def new(cls, payload: T, heap=None, label: Optional[str] = None) -> Strong[T]:
        if heap is None:
            from retain_cycles.heap import default_heap
            heap = default_heap()
        return cls._adopt(RcCell(payload, heap, label))

    @property
    def cell(self) -> Optional[RcCell[T]]:
        return self._cell

    @property
    def is_empty(self) -> bool:
        return self._cell is None

    @property
    def strong_count(self) -> Uint64:
        return self._live_cell().strong_count

    @property
    def weak_count(self) -> Uint64:
        return self._live_cell().weak_count

    def get(self) -> T:
        cell = self._live_cell()
        ensure(cell.state == CellState.LIVE, "{} reachable after finalization", cell.label)
        return cell.v0

    def clone(self) -> Strong[T]:
        if self._cell is None:
            raise released_handle_error("clone")
        return Strong(self._cell)

    __copy__ = clone

    def downgrade(self) -> Weak[T]:
        if self._cell is None:
            raise released_handle_error("downgrade")
        return Weak(self._cell)

    def release(self):
        cell = self._cell
        if cell is None:
            return
        self._cell = None
        cell.release()

    def ptr_eq(self, other: Union[Strong, Weak]) -> bool:
        return self._cell is not None and self._cell is other.cell

    def _live_cell(self) -> RcCell[T]:
        if self._cell is None:
            raise null_dereference_error()
        return self._cell

    def __enter__(self) -> Strong[T]:
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.release()

    def __del__(self):
        # handles still reachable at interpreter shutdown belong to leaked cells
        if getattr(self, '_cell', None) is not None and not sys.is_finalizing():
            self.release()

    def __repr__(self):
        if self._cell is None:
            return "Strong(<empty>)"
        return f"Strong({self._cell.label}, strong={self._cell.strong_count})"


class Weak(Generic[T]):
    """Non-owning handle. Counts toward weak_count only; reach the payload via upgrade()."""

    def __init__(self, cell: RcCell[T]):
        cell.retain_weak()
        self._cell = cell

    @property
    def cell(self) -> Optional[RcCell[T]]:
        return self._cell

    @property
    def strong_count(self) -> Uint64:
        if self._cell is None:
            return 0
        return self._cell.strong_count

    @property
    def weak_count(self) -> Uint64:
        if self._cell is None:
            return 0
        return self._cell.weak_count

    def upgrade(self) -> Optional[Strong[T]]:
        # a released weak handle observes nothing
        if self._cell is None:
            return None
        return self._cell.try_upgrade()

    def clone(self) -> Weak[T]:
        if self._cell is None:
            raise released_handle_error("clone")
        return Weak(self._cell)

    __copy__ = clone

    def release(self):
        cell = self._cell
        if cell is None:
            return
        self._cell = None
        cell.release_weak()

    def ptr_eq(self, other: Union[Strong, Weak]) -> bool:
        return self._cell is not None and self._cell is other.cell

    def __del__(self):
        # handles still reachable at interpreter shutdown belong to leaked cells
        if getattr(self, '_cell', None) is not None and not sys.is_finalizing():
            self.release()

    def __repr__(self):
        if self._cell is None:
            return "Weak(<empty>)"
        return f"Weak({self._cell.label}, strong={self._cell.strong_count})"


def iter_handles(payload: Any) -> Iterator[Tuple[str, Union[Strong, Weak]]]:
    """Yield (field name, handle) for every handle held by `payload`.

    Looks at instance attributes and one level into lists, tuples, sets and dict values.
    """
    fields = getattr(payload, '__dict__', None)
    if fields is None:
        return
    for (name, value) in list(fields.items()):
        if isinstance(value, (Strong, Weak)):
            yield (name, value)
        elif isinstance(value, (list, tuple, set, frozenset)):
            for item in list(value):
                if isinstance(item, (Strong, Weak)):
                    yield (name, item)
        elif isinstance(value, dict):
            for item in list(value.values()):
                if isinstance(item, (Strong, Weak)):
                    yield (name, item)


def drop_fields(payload: Any):
    # every handle is released even if one of them fails; the first error is re-raised
    fields = getattr(payload, '__dict__', None)
    error = None
    for (name, handle) in list(iter_handles(payload)):
        try:
            handle.release()
        except Exception as err:
            if error is None:
                error = err
        if fields.get(name) is handle:
            fields[name] = None
    if error is not None:
        raise error
