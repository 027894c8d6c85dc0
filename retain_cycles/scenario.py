from __future__ import annotations
from retain_cycles.entities import Person, Apartment, LeakyApartment
from retain_cycles.events import DeinitEvent, NotificationSink, RecordingSink, TeeSink
from retain_cycles.heap import Heap
from retain_cycles.ownership_graph import find_retain_cycle
from retain_cycles.ref_cell import CellStats, Strong
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class Variant(Enum):
    # Person -> Apartment strong, Apartment -> Person weak
    WEAK_TENANT = "weak"
    # both edges strong: a retain cycle
    STRONG_TENANT = "strong"


@dataclass
class ScenarioResult:
    variant: Variant
    events: List[DeinitEvent] = field(default_factory=list)
    # the tenant's name seen through the apartment, before and after the person binding is dropped
    tenant_before: Optional[str] = None
    tenant_after: Optional[str] = None
    leaked: List[CellStats] = field(default_factory=list)
    # every cell the heap still tracks at the end, leaked or waiting on weak handles
    snapshot: List[CellStats] = field(default_factory=list)
    cycle: List[str] = field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [event.message for event in self.events]

    @property
    def leaked_labels(self) -> List[str]:
        return [stats.label for stats in self.leaked]

    @property
    def is_leak_free(self) -> bool:
        return not self.leaked


def tenant_name(unit: Strong[Apartment]) -> Optional[str]:
    tenant = unit.get().tenant_person()
    if tenant is None:
        return None
    with tenant:
        return tenant.get().name


def run_scenario(
    variant: Variant = Variant.WEAK_TENANT,
    sink: Optional[NotificationSink] = None,
    heap: Optional[Heap] = None,
    name: str = "John Appleseed",
    number: int = 73,
) -> ScenarioResult:
    if heap is None:
        heap = Heap("scenario")
    recorder = RecordingSink()
    out = recorder if sink is None else TeeSink([recorder, sink])
    apartment_cls = Apartment if variant == Variant.WEAK_TENANT else LeakyApartment

    # construct
    john = heap.alloc(Person(name, out))
    unit = heap.alloc(apartment_cls(number, out))
    logger.debug(f"constructed {john!r} and {unit!r}")

    # link
    john.get().apartment = unit.clone()
    if variant == Variant.WEAK_TENANT:
        unit.get().tenant = john.downgrade()
    else:
        unit.get().tenant = john.clone()
    logger.debug(f"linked {john!r} <-> {unit!r}")

    result = ScenarioResult(variant)
    result.tenant_before = tenant_name(unit)

    # release the driver's bindings, person first
    john.release()
    logger.debug(f"released person binding, apartment is {unit!r}")
    result.tenant_after = tenant_name(unit)
    unit.release()
    logger.debug("released apartment binding")

    result.events = list(recorder.events)
    result.cycle = [cell.label for cell in find_retain_cycle(heap)]
    result.leaked = [cell.stats() for cell in heap.report_leaks()]
    result.snapshot = heap.snapshot()
    return result
