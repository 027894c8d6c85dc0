from retain_cycles.scenario import *
from retain_cycles.entities import Person, Apartment
from retain_cycles.events import RecordingSink
from retain_cycles.heap import Heap
import logging
import pytest


def test_weak_tenant_finalizes_in_order():
    heap = Heap()
    result = run_scenario(heap=heap)
    assert result.messages == [
        "John Appleseed is being deinitialized",
        "Apartment #73 is being deinitialized",
    ]
    assert [e.seq for e in result.events] == [0, 1]
    assert result.tenant_before == "John Appleseed"
    assert result.tenant_after is None
    assert result.is_leak_free
    assert result.cycle == []
    assert result.snapshot == []
    assert len(heap) == 0


def test_strong_tenant_leaks():
    heap = Heap()
    result = run_scenario(Variant.STRONG_TENANT, heap=heap)
    assert result.messages == []
    assert result.tenant_before == "John Appleseed"
    assert result.tenant_after == "John Appleseed"
    assert not result.is_leak_free
    assert result.leaked_labels == ["Person(John Appleseed)", "Apartment(#73)"]
    assert [s.strong_count for s in result.leaked] == [1, 1]
    assert result.cycle == ["Person(John Appleseed)", "Apartment(#73)"]
    assert [s.label for s in result.snapshot] == result.leaked_labels
    assert len(heap) == 2


def test_external_sink_receives_events():
    sink = RecordingSink()
    result = run_scenario(sink=sink, name="Jane", number=12)
    assert sink.messages == ["Jane is being deinitialized", "Apartment #12 is being deinitialized"]
    assert sink.events == result.events


def test_leak_is_logged(caplog):
    caplog.set_level(logging.WARNING)
    run_scenario(Variant.STRONG_TENANT)
    assert "leaked Person(John Appleseed)" in caplog.text
    assert "leaked Apartment(#73)" in caplog.text
    assert "retain cycle" in caplog.text


def test_counts_through_each_step():
    sink = RecordingSink()
    heap = Heap()
    john = heap.alloc(Person("John Appleseed", sink))
    unit = heap.alloc(Apartment(73, sink))
    assert john.strong_count == 1
    assert unit.strong_count == 1

    john.get().apartment = unit.clone()
    assert unit.strong_count == 2
    unit.get().tenant = john.downgrade()
    assert john.strong_count == 1
    assert john.weak_count == 1
    assert tenant_name(unit) == "John Appleseed"
    assert john.strong_count == 1

    person_cell = john.cell
    john.release()
    assert sink.messages == ["John Appleseed is being deinitialized"]
    assert unit.strong_count == 1
    assert person_cell.finalized
    assert person_cell in heap
    assert tenant_name(unit) is None

    unit.release()
    assert sink.messages == [
        "John Appleseed is being deinitialized",
        "Apartment #73 is being deinitialized",
    ]
    assert person_cell.freed
    assert len(heap) == 0
