from retain_cycles.entities import *
from retain_cycles.events import RecordingSink
from retain_cycles.heap import Heap
from retain_cycles.ref_cell import Strong, Weak
import pytest


def test_deinit_notifications():
    sink = RecordingSink()
    heap = Heap()
    john = heap.alloc(Person("John Appleseed", sink))
    unit = heap.alloc(Apartment(73, sink))
    assert john.cell.label == "Person(John Appleseed)"
    assert unit.cell.label == "Apartment(#73)"
    unit.release()
    john.release()
    assert sink.messages == [
        "Apartment #73 is being deinitialized",
        "John Appleseed is being deinitialized",
    ]
    assert [(e.kind, e.ident) for e in sink.events] == [("Apartment", "73"), ("Person", "John Appleseed")]


def test_reassigning_apartment_releases_previous():
    sink = RecordingSink()
    heap = Heap()
    john = heap.alloc(Person("John", sink))
    a1 = heap.alloc(Apartment(1, sink))
    a2 = heap.alloc(Apartment(2, sink))

    john.get().apartment = a1.clone()
    assert a1.strong_count == 2
    john.get().apartment = a2.clone()
    assert a1.strong_count == 1
    assert a2.strong_count == 2

    a1.release()
    assert sink.messages == ["Apartment #1 is being deinitialized"]

    john.get().apartment = None
    assert a2.strong_count == 1
    john.release()
    a2.release()
    assert sink.messages == [
        "Apartment #1 is being deinitialized",
        "John is being deinitialized",
        "Apartment #2 is being deinitialized",
    ]
    assert len(heap) == 0


def test_owned_apartment_finalized_with_person():
    sink = RecordingSink()
    heap = Heap()
    john = heap.alloc(Person("John", sink))
    unit = heap.alloc(Apartment(7, sink))
    john.get().apartment = unit.clone()
    unit.release()
    assert sink.messages == []
    john.release()
    assert sink.messages == [
        "John is being deinitialized",
        "Apartment #7 is being deinitialized",
    ]


def test_edge_direction_is_typed():
    heap = Heap()
    john = heap.alloc(Person("John"))
    unit = heap.alloc(Apartment(73))
    leaky = heap.alloc(LeakyApartment(74))

    strong = john.clone()
    with pytest.raises(TypeError):
        unit.get().tenant = strong
    strong.release()

    weak = unit.downgrade()
    with pytest.raises(TypeError):
        john.get().apartment = weak
    weak.release()

    weak = john.downgrade()
    with pytest.raises(TypeError):
        leaky.get().tenant = weak
    weak.release()

    assert john.strong_count == 1
    assert john.weak_count == 0
    assert unit.weak_count == 0
    for h in [john, unit, leaky]:
        h.release()
    assert len(heap) == 0


def test_tenant_person():
    heap = Heap()
    john = heap.alloc(Person("John"))
    unit = heap.alloc(Apartment(73))
    assert unit.get().tenant_person() is None

    unit.get().tenant = john.downgrade()
    tenant = unit.get().tenant_person()
    assert tenant.ptr_eq(john)
    assert john.strong_count == 2
    tenant.release()

    john.release()
    assert unit.get().tenant_person() is None
    unit.release()
    assert len(heap) == 0


def test_immutable_identity():
    john = Person("John")
    with pytest.raises(AttributeError):
        john.name = "Jane"
    unit = Apartment(73)
    with pytest.raises(AttributeError):
        unit.number = 74
