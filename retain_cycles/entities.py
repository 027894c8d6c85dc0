from __future__ import annotations
from retain_cycles.events import NotificationSink, LoggingSink
from retain_cycles.ref_cell import Strong, Weak
from libra.rustlib import format_str
from typing import Optional, Union


def _replace(old, new):
    # the previously held handle is given back as soon as it is overwritten
    if old is not None and old is not new:
        old.release()


def _check_handle(value, expected, field: str):
    if value is not None and not isinstance(value, expected):
        raise TypeError(format_str("{} must be {} or None, got {}",
            field, expected.__name__, type(value).__name__))


class Person:
    def __init__(self, name: str, sink: Optional[NotificationSink] = None):
        self._name = name
        self._apartment: Optional[Strong[Apartment]] = None
        self.sink = sink if sink is not None else LoggingSink()

    @property
    def name(self) -> str:
        return self._name

    # Person -> Apartment is the owning edge.
    @property
    def apartment(self) -> Optional[Strong[Apartment]]:
        return self._apartment

    @apartment.setter
    def apartment(self, value: Optional[Strong[Apartment]]):
        _check_handle(value, Strong, "apartment")
        old = self._apartment
        self._apartment = value
        _replace(old, value)

    @property
    def rc_label(self) -> str:
        return f"Person({self._name})"

    def deinit(self):
        self.sink.emit("Person", self._name, f"{self._name} is being deinitialized")

    def __repr__(self):
        return f"Person(name={self._name!r})"


class Apartment:
    # Apartment -> Person must not own the tenant, otherwise the two never finalize.
    tenant_handle = Weak

    def __init__(self, number: int, sink: Optional[NotificationSink] = None):
        self._number = number
        self._tenant: Optional[Union[Weak[Person], Strong[Person]]] = None
        self.sink = sink if sink is not None else LoggingSink()

    @property
    def number(self) -> int:
        return self._number

    @property
    def tenant(self):
        return self._tenant

    @tenant.setter
    def tenant(self, value):
        _check_handle(value, self.tenant_handle, "tenant")
        old = self._tenant
        self._tenant = value
        _replace(old, value)

    def tenant_person(self) -> Optional[Strong[Person]]:
        tenant = self._tenant
        if tenant is None:
            return None
        if isinstance(tenant, Weak):
            return tenant.upgrade()
        return tenant.clone()

    @property
    def rc_label(self) -> str:
        return f"Apartment(#{self._number})"

    def deinit(self):
        self.sink.emit("Apartment", self._number, f"Apartment #{self._number} is being deinitialized")

    def __repr__(self):
        return f"Apartment(number={self._number})"


class LeakyApartment(Apartment):
    """Apartment whose tenant edge is owning. Together with Person.apartment this forms a
    strong cycle, and neither object is ever finalized."""
    tenant_handle = Strong
