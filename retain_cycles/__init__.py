from retain_cycles.errors import StatusCode, RcStatus, RcException
from retain_cycles.ref_cell import RcCell, Strong, Weak, CellStats, CellState
from retain_cycles.heap import Heap, default_heap
from retain_cycles.entities import Person, Apartment, LeakyApartment
from retain_cycles.scenario import Variant, ScenarioResult, run_scenario
from retain_cycles.version import version as __version__
