from __future__ import annotations
from retain_cycles.heap import Heap
from retain_cycles.ref_cell import RcCell, Weak, iter_handles
from dataclasses import dataclass, field
from typing import List, Mapping, Tuple
import logging

from pygraph.classes.digraph import digraph
from pygraph.algorithms.cycles import find_cycle
from pygraph.algorithms.accessibility import mutual_accessibility

logger = logging.getLogger(__name__)

# This module finds retain cycles among the live cells of a heap. Only strong handles become
# edges of the ownership graph: a cycle in it is a set of cells whose strong counts can never
# reach zero, no matter which outer bindings are dropped.

@dataclass
class OwnershipGraphBuilder:
    heap: Heap
    # node id -> cell, for the live cells of the heap
    cells: Mapping[int, RcCell] = field(default_factory=dict)
    # (owner, referent) pairs for weak handles; never part of the graph
    weak_edges: List[Tuple[int, int]] = field(default_factory=list)

    @classmethod
    def new(cls, heap: Heap) -> OwnershipGraphBuilder:
        cells = {id(cell): cell for cell in heap.live_cells()}
        return cls(heap, cells)


    def build(self) -> digraph:
        graph = digraph()
        graph.add_nodes(list(self.cells.keys()))

        for (node, cell) in self.cells.items():
            for (_, handle) in iter_handles(cell.v0):
                target = handle.cell
                if target is None or id(target) not in self.cells:
                    continue
                edge = (node, id(target))
                if isinstance(handle, Weak):
                    self.weak_edges.append(edge)
                elif not graph.has_edge(edge):
                    graph.add_edge(edge)

        return graph


def find_retain_cycle(heap: Heap) -> List[RcCell]:
    builder = OwnershipGraphBuilder.new(heap)
    graph = builder.build()
    cycle = find_cycle(graph)
    if cycle:
        logger.warning("retain cycle: " + " -> ".join(builder.cells[n].label for n in cycle))
    return [builder.cells[n] for n in cycle]


def cycle_members(heap: Heap) -> List[RcCell]:
    builder = OwnershipGraphBuilder.new(heap)
    graph = builder.build()
    components = mutual_accessibility(graph)
    ret = []
    for (node, cell) in builder.cells.items():
        if len(components[node]) > 1 or graph.has_edge((node, node)):
            ret.append(cell)
    return ret
