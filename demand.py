"""Root demands and the demand-seeded solve used when a graph has no rate state yet."""

import logging
from collections import Counter
from dataclasses import dataclass

from graph import ITERATION_FACTOR, BalancerNode, Edge, Node, copy_nodes, differs, round2
from scaling import scale_recipe

_LOGGER = logging.getLogger("demandflow")


@dataclass(frozen=True)
class Demand:
    """node `node_id` consumes `rate` of `material`"""

    node_id: str
    material: str
    rate: float


def seed_demands(demands: list[dict]) -> list[Demand]:
    """Turn caller-supplied demand records into Demand objects.

    Precondition:
        each item has "node_id", "material" and "rate" keys

    Postcondition:
        returns one Demand per item, in order, with rate converted to float

    Args:
        demands: list of {"node_id": ..., "material": ..., "rate": ...}

    Returns:
        list of Demand

    Raises:
        KeyError: if an item lacks a required key
        ValueError: if a rate is not a number
    """
    return [Demand(d["node_id"], d["material"], float(d["rate"])) for d in demands]


def solve_from_demands(nodes: list[Node], edges: list[Edge], root_demands: list[Demand]) -> list[Node]:
    """Scale producers outward from a set of root demands.

    Each demand on (node, material) rescales every producer feeding that
    input; the producer's new inputs become demands on its own producers.
    Balancers pass a demand through, split evenly across their feeders.
    Later edges into the same producer overwrite earlier ones.

    Precondition:
        node ids are unique
        every edge joins ports that agree on its material

    Postcondition:
        returns copies of nodes in input order; the given nodes are untouched
        at most ITERATION_FACTOR * len(nodes) passes over the edges are made

    Args:
        nodes: graph nodes
        edges: graph edges
        root_demands: demands to start from, e.g. from seed_demands

    Returns:
        list of solved nodes
    """
    arena = copy_nodes(nodes)
    demand_map: dict[tuple[str, str], float] = {}
    for demand in root_demands:
        demand_map[(demand.node_id, demand.material)] = demand.rate

    fan_in = Counter((edge.target, edge.material) for edge in edges)

    max_passes = ITERATION_FACTOR * len(arena)
    for pass_number in range(1, max_passes + 1):
        changed = False

        for edge in edges:
            key = (edge.target, edge.material)
            source = arena.get(edge.source)
            if key not in demand_map or source is None:
                continue
            demand = demand_map[key]
            if isinstance(arena.get(edge.target), BalancerNode):
                demand /= fan_in[key]

            if isinstance(source, BalancerNode):
                if source.material != edge.material:
                    continue
                source.outputs[edge.material] = round2(demand)
                source.inputs[edge.material] = round2(demand)
                next_demands = {edge.material: demand}
            else:
                scaled = scale_recipe(source, edge.material, demand)
                if scaled is None:
                    continue
                source.machines = scaled.machines
                source.inputs = dict(scaled.inputs)
                source.outputs = dict(scaled.outputs)
                next_demands = source.inputs

            for material, rate in next_demands.items():
                upstream_key = (source.id, material)
                if differs(demand_map.get(upstream_key, 0.0), rate):
                    demand_map[upstream_key] = rate
                    changed = True

        if not changed:
            _LOGGER.info("Demand seeding settled after %s passes", pass_number)
            break
    else:
        if max_passes:
            _LOGGER.warning("Demand seeding stopped at the %s-pass bound", max_passes)

    return list(arena.values())
