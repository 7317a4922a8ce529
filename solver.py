"""Demand propagation across a production graph.

Two modes share one entry point:

- full: iterative relaxation over the whole graph. Consumers' input rates
  become demand on their producers, producers rescale, and the passes repeat
  until nothing moves or ITERATION_FACTOR * node count passes have run.
- upstream-only: breadth-first walk backwards from one edited node, pulling
  its producers (and theirs) into line without touching anything downstream.

Every call works on its own copy of the nodes; the caller's objects are never
modified.
"""

import logging
from collections import Counter, defaultdict, deque
from dataclasses import dataclass
from enum import Enum

from graph import (
    ITERATION_FACTOR,
    BalancerNode,
    Edge,
    Node,
    RecipeNode,
    copy_nodes,
    differs,
    round2,
    rounding_slack,
)
from scaling import apply_scale, recompute_scale

_LOGGER = logging.getLogger("demandflow")


class SolveMode(Enum):
    """how far an edit is allowed to travel"""

    FULL = "full"
    UPSTREAM_ONLY = "upstream-only"


@dataclass(frozen=True)
class SolveOptions:
    """Where an edit originated and which propagation mode it asks for."""

    changed_node_id: str | None = None
    mode: SolveMode = SolveMode.FULL

    def __post_init__(self):
        # accept "full" / "upstream-only" as well as the enum
        object.__setattr__(self, "mode", SolveMode(self.mode))


@dataclass
class SolveResult:
    """Solved node copies plus how the solve went."""

    nodes: list[Node]
    mode: SolveMode
    iterations: int
    converged: bool


def solve(nodes: list[Node], edges: list[Edge], options: SolveOptions | None = None) -> list[Node]:
    """Propagate demand through the graph and return updated node copies.

    Precondition:
        node ids are unique
        every edge joins ports that agree on its material

    Postcondition:
        returns copies of nodes, in input order, with updated machines and rates
        the given nodes are not modified
        non-convergence is not an error; the best state found is returned

    Args:
        nodes: current graph nodes
        edges: current graph edges
        options: edit origin and mode; None means full mode

    Returns:
        list of solved nodes
    """
    return solve_with_report(nodes, edges, options).nodes


def solve_with_report(
    nodes: list[Node], edges: list[Edge], options: SolveOptions | None = None
) -> SolveResult:
    """Same as solve, also reporting mode, iteration count and convergence."""
    arena = copy_nodes(nodes)
    live_edges = _live_edges(arena, edges)
    mode = _select_mode(arena, options)

    if mode is SolveMode.UPSTREAM_ONLY:
        _LOGGER.info("Upstream-only propagation from %s", options.changed_node_id)
        iterations = _propagate_upstream(arena, live_edges, options.changed_node_id)
        converged = True
    else:
        _LOGGER.info("Full propagation across %s nodes", len(arena))
        iterations, converged = _propagate_full(arena, live_edges)

    return SolveResult(list(arena.values()), mode, iterations, converged)


def _select_mode(arena: dict[str, Node], options: SolveOptions | None) -> SolveMode:
    """Pick the propagation mode for this call.

    Precondition:
        arena holds the copied nodes

    Postcondition:
        returns UPSTREAM_ONLY only when requested with a changed node present in arena
        returns FULL otherwise
    """
    if options is None or options.mode is SolveMode.FULL:
        return SolveMode.FULL
    if options.changed_node_id not in arena:
        _LOGGER.warning(
            f"Upstream-only requested for unknown node {options.changed_node_id!r}, "
            "falling back to full propagation"
        )
        return SolveMode.FULL
    return SolveMode.UPSTREAM_ONLY


def _live_edges(arena: dict[str, Node], edges: list[Edge]) -> list[Edge]:
    """Drop edges whose endpoints are not part of this snapshot."""
    live = []
    for edge in edges:
        if edge.source in arena and edge.target in arena:
            live.append(edge)
        else:
            _LOGGER.debug(f"Ignoring dangling edge {edge.source} -> {edge.target} ({edge.material})")
    return live


def _fan_in(edges: list[Edge]) -> Counter:
    """Number of edges feeding each (target, material) pair."""
    return Counter((edge.target, edge.material) for edge in edges)


def _edge_demand(target: Node, material: str, fan_in: int) -> float | None:
    """Rate an edge into target asks of its source.

    Precondition:
        fan_in >= 1 is the number of edges feeding (target, material)

    Postcondition:
        returns None when target has no input record for material
        a recipe target asks each feeder for its full input rate
        a balancer target splits its input rate evenly across its feeders

    Args:
        target: node at the head of the edge
        material: edge material
        fan_in: edges feeding target with this material

    Returns:
        demanded rate or None
    """
    if material not in target.inputs:
        return None
    rate = target.inputs[material]
    if isinstance(target, BalancerNode):
        return rate / fan_in
    return rate


# ---------------------------------------------------------------- full mode


def _detect_overrides(arena: dict[str, Node]) -> None:
    """Flag recipe nodes whose outputs no longer follow base rate * machines.

    Postcondition:
        has_manual_override is recomputed for every recipe node
        balancers are never flagged
    """
    for node in arena.values():
        if isinstance(node, RecipeNode):
            node.has_manual_override = any(
                abs(node.outputs.get(material, 0.0) - base_rate * node.machines)
                > rounding_slack(base_rate)
                for material, base_rate in node.base_outputs.items()
            )
            if node.has_manual_override:
                _LOGGER.debug(f"  {node.id} is manually overridden")
        else:
            node.has_manual_override = False


def _accumulate_demands(arena: dict[str, Node], edges: list[Edge]) -> dict[str, dict[str, float]]:
    """Sum what every consumer asks of each producer, per material.

    Postcondition:
        returns {source_id: {material: total demanded rate}}
        only sources with at least one demanding edge appear
    """
    fan_in = _fan_in(edges)
    demands = defaultdict(lambda: defaultdict(float))
    for edge in edges:
        target = arena[edge.target]
        demand = _edge_demand(target, edge.material, fan_in[(edge.target, edge.material)])
        if demand is not None:
            demands[edge.source][edge.material] += demand
    return demands


def _update_sources(arena: dict[str, Node], demands: dict[str, dict[str, float]]) -> None:
    """Set each non-overridden producer's outputs to the demand on them."""
    for source_id, material_demands in demands.items():
        source = arena[source_id]
        if source.has_manual_override:
            continue

        for material, total in material_demands.items():
            if material not in source.outputs:
                continue
            total = round2(total)
            if differs(source.outputs[material], total):
                _LOGGER.debug(
                    f"  Updating {source_id} {material} output: {source.outputs[material]} -> {total}"
                )
            source.outputs[material] = total
            if isinstance(source, BalancerNode):
                source.inputs[material] = total


def _rescale(arena: dict[str, Node], demands: dict[str, dict[str, float]]) -> None:
    """Recompute machine counts and resynchronize rates of recipe nodes.

    Postcondition:
        overridden nodes and balancers are untouched
        a node with demand on some outputs scales to the largest demanded
        ratio and every rate follows that scale (over-producing the rest)
        a node with no demand keeps its outputs; machines and inputs follow
        the largest output ratio
    """
    for node in arena.values():
        if isinstance(node, BalancerNode):
            continue
        if node.has_manual_override:
            continue

        demanded = [m for m in demands.get(node.id, {}) if m in node.outputs]
        if demanded:
            apply_scale(node, recompute_scale(node, demanded))
        else:
            apply_scale(node, recompute_scale(node), resync_outputs=False)


def _rates_of(node: Node) -> tuple:
    machines = node.machines if isinstance(node, RecipeNode) else 0.0
    return machines, dict(node.inputs), dict(node.outputs)


def _any_changed(before: dict[str, tuple], arena: dict[str, Node]) -> bool:
    """True if any machine count or rate moved by more than EPSILON."""
    for node_id, node in arena.items():
        old_machines, old_inputs, old_outputs = before[node_id]
        machines, inputs, outputs = _rates_of(node)
        if differs(old_machines, machines):
            return True
        for old, new in ((old_inputs, inputs), (old_outputs, outputs)):
            if old.keys() != new.keys():
                return True
            if any(differs(old[m], new[m]) for m in new):
                return True
    return False


def _propagate_full(arena: dict[str, Node], edges: list[Edge]) -> tuple[int, bool]:
    """Relax the whole graph until equilibrium or the iteration bound.

    Precondition:
        arena holds private copies
        every edge endpoint is in arena

    Postcondition:
        arena is mutated in place
        returns (passes run, whether equilibrium was reached)
        at most ITERATION_FACTOR * len(arena) passes are run
    """
    _detect_overrides(arena)
    if not arena:
        return 0, True

    max_iterations = ITERATION_FACTOR * len(arena)
    for iteration in range(1, max_iterations + 1):
        _LOGGER.debug(f"=== Full propagation pass {iteration} ===")
        before = {node_id: _rates_of(node) for node_id, node in arena.items()}

        demands = _accumulate_demands(arena, edges)
        _update_sources(arena, demands)
        _rescale(arena, demands)

        if not _any_changed(before, arena):
            _LOGGER.info("Equilibrium reached after %s passes", iteration)
            return iteration, True

    _LOGGER.warning(
        f"No equilibrium after {max_iterations} passes, returning best-effort rates"
    )
    return max_iterations, False


# ------------------------------------------------------- upstream-only mode


def _pull_recipe_source(
    source: RecipeNode, material: str, demand: float, demanded: set[str]
) -> None:
    """Make a recipe producer's output match one consumer's input."""
    if material not in source.outputs:
        return
    if not differs(source.outputs[material], demand):
        return

    _LOGGER.debug(f"    Updating {source.id} {material} output: {source.outputs[material]} -> {demand}")
    source.outputs[material] = round2(demand)
    demanded.add(material)
    apply_scale(source, recompute_scale(source, demanded))


def _pull_balancer_source(
    source: BalancerNode, arena: dict[str, Node], outgoing: list[Edge], fan_in: Counter
) -> None:
    """Make a balancer's throughput match everything it feeds."""
    if source.material is None:
        return

    total = 0.0
    for edge in outgoing:
        demand = _edge_demand(
            arena[edge.target], edge.material, fan_in[(edge.target, edge.material)]
        )
        if demand is not None:
            total += demand
    total = round2(total)

    if differs(source.throughput, total):
        _LOGGER.debug(f"    Updating balancer {source.id} throughput: {source.throughput} -> {total}")
        source.outputs[source.material] = total
        source.inputs[source.material] = total


def _propagate_upstream(arena: dict[str, Node], edges: list[Edge], start_id: str) -> int:
    """Push a node's demand backwards through its producers only.

    Precondition:
        start_id is in arena
        every edge endpoint is in arena

    Postcondition:
        only producers reachable by walking edges backwards from start_id change
        each node is visited at most once
        returns the number of nodes visited
    """
    incoming = defaultdict(list)
    outgoing = defaultdict(list)
    for edge in edges:
        incoming[edge.target].append(edge)
        outgoing[edge.source].append(edge)
    fan_in = _fan_in(edges)
    demanded = defaultdict(set)

    visited = set()
    queue = deque([start_id])
    while queue:
        current_id = queue.popleft()
        if current_id in visited:
            continue
        visited.add(current_id)
        current = arena[current_id]
        _LOGGER.debug(f"  Processing upstream node: {current_id}")

        for edge in incoming[current_id]:
            source = arena[edge.source]
            if isinstance(source, BalancerNode):
                _pull_balancer_source(source, arena, outgoing[source.id], fan_in)
            else:
                demand = _edge_demand(current, edge.material, fan_in[(current_id, edge.material)])
                if demand is not None:
                    _pull_recipe_source(source, edge.material, demand, demanded[source.id])
            queue.append(edge.source)

    return len(visited)
