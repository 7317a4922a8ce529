"""Controller for the production graph editor - no GUI dependencies"""

import logging
from typing import Optional

from balancer import CandidateEdge, apply_balancer_events, plan_balancer_connection
from connections import (
    Connection,
    ValidationResult,
    resolve_connection_material,
    validate_connection,
)
from graph import (
    BalancerNode,
    Edge,
    Node,
    PortSide,
    RecipeNode,
    new_balancer_node,
    new_recipe_node,
)
from recipes import get_recipe
from scaling import scale_recipe
from solver import SolveMode, SolveOptions, SolveResult, solve_with_report

_LOGGER = logging.getLogger("demandflow")


class GraphController:
    """Stateful editor model - single owner of the node and edge tables.

    Every edit follows the same cycle: build the candidate tables, solve them,
    and only then swap them in. A failed solve leaves the previous state.
    """

    def __init__(self, nodes: Optional[list[Node]] = None, edges: Optional[list[Edge]] = None):
        """Initialize controller with an optional existing graph.

        Precondition:
            node ids are unique
            edges reference nodes in nodes

        Postcondition:
            controller holds copies of the given nodes and edges
            no solve has been run yet

        Args:
            nodes: starting nodes
            edges: starting edges
        """
        self._nodes: dict[str, Node] = {node.id: node.copy() for node in nodes or []}
        self._edges: list[Edge] = list(edges or [])
        self._next_id = 1
        self._last_result: Optional[SolveResult] = None

    # ========== State Getters ==========

    def get_nodes(self) -> list[Node]:
        """Get copies of all nodes in creation order."""
        return [node.copy() for node in self._nodes.values()]

    def get_edges(self) -> list[Edge]:
        """Get a copy of the edge list."""
        return list(self._edges)

    def get_node(self, node_id: str) -> Node:
        """Get a copy of one node.

        Raises:
            ValueError: if node_id is unknown
        """
        return self._require(node_id).copy()

    def get_last_result(self) -> Optional[SolveResult]:
        """Report of the most recent successful solve, or None."""
        return self._last_result

    # ========== Node Actions ==========

    def add_recipe_node(self, machine: str) -> Optional[str]:
        """Place a one-machine recipe node and re-solve.

        Precondition:
            machine names a catalog recipe

        Postcondition:
            a new RecipeNode with machines = 1 is part of the graph
            returns its id, or None (state unchanged) if the solve failed

        Args:
            machine: machine archetype name

        Returns:
            id of the new node or None

        Raises:
            ValueError: if machine is not in the catalog
        """
        try:
            recipe = get_recipe(machine)
        except KeyError as exc:
            raise ValueError(f"Unknown machine '{machine}'") from exc

        node = new_recipe_node(self._new_id("node"), recipe)
        nodes = self._copy_table()
        nodes[node.id] = node
        _LOGGER.info("Adding %s as %s", machine, node.id)
        if not self._commit(nodes, self._edges):
            return None
        return node.id

    def add_balancer_node(self) -> str:
        """Place an unconnected balancer; no solve is needed."""
        node = new_balancer_node(self._new_id("balancer"))
        self._nodes[node.id] = node
        _LOGGER.info("Adding balancer %s", node.id)
        return node.id

    def delete_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it, then re-solve.

        Precondition:
            node_id is a known node

        Postcondition:
            on success neither the node nor its edges remain
            returns False (state unchanged) if the solve failed

        Raises:
            ValueError: if node_id is unknown
        """
        self._require(node_id)
        nodes = self._copy_table()
        del nodes[node_id]
        edges = [e for e in self._edges if e.source != node_id and e.target != node_id]
        _LOGGER.info("Deleting %s and %s edges", node_id, len(self._edges) - len(edges))
        return self._commit(nodes, edges)

    def update_output(self, node_id: str, material: str, rate: float) -> bool:
        """Set one output of a recipe node by hand and propagate the change.

        Precondition:
            node_id names a RecipeNode

        Postcondition:
            rate is clamped to >= 0
            the node is rescaled so that material runs at rate and marked overridden
            an unlocked node propagates upstream-only, any other node in full mode
            returns False (state unchanged) for an invalid scale request or a failed solve

        Args:
            node_id: edited node
            material: output to set
            rate: new output rate

        Returns:
            True if the edit was applied

        Raises:
            ValueError: if node_id is unknown or is a balancer
        """
        node = self._require(node_id)
        if not isinstance(node, RecipeNode):
            raise ValueError(f"{node_id} is a balancer; its rates follow its edges")

        rate = max(0.0, rate)
        scaled = scale_recipe(node, material, rate)
        if scaled is None:
            _LOGGER.warning("%s has no output %s; edit ignored", node_id, material)
            return False

        edited = node.copy()
        edited.machines = scaled.machines
        edited.inputs = dict(scaled.inputs)
        edited.outputs = dict(scaled.outputs)
        edited.has_manual_override = True

        nodes = self._copy_table()
        nodes[node_id] = edited
        mode = SolveMode.UPSTREAM_ONLY if edited.is_unlocked else SolveMode.FULL
        _LOGGER.info("Setting %s %s output to %s (%s)", node_id, material, rate, mode.value)
        return self._commit(nodes, self._edges, SolveOptions(node_id, mode))

    def set_unlocked(self, node_id: str, unlocked: bool) -> ValidationResult:
        """Switch a recipe node in or out of upstream-only editing.

        Precondition:
            node_id names a RecipeNode

        Postcondition:
            unlocking is refused when any directly connected node is already unlocked
            locking is always accepted

        Args:
            node_id: node to change
            unlocked: new flag value

        Returns:
            ValidationResult describing the outcome

        Raises:
            ValueError: if node_id is unknown or is a balancer
        """
        node = self._require(node_id)
        if not isinstance(node, RecipeNode):
            raise ValueError(f"{node_id} is a balancer and cannot be unlocked")

        if unlocked:
            blockers = sorted(
                neighbor_id
                for neighbor_id in self._neighbors(node_id)
                if isinstance(self._nodes[neighbor_id], RecipeNode) and self._nodes[neighbor_id].is_unlocked
            )
            if blockers:
                message = f"{node_id} is next to unlocked {', '.join(blockers)}"
                _LOGGER.warning(message)
                return ValidationResult(is_valid=False, errors=[message])

        node.is_unlocked = unlocked
        return ValidationResult(is_valid=True)

    def set_manual_locked(self, node_id: str, locked: bool) -> None:
        """Record the user-facing lock flag on a recipe node.

        Raises:
            ValueError: if node_id is unknown or is a balancer
        """
        node = self._require(node_id)
        if not isinstance(node, RecipeNode):
            raise ValueError(f"{node_id} is a balancer and cannot be locked")
        node.is_manual_locked = locked

    # ========== Edge Actions ==========

    def connect(self, connection: Connection) -> ValidationResult:
        """Validate and add an edge, update balancer state and re-solve.

        Precondition:
            none

        Postcondition:
            invalid connections change nothing and return the errors
            valid connections lock balancer materials, mark balancer ports
            connected, grow balancer sides, add the edge and re-solve

        Args:
            connection: proposed edge

        Returns:
            ValidationResult for the proposal
        """
        validation = validate_connection(connection, self._nodes, self._edges)
        if not validation.is_valid:
            _LOGGER.info("Rejected connection: %s", "; ".join(validation.errors))
            return validation

        nodes = self._copy_table()
        ends = (
            (connection.source, PortSide.OUTPUT, connection.source_port),
            (connection.target, PortSide.INPUT, connection.target_port),
        )
        material = resolve_connection_material(connection, nodes)

        for node_id, side, port in ends:
            node = nodes[node_id]
            if isinstance(node, BalancerNode):
                events = plan_balancer_connection(CandidateEdge(side, port, material), node)
                nodes[node_id] = apply_balancer_events(node, events)

        edge = Edge(
            source=connection.source,
            target=connection.target,
            material=material,
            source_port=connection.source_port,
            target_port=connection.target_port,
        )
        if not self._commit(nodes, self._edges + [edge]):
            validation.is_valid = False
            validation.errors.append("Solver failed; connection discarded")
        return validation

    def delete_edge(self, edge: Edge) -> bool:
        """Remove one edge and re-solve.

        Postcondition:
            balancer ports stay marked connected and are not offered again
            returns False if the edge is unknown or the solve failed
        """
        if edge not in self._edges:
            return False
        edges = list(self._edges)
        edges.remove(edge)
        return self._commit(self._copy_table(), edges)

    def solve(self) -> bool:
        """Re-solve the current graph in full mode."""
        return self._commit(self._copy_table(), self._edges)

    # ========== Internals ==========

    def _require(self, node_id: str) -> Node:
        if node_id not in self._nodes:
            raise ValueError(f"Unknown node '{node_id}'")
        return self._nodes[node_id]

    def _new_id(self, prefix: str) -> str:
        while f"{prefix}_{self._next_id}" in self._nodes:
            self._next_id += 1
        node_id = f"{prefix}_{self._next_id}"
        self._next_id += 1
        return node_id

    def _copy_table(self) -> dict[str, Node]:
        return {node_id: node.copy() for node_id, node in self._nodes.items()}

    def _neighbors(self, node_id: str) -> set[str]:
        neighbors = set()
        for edge in self._edges:
            if edge.source == node_id:
                neighbors.add(edge.target)
            if edge.target == node_id:
                neighbors.add(edge.source)
        neighbors.discard(node_id)
        return neighbors & self._nodes.keys()

    def _commit(
        self, nodes: dict[str, Node], edges: list[Edge], options: Optional[SolveOptions] = None
    ) -> bool:
        """Solve candidate tables and swap them in on success.

        Precondition:
            nodes and edges are owned by the controller (not shared with callers)

        Postcondition:
            on success the controller holds the solved nodes and the given edges
            on any solver exception the error is logged and the previous state is kept

        Returns:
            True if the candidate state was committed
        """
        try:
            result = solve_with_report(list(nodes.values()), edges, options)
        except Exception:
            _LOGGER.exception("Solver error; keeping the previous graph")
            return False

        self._nodes = {node.id: node for node in result.nodes}
        self._edges = list(edges)
        self._last_result = result
        return True
