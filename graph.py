"""Graph snapshot data model: recipe nodes, balancer nodes and edges."""

import json
from dataclasses import dataclass, field, replace
from enum import Enum

from frozendict import frozendict

from recipes import Recipe

# Rates and machine counts are rounded to this many decimal places
ROUND_DIGITS = 2
# Two rates closer than this are considered equal
EPSILON = 0.01
# Balancer ports per side never grow beyond this
MAX_BALANCER_PORTS = 7
# Full-mode relaxation runs at most this many passes per node
ITERATION_FACTOR = 3


class PortSide(Enum):
    """which side of a node a port sits on"""

    INPUT = "input"
    OUTPUT = "output"


def round2(value: float) -> float:
    """Round a rate or machine count to the system-wide granularity.

    Precondition:
        value is a finite number

    Postcondition:
        returns value rounded to ROUND_DIGITS decimal places

    Args:
        value: number to round

    Returns:
        rounded float
    """
    return round(value, ROUND_DIGITS)


def differs(a: float, b: float) -> bool:
    """True when two rates differ by more than EPSILON."""
    return abs(a - b) > EPSILON


def rounding_slack(base_rate: float) -> float:
    """Tolerance for comparing a rate against base_rate * machines.

    Precondition:
        base_rate is a number

    Postcondition:
        returns EPSILON widened by the error a rounded machine count
        introduces when multiplied by base_rate

    Args:
        base_rate: one-machine rate of the material

    Returns:
        non-negative tolerance
    """
    return EPSILON + abs(base_rate) * 0.5 * 10 ** -ROUND_DIGITS


@dataclass
class RecipeNode:
    """A scalable production unit with fixed per-machine input/output ratios."""

    id: str
    machine: str
    base_inputs: dict[str, float]
    base_outputs: dict[str, float]
    machines: float = 1.0
    inputs: dict[str, float] = field(default_factory=dict)
    outputs: dict[str, float] = field(default_factory=dict)
    has_manual_override: bool = False
    is_manual_locked: bool = False
    is_unlocked: bool = False

    def __post_init__(self):
        self.base_inputs = frozendict(self.base_inputs)
        self.base_outputs = frozendict(self.base_outputs)
        if not self.inputs:
            self.inputs = {m: round2(r * self.machines) for m, r in self.base_inputs.items()}
        if not self.outputs:
            self.outputs = {m: round2(r * self.machines) for m, r in self.base_outputs.items()}

    def copy(self) -> "RecipeNode":
        """independent copy; base tables are immutable and shared"""
        return replace(self, inputs=dict(self.inputs), outputs=dict(self.outputs))

    def input_material(self, port: int) -> str | None:
        """material of input port `port`, or None when out of range"""
        materials = list(self.base_inputs)
        return materials[port] if 0 <= port < len(materials) else None

    def output_material(self, port: int) -> str | None:
        """material of output port `port`, or None when out of range"""
        materials = list(self.base_outputs)
        return materials[port] if 0 <= port < len(materials) else None


@dataclass
class BalancerNode:
    """A passive router whose material is locked by its first connection."""

    id: str
    input_ports: int = 1
    output_ports: int = 1
    material: str | None = None
    connected_inputs: list[bool] = field(default_factory=list)
    connected_outputs: list[bool] = field(default_factory=list)
    # Mirror records, keyed by the locked material once there is one
    inputs: dict[str, float] = field(default_factory=dict)
    outputs: dict[str, float] = field(default_factory=dict)
    has_manual_override: bool = False

    def __post_init__(self):
        self.connected_inputs = _pad(self.connected_inputs, self.input_ports)
        self.connected_outputs = _pad(self.connected_outputs, self.output_ports)
        if self.material is not None:
            self.inputs.setdefault(self.material, 0.0)
            self.outputs.setdefault(self.material, 0.0)

    def copy(self) -> "BalancerNode":
        """independent copy of the balancer"""
        return replace(
            self,
            connected_inputs=list(self.connected_inputs),
            connected_outputs=list(self.connected_outputs),
            inputs=dict(self.inputs),
            outputs=dict(self.outputs),
        )

    def ports(self, side: PortSide) -> int:
        return self.input_ports if side is PortSide.INPUT else self.output_ports

    def connected(self, side: PortSide) -> list[bool]:
        return self.connected_inputs if side is PortSide.INPUT else self.connected_outputs

    @property
    def throughput(self) -> float:
        """rate routed through the balancer, 0 until a material is locked"""
        if self.material is None:
            return 0.0
        return self.outputs.get(self.material, 0.0)


Node = RecipeNode | BalancerNode


def _pad(flags: list[bool], length: int) -> list[bool]:
    """Extend a connection flag list with False up to length."""
    return list(flags) + [False] * (length - len(flags))


@dataclass(frozen=True)
class Edge:
    """A directed material link; carries no rate of its own."""

    source: str
    target: str
    material: str
    source_port: int = 0
    target_port: int = 0


def new_recipe_node(node_id: str, recipe: Recipe) -> RecipeNode:
    """Create a one-machine node for a catalog recipe.

    Precondition:
        node_id is unique within the graph
        recipe is a Recipe from the catalog

    Postcondition:
        returns a RecipeNode with machines = 1 and current rates equal to base rates

    Args:
        node_id: identifier for the new node
        recipe: machine archetype to instantiate

    Returns:
        new RecipeNode
    """
    return RecipeNode(
        id=node_id,
        machine=recipe.machine,
        base_inputs=recipe.inputs,
        base_outputs=recipe.outputs,
    )


def new_balancer_node(node_id: str) -> BalancerNode:
    """Create a balancer with one unconnected port on each side."""
    return BalancerNode(id=node_id)


def copy_nodes(nodes: list[Node]) -> dict[str, Node]:
    """Copy nodes into an arena keyed by id, preserving order.

    Precondition:
        node ids are unique

    Postcondition:
        returns dict id -> independent copy of each node
        mutating the copies never affects the given nodes

    Args:
        nodes: caller-owned nodes

    Returns:
        arena of copied nodes
    """
    return {node.id: node.copy() for node in nodes}


def node_to_dict(node: Node) -> dict:
    """Convert a node to a JSON-compatible dictionary.

    Precondition:
        node is a RecipeNode or BalancerNode

    Postcondition:
        returns a dict with a "kind" key ("recipe" or "balancer")
        node_from_dict(node_to_dict(node)) equals node

    Args:
        node: node to convert

    Returns:
        plain dictionary
    """
    if isinstance(node, RecipeNode):
        return {
            "kind": "recipe",
            "id": node.id,
            "machine": node.machine,
            "base_inputs": dict(node.base_inputs),
            "base_outputs": dict(node.base_outputs),
            "machines": node.machines,
            "inputs": dict(node.inputs),
            "outputs": dict(node.outputs),
            "has_manual_override": node.has_manual_override,
            "is_manual_locked": node.is_manual_locked,
            "is_unlocked": node.is_unlocked,
        }
    if isinstance(node, BalancerNode):
        return {
            "kind": "balancer",
            "id": node.id,
            "input_ports": node.input_ports,
            "output_ports": node.output_ports,
            "material": node.material,
            "connected_inputs": list(node.connected_inputs),
            "connected_outputs": list(node.connected_outputs),
            "inputs": dict(node.inputs),
            "outputs": dict(node.outputs),
        }
    raise TypeError(f"Unknown node type: {type(node).__name__}")


def node_from_dict(data: dict) -> Node:
    """Build a node from a dictionary produced by node_to_dict.

    Precondition:
        data has a "kind" key and the fields of that kind

    Postcondition:
        returns the matching RecipeNode or BalancerNode

    Args:
        data: plain dictionary

    Returns:
        reconstructed node

    Raises:
        ValueError: if kind is missing or unknown
        KeyError: if a required field is missing
    """
    kind = data.get("kind")
    if kind == "recipe":
        return RecipeNode(
            id=data["id"],
            machine=data["machine"],
            base_inputs=data["base_inputs"],
            base_outputs=data["base_outputs"],
            machines=float(data.get("machines", 1.0)),
            inputs=dict(data.get("inputs", {})),
            outputs=dict(data.get("outputs", {})),
            has_manual_override=data.get("has_manual_override", False),
            is_manual_locked=data.get("is_manual_locked", False),
            is_unlocked=data.get("is_unlocked", False),
        )
    if kind == "balancer":
        return BalancerNode(
            id=data["id"],
            input_ports=data.get("input_ports", 1),
            output_ports=data.get("output_ports", 1),
            material=data.get("material"),
            connected_inputs=list(data.get("connected_inputs", [])),
            connected_outputs=list(data.get("connected_outputs", [])),
            inputs=dict(data.get("inputs", {})),
            outputs=dict(data.get("outputs", {})),
        )
    raise ValueError(f"Unknown node kind: {kind!r}")


def edge_to_dict(edge: Edge) -> dict:
    return {
        "source": edge.source,
        "target": edge.target,
        "material": edge.material,
        "source_port": edge.source_port,
        "target_port": edge.target_port,
    }


def edge_from_dict(data: dict) -> Edge:
    return Edge(
        source=data["source"],
        target=data["target"],
        material=data["material"],
        source_port=data.get("source_port", 0),
        target_port=data.get("target_port", 0),
    )


def load_snapshot(path: str) -> tuple[list[Node], list[Edge]]:
    """Read a {"nodes": [...], "edges": [...]} JSON file.

    Precondition:
        path names a readable JSON file in the snapshot format

    Postcondition:
        returns (nodes, edges) in file order

    Args:
        path: file to read

    Returns:
        tuple of (nodes, edges)

    Raises:
        OSError: if the file cannot be read
        ValueError: if the JSON is malformed or a node kind is unknown
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    nodes = [node_from_dict(item) for item in data.get("nodes", [])]
    edges = [edge_from_dict(item) for item in data.get("edges", [])]
    return nodes, edges


def snapshot_to_dict(nodes: list[Node], edges: list[Edge]) -> dict:
    return {
        "nodes": [node_to_dict(node) for node in nodes],
        "edges": [edge_to_dict(edge) for edge in edges],
    }


def save_snapshot(path: str, nodes: list[Node], edges: list[Edge]) -> None:
    """Write nodes and edges to path as indented JSON."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot_to_dict(nodes, edges), f, indent=2)
