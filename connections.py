"""Connection checks at the editor boundary - no solver involvement."""

from dataclasses import dataclass, field

from balancer import CandidateEdge, is_valid_balancer_connection
from graph import BalancerNode, Node, PortSide, RecipeNode


@dataclass(frozen=True)
class Connection:
    """A proposed edge from an output port to an input port"""
    source: str
    source_port: int
    target: str
    target_port: int


@dataclass
class ValidationResult:
    """Result of a connection or edit check"""
    is_valid: bool
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def is_valid_recipe_connection(
    source: RecipeNode, source_port: int, target: RecipeNode, target_port: int
) -> bool:
    """Check a recipe-to-recipe connection.

    Precondition:
        source and target are RecipeNodes

    Postcondition:
        returns True iff both ports exist and the source's output material at
        source_port equals the target's input material at target_port

    Args:
        source: producing node
        source_port: output port index on source
        target: consuming node
        target_port: input port index on target

    Returns:
        True if the materials match
    """
    material = source.output_material(source_port)
    return material is not None and material == target.input_material(target_port)


def resolve_connection_material(connection: Connection, nodes: dict[str, Node]) -> str | None:
    """Work out which material a proposed edge would carry.

    Precondition:
        nodes maps ids to nodes

    Postcondition:
        a recipe source decides by its output port material
        a locked balancer source decides by its material
        otherwise a recipe target decides by its input port material,
        then a locked balancer target by its material
        returns None when no end has a material to offer

    Args:
        connection: proposed edge
        nodes: current nodes by id

    Returns:
        material name or None
    """
    source = nodes.get(connection.source)
    target = nodes.get(connection.target)

    if isinstance(source, RecipeNode):
        return source.output_material(connection.source_port)
    if isinstance(source, BalancerNode) and source.material is not None:
        return source.material
    if isinstance(target, RecipeNode):
        return target.input_material(connection.target_port)
    if isinstance(target, BalancerNode):
        return target.material
    return None


def _check_end(node: Node, side: PortSide, port: int, material: str | None, errors: list[str]) -> None:
    """Append an error if one end of the connection refuses the material."""
    if isinstance(node, BalancerNode):
        if not is_valid_balancer_connection(CandidateEdge(side, port, material), node):
            errors.append(
                f"Balancer {node.id} refuses {material} on {side.value} port {port}"
            )
        return

    port_material = node.output_material(port) if side is PortSide.OUTPUT else node.input_material(port)
    if port_material is None:
        errors.append(f"{node.id} has no {side.value} port {port}")
    elif port_material != material:
        errors.append(f"{node.id} {side.value} port {port} carries {port_material}, not {material}")


def validate_connection(
    connection: Connection, nodes: dict[str, Node], edges: list | None = None
) -> ValidationResult:
    """Validate a proposed edge before the editor accepts it.

    Precondition:
        nodes maps ids to nodes
        edges is None or the current list of Edge

    Postcondition:
        returns ValidationResult; is_valid is False when
            either endpoint is unknown
            the edge would carry no material
            a recipe port does not carry the edge material
            a balancer port is taken or locked to another material
            an identical edge already exists
        a self-loop is accepted with a warning

    Args:
        connection: proposed edge
        nodes: current nodes by id
        edges: current edges, used for duplicate detection

    Returns:
        ValidationResult with any warnings or errors
    """
    warnings = []
    errors = []

    source = nodes.get(connection.source)
    target = nodes.get(connection.target)
    if source is None:
        errors.append(f"Unknown source node {connection.source!r}")
    if target is None:
        errors.append(f"Unknown target node {connection.target!r}")
    if errors:
        return ValidationResult(is_valid=False, warnings=warnings, errors=errors)

    material = resolve_connection_material(connection, nodes)
    if material is None:
        errors.append("Neither end of the connection has a material yet")
        return ValidationResult(is_valid=False, warnings=warnings, errors=errors)

    _check_end(source, PortSide.OUTPUT, connection.source_port, material, errors)
    _check_end(target, PortSide.INPUT, connection.target_port, material, errors)

    for edge in edges or []:
        if (edge.source, edge.source_port, edge.target, edge.target_port) == (
            connection.source, connection.source_port, connection.target, connection.target_port
        ):
            errors.append("These ports are already connected")
            break

    if connection.source == connection.target:
        warnings.append(f"{connection.source} feeds itself")

    return ValidationResult(is_valid=not errors, warnings=warnings, errors=errors)
