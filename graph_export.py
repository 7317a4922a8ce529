"""Graphviz rendering of a solved production graph."""

from collections import Counter

import graphviz

from graph import BalancerNode, Edge, Node, RecipeNode, round2
from recipes import get_fluid_color, get_fluids

# items per minute a belt of each mark carries
CONVEYOR_SPEEDS = [30, 60, 120, 240]
# units per minute a pipe of each mark carries
PIPELINE_SPEEDS = [60, 120]


def _is_fluid(material: str) -> bool:
    """Check if a material is a fluid.

    Precondition:
        material is a string

    Postcondition:
        returns True if material is listed in the catalog's fluids

    Args:
        material: material name to check

    Returns:
        True if material is a fluid, False otherwise
    """
    return material in get_fluids()


def _get_conveyor_mark(flow_rate: float) -> int:
    """Determine which conveyor mark is needed for a given flow rate.

    Precondition:
        flow_rate is a non-negative float

    Postcondition:
        returns the smallest mark (1-4) whose speed covers flow_rate
        returns 4 for rates above the fastest belt

    Args:
        flow_rate: items per minute to transport

    Returns:
        conveyor belt mark number (1-4)
    """
    for mark, speed in enumerate(CONVEYOR_SPEEDS, start=1):
        if flow_rate <= speed:
            return mark
    return len(CONVEYOR_SPEEDS)


def _get_pipeline_mark(flow_rate: float) -> int:
    """Determine which pipeline mark is needed for a given flow rate.

    Precondition:
        flow_rate is a non-negative float

    Postcondition:
        returns the smallest mark (1-2) whose speed covers flow_rate
        returns 2 for rates above the fastest pipe
    """
    for mark, speed in enumerate(PIPELINE_SPEEDS, start=1):
        if flow_rate <= speed:
            return mark
    return len(PIPELINE_SPEEDS)


def _get_conveyor_stripe_color(mark: int) -> str:
    """Black stripes, one per mark, separated by white."""
    stripes = []
    for i in range(mark):
        stripes.append("black")
        if i < mark - 1:
            stripes.append("white")
    return ":".join(stripes)


def _get_pipeline_stripe_color(mark: int, fluid: str) -> str:
    """Grey-edged pipe with one band of fluid color per mark.

    Precondition:
        mark is 1 or 2
        fluid is listed in the catalog's fluids

    Postcondition:
        Mark 1: "grey:color:grey"
        Mark 2: "grey:color:color:grey"
    """
    color = get_fluid_color(fluid)
    return ":".join(["grey"] + [color] * mark + ["grey"])


def _get_edge_color(material: str, flow_rate: float) -> str:
    """Get the graphviz color for an edge carrying material at flow_rate.

    Precondition:
        material is a string
        flow_rate is a non-negative float

    Postcondition:
        fluids are drawn as pipelines, everything else as conveyors

    Args:
        material: material name
        flow_rate: rate carried by the edge

    Returns:
        graphviz color specification string
    """
    if _is_fluid(material):
        return _get_pipeline_stripe_color(_get_pipeline_mark(flow_rate), material)
    return _get_conveyor_stripe_color(_get_conveyor_mark(flow_rate))


def _edge_rate(edge: Edge, source: Node, fan_out: Counter) -> float:
    """Share of the source's output of edge.material carried by this edge.

    Postcondition:
        the source's output record is split evenly across its edges of that material
        returns 0 when the source has no such output
    """
    total = source.outputs.get(edge.material, 0.0)
    return round2(total / fan_out[(edge.source, edge.material)])


def _recipe_label(node: RecipeNode) -> str:
    inputs_str = ", ".join(f"{m} {r:g}" for m, r in node.inputs.items())
    outputs_str = ", ".join(f"{m} {r:g}" for m, r in node.outputs.items())
    return f"{node.machine} x{node.machines:g}\n{inputs_str}\n-> {outputs_str}"


def _add_node(dot: graphviz.Digraph, node: Node) -> None:
    """Add one recipe box or balancer diamond to the digraph."""
    if isinstance(node, BalancerNode):
        label = node.material or "balancer"
        if node.material is not None:
            label += f"\n{node.throughput:g}"
        dot.node(node.id, label, shape="diamond", style="filled", fillcolor="lightgrey")
        return

    if node.has_manual_override:
        fillcolor = "lightyellow"
    else:
        fillcolor = "lightblue"
    style = "filled,dashed" if node.is_unlocked else "filled"
    dot.node(node.id, _recipe_label(node), shape="box", style=style, fillcolor=fillcolor)


def to_digraph(nodes: list[Node], edges: list[Edge]) -> graphviz.Digraph:
    """Build a left-to-right graphviz digraph of a production graph.

    Precondition:
        node ids are unique

    Postcondition:
        every node becomes a graphviz node keyed by its id
        recipe nodes are boxes labelled with machine count and rates
        overridden recipe nodes are filled light yellow, unlocked ones dashed
        balancers are diamonds labelled with their material and throughput
        every edge whose endpoints exist is drawn with label "material\\nrate"
        and a conveyor or pipeline stripe color sized to its rate

    Args:
        nodes: solved nodes
        edges: graph edges

    Returns:
        graphviz.Digraph ready to render or print via .source
    """
    dot = graphviz.Digraph(comment="Production Graph")
    dot.attr(rankdir="LR")

    by_id = {node.id: node for node in nodes}
    for node in nodes:
        _add_node(dot, node)

    fan_out = Counter((edge.source, edge.material) for edge in edges)
    for edge in edges:
        source = by_id.get(edge.source)
        if source is None or edge.target not in by_id:
            continue
        rate = _edge_rate(edge, source, fan_out)
        color = _get_edge_color(edge.material, rate)
        dot.edge(edge.source, edge.target, label=f"{edge.material}\n{rate:g}", color=color, penwidth="2")

    return dot
