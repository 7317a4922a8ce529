"""Test graphviz export, conveyor and pipeline stripes."""

from graph import BalancerNode, Edge, new_recipe_node
from graph_export import (
    _get_conveyor_mark,
    _get_conveyor_stripe_color,
    _get_edge_color,
    _get_pipeline_mark,
    _get_pipeline_stripe_color,
    _is_fluid,
    to_digraph,
)
from recipes import get_recipe


def test_is_fluid():
    """Test fluid detection."""
    assert _is_fluid("Diesel")
    assert _is_fluid("CrudeOil")
    assert not _is_fluid("Rubber")
    assert not _is_fluid("Copper")


def test_get_conveyor_mark():
    """Test conveyor mark determination based on flow rate."""
    assert _get_conveyor_mark(16) == 1
    assert _get_conveyor_mark(30) == 1
    assert _get_conveyor_mark(31) == 2
    assert _get_conveyor_mark(120) == 3
    assert _get_conveyor_mark(240) == 4

    # Above max should still return mark 4
    assert _get_conveyor_mark(1000) == 4


def test_get_pipeline_mark():
    """Test pipeline mark determination based on flow rate."""
    assert _get_pipeline_mark(27) == 1
    assert _get_pipeline_mark(60) == 1
    assert _get_pipeline_mark(61) == 2
    assert _get_pipeline_mark(500) == 2


def test_get_conveyor_stripe_color():
    """Test conveyor stripe color pattern generation."""
    assert _get_conveyor_stripe_color(1) == "black"
    assert _get_conveyor_stripe_color(2) == "black:white:black"
    assert _get_conveyor_stripe_color(4) == "black:white:black:white:black:white:black"


def test_get_pipeline_stripe_color():
    """Test pipeline stripe color pattern generation."""
    assert _get_pipeline_stripe_color(1, "Diesel") == "grey:#D4A017:grey"
    assert _get_pipeline_stripe_color(2, "Diesel") == "grey:#D4A017:#D4A017:grey"


def test_get_edge_color():
    """Test unified edge color function."""
    assert _get_edge_color("Rubber", 24) == "black"
    assert _get_edge_color("Rubber", 100) == "black:white:black:white:black"
    assert _get_edge_color("Diesel", 12) == "grey:#D4A017:grey"
    assert _get_edge_color("Diesel", 100) == "grey:#D4A017:#D4A017:grey"


def test_to_digraph():
    """every node and edge appears in the graphviz source"""
    rubber = new_recipe_node("rubber", get_recipe("Rubber Maker"))
    rubber.is_unlocked = True
    asm = new_recipe_node("asm", get_recipe("Assembly I"))
    bal = BalancerNode("bal", material="Copper")
    empty = BalancerNode("empty")
    edges = [Edge("rubber", "asm", "Rubber"), Edge("bal", "asm", "Copper", 0, 1)]

    source = to_digraph([rubber, asm, bal, empty], edges).source

    assert "rankdir=LR" in source
    assert "rubber -> asm" in source
    assert "bal -> asm" in source
    assert "Rubber Maker x1" in source
    assert "shape=diamond" in source
    assert "filled,dashed" in source
    assert "balancer" in source
    print("✓ Digraph source generated")


def test_to_digraph_splits_shared_output():
    """an output feeding two edges shows half the rate on each"""
    rubber = new_recipe_node("rubber", get_recipe("Rubber Maker"))
    a = new_recipe_node("a", get_recipe("Assembly I"))
    b = new_recipe_node("b", get_recipe("Assembly I"))
    edges = [Edge("rubber", "a", "Rubber"), Edge("rubber", "b", "Rubber")]

    source = to_digraph([rubber, a, b], edges).source

    assert source.count("Rubber\n8") == 2


def test_to_digraph_skips_dangling_edges():
    """edges to missing nodes are not drawn"""
    rubber = new_recipe_node("rubber", get_recipe("Rubber Maker"))
    source = to_digraph([rubber], [Edge("rubber", "ghost", "Rubber")]).source
    assert "ghost" not in source
