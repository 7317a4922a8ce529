"""Tests for connection validation"""

from connections import (
    Connection,
    is_valid_recipe_connection,
    resolve_connection_material,
    validate_connection,
)
from graph import BalancerNode, Edge, RecipeNode, new_balancer_node, new_recipe_node
from recipes import get_recipe


def _nodes():
    nodes = [
        new_recipe_node("rubber", get_recipe("Rubber Maker")),
        new_recipe_node("asm", get_recipe("Assembly I")),
        new_recipe_node("copper", get_recipe("Copper Electrolysis")),
        BalancerNode("bal", input_ports=2, material="Copper", connected_inputs=[True]),
        new_balancer_node("free"),
        new_balancer_node("free2"),
    ]
    return {node.id: node for node in nodes}


def test_recipe_connection_matches_port_materials():
    """recipe ports connect only when their materials agree"""
    nodes = _nodes()
    # Rubber Maker output 0 is Rubber, Assembly I input 0 is Rubber
    assert is_valid_recipe_connection(nodes["rubber"], 0, nodes["asm"], 0)
    # output 1 is WasteWater
    assert not is_valid_recipe_connection(nodes["rubber"], 1, nodes["asm"], 0)
    # input 1 is Copper
    assert not is_valid_recipe_connection(nodes["rubber"], 0, nodes["asm"], 1)
    assert not is_valid_recipe_connection(nodes["rubber"], 5, nodes["asm"], 0)


def test_resolve_connection_material():
    """the edge material comes from whichever end already has one"""
    nodes = _nodes()
    assert resolve_connection_material(Connection("rubber", 1, "asm", 0), nodes) == "WasteWater"
    assert resolve_connection_material(Connection("bal", 0, "asm", 0), nodes) == "Copper"
    assert resolve_connection_material(Connection("free", 0, "asm", 1), nodes) == "Copper"
    assert resolve_connection_material(Connection("free", 0, "bal", 1), nodes) == "Copper"
    assert resolve_connection_material(Connection("free", 0, "free2", 0), nodes) is None


def test_validate_valid_connection():
    """a matching recipe connection is accepted"""
    result = validate_connection(Connection("rubber", 0, "asm", 0), _nodes())
    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []


def test_validate_unknown_nodes():
    """both missing endpoints are reported"""
    result = validate_connection(Connection("ghost", 0, "phantom", 0), _nodes())
    assert not result.is_valid
    assert len(result.errors) == 2


def test_validate_port_mismatch():
    """a recipe port carrying another material is reported"""
    result = validate_connection(Connection("rubber", 0, "asm", 1), _nodes())
    assert not result.is_valid
    assert "carries Copper, not Rubber" in result.errors[0]


def test_validate_balancer_refuses_other_material():
    """a Copper balancer refuses Rubber"""
    result = validate_connection(Connection("rubber", 0, "bal", 1), _nodes())
    assert not result.is_valid
    assert "refuses Rubber" in result.errors[0]


def test_validate_balancer_taken_port():
    """a connected balancer port is refused"""
    result = validate_connection(Connection("copper", 0, "bal", 0), _nodes())
    assert not result.is_valid


def test_validate_balancer_free_port():
    """a free balancer port with the locked material is accepted"""
    result = validate_connection(Connection("copper", 0, "bal", 1), _nodes())
    assert result.is_valid


def test_validate_two_unlocked_balancers():
    """two unlocked balancers have no material to agree on"""
    result = validate_connection(Connection("free", 0, "free2", 0), _nodes())
    assert not result.is_valid
    assert "material" in result.errors[0]


def test_validate_duplicate_edge():
    """the same port pair cannot be connected twice"""
    edges = [Edge("rubber", "asm", "Rubber", 0, 0)]
    result = validate_connection(Connection("rubber", 0, "asm", 0), _nodes(), edges)
    assert not result.is_valid
    assert "already connected" in result.errors[0]


def test_validate_self_loop_warns():
    """a node feeding itself is allowed with a warning"""
    loop = RecipeNode("loop", "Loop", {"M": 10.0}, {"M": 5.0})
    result = validate_connection(Connection("loop", 0, "loop", 0), {"loop": loop})
    assert result.is_valid
    assert result.warnings == ["loop feeds itself"]
