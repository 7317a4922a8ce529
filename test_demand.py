"""Tests for the demand-seeded solve"""

from pytest import raises

from demand import Demand, seed_demands, solve_from_demands
from graph import BalancerNode, Edge, RecipeNode, new_recipe_node, node_to_dict
from recipes import get_recipe


def _node(node_id, machine):
    return new_recipe_node(node_id, get_recipe(machine))


def _by_id(nodes):
    return {node.id: node for node in nodes}


def test_seed_demands():
    """demand records become Demand objects with float rates"""
    demands = seed_demands([{"node_id": "tires", "material": "Rubber", "rate": "24"}])
    assert demands == [Demand("tires", "Rubber", 24.0)]


def test_seed_demands_missing_key():
    """records without a rate are rejected"""
    with raises(KeyError):
        seed_demands([{"node_id": "tires", "material": "Rubber"}])


def test_seed_demands_bad_rate():
    """non-numeric rates are rejected"""
    with raises(ValueError):
        seed_demands([{"node_id": "tires", "material": "Rubber", "rate": "lots"}])


def test_solve_from_demands_walks_the_chain():
    """a root demand scales every producer upstream of it"""
    nodes = [
        _node("distiller", "Basic Distiller"),
        _node("rubber", "Rubber Maker"),
        RecipeNode("tires", "Tire Press", {"Rubber": 16.0}, {"Tire": 8.0}),
    ]
    edges = [
        Edge("distiller", "rubber", "Diesel", 0, 0),
        Edge("rubber", "tires", "Rubber", 0, 0),
    ]

    solved = _by_id(solve_from_demands(nodes, edges, [Demand("tires", "Rubber", 24)]))

    assert solved["rubber"].machines == 1.5
    assert solved["rubber"].inputs == {"Diesel": 12.0, "Coal": 3.0}
    assert solved["distiller"].machines == 0.44
    assert solved["distiller"].outputs["Diesel"] == 12.0
    # the root consumer itself is not rescaled
    assert solved["tires"].machines == 1.0
    print(f"✓ Distiller at {solved['distiller'].machines} machines")


def test_solve_from_demands_does_not_modify_input():
    """the caller's nodes are untouched"""
    nodes = [_node("rubber", "Rubber Maker"), _node("asm", "Assembly I")]
    edges = [Edge("rubber", "asm", "Rubber")]
    before = [node_to_dict(node) for node in nodes]

    solve_from_demands(nodes, edges, [Demand("asm", "Rubber", 8)])

    assert [node_to_dict(node) for node in nodes] == before


def test_solve_from_demands_splits_across_balancer_feeders():
    """demand through a balancer is shared evenly by its feeders"""
    nodes = [
        _node("copper1", "Copper Electrolysis"),
        _node("copper2", "Copper Electrolysis"),
        BalancerNode("bal", input_ports=3, output_ports=2, material="Copper",
                     connected_inputs=[True, True], connected_outputs=[True]),
        _node("asm", "Assembly I"),
    ]
    edges = [
        Edge("copper1", "bal", "Copper", 0, 0),
        Edge("copper2", "bal", "Copper", 0, 1),
        Edge("bal", "asm", "Copper", 0, 1),
    ]

    solved = _by_id(solve_from_demands(nodes, edges, [Demand("asm", "Copper", 16)]))

    assert solved["bal"].throughput == 16.0
    assert solved["copper1"].outputs == {"Copper": 8.0}
    assert solved["copper2"].outputs == {"Copper": 8.0}
    assert solved["copper1"].machines == 0.33


def test_solve_from_demands_without_roots():
    """no root demands means nothing changes"""
    nodes = [_node("rubber", "Rubber Maker"), _node("asm", "Assembly I")]
    edges = [Edge("rubber", "asm", "Rubber")]
    solved = solve_from_demands(nodes, edges, [])
    assert [node_to_dict(n) for n in solved] == [node_to_dict(n) for n in nodes]
