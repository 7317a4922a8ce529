"""Tests for parsing_utils module"""

from pytest import raises

from parsing_utils import parse_material_rate, parse_node_material_rate


def test_parse_material_rate_basic():
    """parse_material_rate should parse basic Material:Rate strings"""
    material, rate = parse_material_rate("Rubber:24")
    assert material == "Rubber"
    assert rate == 24.0

    print(f"✓ Parsed: {material} at {rate}/min")


def test_parse_material_rate_with_spaces():
    """parse_material_rate should handle extra whitespace"""
    material, rate = parse_material_rate("  Diesel : 12.5  ")
    assert material == "Diesel"
    assert rate == 12.5


def test_parse_material_rate_no_colon():
    """parse_material_rate should raise error without colon"""
    with raises(ValueError, match="Invalid format"):
        parse_material_rate("Rubber 24")


def test_parse_material_rate_invalid_rate():
    """parse_material_rate should raise error for non-numeric rate"""
    with raises(ValueError, match="Invalid rate"):
        parse_material_rate("Rubber:lots")


def test_parse_material_rate_multiple_colons():
    """only the first colon separates material from rate"""
    with raises(ValueError, match="Invalid rate"):
        parse_material_rate("Material:With:Colon:100")


def test_parse_material_rate_zero():
    """parse_material_rate should handle zero rate"""
    assert parse_material_rate("Coal:0") == ("Coal", 0.0)


def test_parse_node_material_rate():
    """parse_node_material_rate should split off the node id"""
    node_id, material, rate = parse_node_material_rate("node_3/Rubber:24")
    assert node_id == "node_3"
    assert material == "Rubber"
    assert rate == 24.0

    print(f"✓ Parsed: {node_id} {material} at {rate}/min")


def test_parse_node_material_rate_with_spaces():
    """names are trimmed on both sides of the slash"""
    assert parse_node_material_rate(" tires / Rubber : 8 ") == ("tires", "Rubber", 8.0)


def test_parse_node_material_rate_no_slash():
    """a missing node id separator is an error"""
    with raises(ValueError, match="node_id/Material:Rate"):
        parse_node_material_rate("Rubber:24")


def test_parse_node_material_rate_empty_node():
    """an empty node id is an error"""
    with raises(ValueError, match="Missing node id"):
        parse_node_material_rate("/Rubber:24")


def test_parse_node_material_rate_bad_rate():
    """rate errors come from parse_material_rate"""
    with raises(ValueError, match="Invalid rate"):
        parse_node_material_rate("tires/Rubber:x")
