"""Tests for recipe scaling"""

from graph import RecipeNode, new_recipe_node
from recipes import get_recipe
from scaling import ScaledRecipe, apply_scale, recompute_scale, scale_recipe


def _rubber_maker(**kwargs):
    node = new_recipe_node("rubber", get_recipe("Rubber Maker"))
    for key, value in kwargs.items():
        setattr(node, key, value)
    return node


def test_scale_recipe_rubber_maker():
    """scaling Rubber to 24 runs 1.5 machines"""
    node = _rubber_maker()
    scaled = scale_recipe(node, "Rubber", 24)

    assert scaled == ScaledRecipe(
        machines=1.5,
        inputs={"Diesel": 12.0, "Coal": 3.0},
        outputs={"Rubber": 24.0, "WasteWater": 6.0},
    )
    print(f"✓ Rubber Maker scaled to {scaled.machines} machines")


def test_scale_recipe_does_not_modify_node():
    """scale_recipe is a pure computation"""
    node = _rubber_maker()
    scale_recipe(node, "Rubber", 48)
    assert node.machines == 1.0
    assert node.outputs["Rubber"] == 16.0


def test_scale_recipe_rounds():
    """machines and rates are rounded to two places"""
    node = new_recipe_node("d", get_recipe("Basic Distiller"))
    scaled = scale_recipe(node, "Diesel", 12)
    assert scaled.machines == 0.44
    assert scaled.outputs["Diesel"] == 12.0
    assert scaled.inputs["CrudeOil"] == 26.67


def test_scale_recipe_unknown_material():
    """materials the node does not output cannot be scaled"""
    node = _rubber_maker()
    assert scale_recipe(node, "Diesel", 10) is None
    assert scale_recipe(node, "Copper", 10) is None


def test_scale_recipe_zero_base_rate():
    """a zero base rate cannot be scaled"""
    node = RecipeNode("n", "Odd", {"A": 1.0}, {"B": 0.0, "C": 2.0})
    assert scale_recipe(node, "B", 5) is None


def test_scale_recipe_to_zero():
    """a zero target idles the node"""
    scaled = scale_recipe(_rubber_maker(), "Rubber", 0)
    assert scaled.machines == 0.0
    assert all(rate == 0.0 for rate in scaled.inputs.values())
    assert all(rate == 0.0 for rate in scaled.outputs.values())


def test_recompute_scale_takes_largest_ratio():
    """the output needing the most machines decides"""
    node = _rubber_maker(outputs={"Rubber": 32.0, "WasteWater": 4.0})
    assert recompute_scale(node) == 2.0
    assert recompute_scale(node, ["WasteWater"]) == 1.0


def test_recompute_scale_falls_back_to_machines():
    """all-zero outputs keep the current machine count"""
    node = _rubber_maker(machines=3.0, outputs={"Rubber": 0.0, "WasteWater": 0.0})
    assert recompute_scale(node) == 3.0


def test_apply_scale():
    """apply_scale writes machines and rates, then settles"""
    node = _rubber_maker()
    assert apply_scale(node, 1.5)
    assert node.machines == 1.5
    assert node.inputs == {"Diesel": 12.0, "Coal": 3.0}
    assert node.outputs == {"Rubber": 24.0, "WasteWater": 6.0}

    # a second application has nothing left to write
    assert not apply_scale(node, 1.5)


def test_apply_scale_without_outputs():
    """outputs are left alone when not resynchronized"""
    node = _rubber_maker(outputs={"Rubber": 32.0, "WasteWater": 4.0})
    assert apply_scale(node, 2.0, resync_outputs=False)
    assert node.machines == 2.0
    assert node.inputs == {"Diesel": 16.0, "Coal": 4.0}
    assert node.outputs == {"Rubber": 32.0, "WasteWater": 4.0}
