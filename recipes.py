import json
import os
from collections import defaultdict
from dataclasses import dataclass

from frozendict import frozendict

# All quantities are per-machine rates; a node scales them by its machine count


@dataclass(frozen=True)
class Recipe:
    """a machine archetype from the catalog"""

    machine: str
    inputs: dict[str, float]
    outputs: dict[str, float]


_DATA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "recipes.json")

with open(_DATA_PATH, "r", encoding="utf-8") as f:
    _DATA: dict = json.load(f)


_BY_MACHINE: dict[str, Recipe] = dict()
_BY_OUTPUT: dict[str, list[str]] = defaultdict(list)
_ALL_MATERIALS: set[str] = set()
_FLUIDS: dict[str, str] = dict(_DATA.get("fluids", {}))


def _create_recipe_object(machine: str, recipe_data: dict) -> Recipe:
    """Create a Recipe with frozen, insertion-ordered rate tables.

    Precondition:
        machine is a string machine name
        recipe_data contains "in" and "out" keys with dict values

    Postcondition:
        returns a Recipe whose inputs/outputs are frozendicts of floats
        port order follows the order of the raw data

    Args:
        machine: machine type name
        recipe_data: raw recipe dict with "in" and "out" keys

    Returns:
        Recipe object
    """
    inputs = frozendict((m, float(r)) for m, r in recipe_data["in"].items())
    outputs = frozendict((m, float(r)) for m, r in recipe_data["out"].items())
    return Recipe(machine, inputs, outputs)


def _register_recipe(recipe: Recipe) -> None:
    """Register a recipe in the machine, output and material lookups.

    Precondition:
        recipe is a Recipe object
        _BY_MACHINE, _BY_OUTPUT, _ALL_MATERIALS are module-level tables

    Postcondition:
        recipe is reachable by machine name and by each of its outputs
        every material it touches is in _ALL_MATERIALS
    """
    _BY_MACHINE[recipe.machine] = recipe
    for output in recipe.outputs:
        _BY_OUTPUT[output].append(recipe.machine)
    _ALL_MATERIALS.update(recipe.inputs.keys())
    _ALL_MATERIALS.update(recipe.outputs.keys())


# This is just to keep the global scope cleaner
def _populate_lookups():
    """Initialize all module-level lookup tables from recipe data."""
    for machine, recipe_data in _DATA["recipes"].items():
        _register_recipe(_create_recipe_object(machine, recipe_data))

_populate_lookups()


def get_recipe(machine: str) -> Recipe:
    """Get the recipe for a machine archetype.

    Precondition:
        machine is a non-empty string

    Postcondition:
        returns the catalog Recipe for that machine

    Args:
        machine: machine type name

    Returns:
        Recipe object

    Raises:
        KeyError: if machine is not in the catalog
    """
    return _BY_MACHINE[machine]


def get_all_recipes() -> dict[str, Recipe]:
    """Get all recipes by machine name.

    Postcondition:
        returns a shallow copy; modifying it does not affect the catalog
    """
    return _BY_MACHINE.copy()


def get_recipes_producing(material: str) -> list[Recipe]:
    """Get every recipe that outputs a given material, in catalog order.

    Precondition:
        material is a string

    Postcondition:
        returns a new list; empty when nothing produces material

    Args:
        material: material name to search for

    Returns:
        list of Recipe objects
    """
    return [_BY_MACHINE[machine] for machine in _BY_OUTPUT.get(material, [])]


def get_all_materials() -> set[str]:
    """Get every material appearing in any recipe (copy)."""
    return _ALL_MATERIALS.copy()


def get_fluids() -> list[str]:
    """Get all fluid material names.

    Returns:
        list of fluid material names (diesel, waste water, etc.)
    """
    return list(_FLUIDS.keys())


def get_fluid_color(fluid: str) -> str:
    """Get the hex color code for a given fluid.

    Precondition:
        fluid is a non-empty string

    Postcondition:
        returns hex color string for the fluid

    Args:
        fluid: fluid material name

    Returns:
        hex color code as string (e.g., "#D4A017")

    Raises:
        KeyError: if fluid is not in the catalog
    """
    return _FLUIDS[fluid]
