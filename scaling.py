"""Recipe scaling: derive a node's machine count and rates from one target rate."""

from dataclasses import dataclass

from graph import RecipeNode, differs, round2


@dataclass(frozen=True)
class ScaledRecipe:
    """A consistent set of machine count and rates for one recipe node."""

    machines: float
    inputs: dict[str, float]
    outputs: dict[str, float]


def scale_recipe(node: RecipeNode, material: str, new_rate: float) -> ScaledRecipe | None:
    """Scale a recipe node so that one output runs at new_rate.

    Precondition:
        node is a RecipeNode
        new_rate is a number

    Postcondition:
        returns None if material is not a base output of node or its base rate is not positive
        otherwise returns a ScaledRecipe where
            machines = round2(new_rate / base rate of material)
            every rate = round2(base rate * that scale factor)
        node is never modified

    Args:
        node: recipe node to scale
        material: name of the output to pin
        new_rate: target rate for that output

    Returns:
        ScaledRecipe, or None for an invalid scale request
    """
    base_rate = node.base_outputs.get(material)
    if base_rate is None or base_rate <= 0:
        return None

    scale = new_rate / base_rate
    return ScaledRecipe(
        machines=round2(scale),
        inputs={m: round2(r * scale) for m, r in node.base_inputs.items()},
        outputs={m: round2(r * scale) for m, r in node.base_outputs.items()},
    )


def recompute_scale(node: RecipeNode, materials=None) -> float:
    """Largest output/base ratio of a node, the max-demand tie-break.

    Precondition:
        node is a RecipeNode
        materials is None or an iterable of output material names

    Postcondition:
        returns the maximum of outputs[m] / base_outputs[m] over the given
        materials (all outputs when materials is None), skipping zero base rates
        returns node.machines when every considered ratio is zero

    Args:
        node: recipe node to inspect
        materials: outputs that take part in the decision

    Returns:
        unrounded scale factor
    """
    if materials is None:
        materials = node.outputs.keys()

    max_scale = 0.0
    for material in materials:
        base_rate = node.base_outputs.get(material, 0.0)
        if base_rate > 0:
            max_scale = max(max_scale, node.outputs.get(material, 0.0) / base_rate)

    if max_scale == 0:
        max_scale = node.machines
    return max_scale


def apply_scale(node: RecipeNode, scale: float, resync_outputs: bool = True) -> bool:
    """Set a node's machine count and resynchronize its rates in place.

    Precondition:
        node is a RecipeNode
        scale >= 0

    Postcondition:
        machines is round2(scale) when that differs from the old value by more than EPSILON
        every input (and, when resync_outputs, every output) whose base-scaled
        rate differs by more than EPSILON is set to round2(base rate * scale)
        returns True if anything was written

    Args:
        node: recipe node to modify
        scale: unrounded scale factor
        resync_outputs: whether outputs follow the scale as well as inputs

    Returns:
        True if the node changed
    """
    changed = False

    new_machines = round2(scale)
    if differs(node.machines, new_machines):
        node.machines = new_machines
        changed = True

    tables = [(node.base_inputs, node.inputs)]
    if resync_outputs:
        tables.append((node.base_outputs, node.outputs))

    for base_table, rates in tables:
        for material, base_rate in base_table.items():
            expected = round2(base_rate * scale)
            if differs(rates.get(material, 0.0), expected):
                rates[material] = expected
                changed = True

    return changed
