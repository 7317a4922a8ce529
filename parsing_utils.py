"""Parsing of the "Material:Rate" and "node_id/Material:Rate" command-line forms."""


def _parse_rate_value(rate_str: str, material: str) -> float:
    """Convert rate string to float.

    Precondition:
        rate_str is a non-None string
        material is a non-None string (used for error messages)

    Postcondition:
        returns float value of rate_str

    Raises:
        ValueError: if rate_str cannot be converted to float
    """
    try:
        return float(rate_str)
    except ValueError as exc:
        raise ValueError(
            f"Invalid rate '{rate_str}' for {material}. Must be a number."
        ) from exc


def parse_material_rate(text: str) -> tuple[str, float]:
    """Parse a 'Material:Rate' string into a (material, rate) tuple.

    Precondition:
        text is a non-None string

    Postcondition:
        returns (material_name, rate) with the name trimmed and rate a float
        only the first colon separates material from rate

    Args:
        text: string in format "Material:Rate" (e.g., "Rubber:24")

    Returns:
        tuple of (material_name, rate)

    Raises:
        ValueError: if the colon is missing or rate is not a number
    """
    if ":" not in text:
        raise ValueError(f"Invalid format: '{text}'. Expected 'Material:Rate'")

    material, rate_str = (part.strip() for part in text.split(":", 1))
    return material, _parse_rate_value(rate_str, material)


def parse_node_material_rate(text: str) -> tuple[str, str, float]:
    """Parse a 'node_id/Material:Rate' string.

    Precondition:
        text is a non-None string

    Postcondition:
        returns (node_id, material_name, rate), all names trimmed
        only the first slash separates the node id

    Args:
        text: string like "node_3/Rubber:24"

    Returns:
        tuple of (node_id, material_name, rate)

    Raises:
        ValueError: if the slash or colon is missing, the node id is empty,
            or rate is not a number
    """
    if "/" not in text:
        raise ValueError(f"Invalid format: '{text}'. Expected 'node_id/Material:Rate'")

    node_id, rest = text.split("/", 1)
    node_id = node_id.strip()
    if not node_id:
        raise ValueError(f"Invalid format: '{text}'. Missing node id")

    material, rate = parse_material_rate(rest)
    return node_id, material, rate
