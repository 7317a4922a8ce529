#!/usr/bin/env python3
"""Command-line interface for solving production graph snapshots."""

import argparse
import json
import logging
import sys

from demand import seed_demands, solve_from_demands
from graph import Edge, Node, load_snapshot, snapshot_to_dict
from graph_controller import GraphController
from graph_export import to_digraph
from parsing_utils import parse_node_material_rate
from solver import SolveMode, SolveOptions, solve


def parse_demand_list(items):
    """Parse repeated "node_id/Material:Rate" demand arguments.

    Precondition:
        items is None or a list of strings

    Postcondition:
        returns one demand record per item, in order
        blank items are skipped

    Args:
        items: values collected from --demand

    Returns:
        list of {"node_id": ..., "material": ..., "rate": ...} dicts

    Raises:
        ValueError: if any item is malformed
    """
    result = []
    for item in [stripped for item in items or [] if (stripped := item.strip())]:
        node_id, material, rate = parse_node_material_rate(item)
        result.append({"node_id": node_id, "material": material, "rate": rate})
    return result


def _solve_snapshot(nodes: list[Node], edges: list[Edge], args: argparse.Namespace) -> list[Node]:
    """Run the requested solve steps on a loaded snapshot.

    Precondition:
        args holds parsed CLI arguments

    Postcondition:
        root demands, if any, seed the graph first
        --set-output edits through the controller, which picks the mode
        otherwise the solver runs in the requested mode

    Returns:
        solved nodes

    Raises:
        ValueError: for malformed arguments, unknown nodes or a rejected edit
    """
    demands = parse_demand_list(args.demand)
    if demands:
        nodes = solve_from_demands(nodes, edges, seed_demands(demands))

    if args.set_output:
        node_id, material, rate = parse_node_material_rate(args.set_output)
        controller = GraphController(nodes, edges)
        if not controller.update_output(node_id, material, rate):
            raise ValueError(f"Could not set {material} on {node_id}")
        return controller.get_nodes()

    return solve(nodes, edges, SolveOptions(args.changed_node, args.mode))


def _render(nodes: list[Node], edges: list[Edge], output_format: str) -> str:
    if output_format == "dot":
        return to_digraph(nodes, edges).source
    return json.dumps(snapshot_to_dict(nodes, edges), indent=2)


def _write_output(text: str, output_file: str | None) -> None:
    """Write rendered output to file or stdout.

    Postcondition:
        text is written to output_file, or printed to stdout when it is None
        a confirmation is printed to stderr after writing a file
    """
    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Result written to {output_file}", file=sys.stderr)
    else:
        print(text)


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Propagate demand through a production graph snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Re-solve a saved graph
  %(prog)s --graph factory.json

  # Seed demand from a consumer, then solve
  %(prog)s --graph factory.json --demand "node_1/Rubber:24"

  # Hand-edit one output and render to graphviz
  %(prog)s --graph factory.json --set-output "node_2/Rubber:32" --format dot
        """,
    )

    parser.add_argument("--graph", "-g", required=True, help="Snapshot JSON file to load")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SolveMode],
        default=SolveMode.FULL.value,
        help="Propagation mode (default: full)",
    )
    parser.add_argument("--changed-node", help="Node an upstream-only solve starts from")
    parser.add_argument(
        "--set-output", help='Set one output by hand as "node_id/Material:Rate"'
    )
    parser.add_argument(
        "--demand",
        "-d",
        action="append",
        help='Root demand as "node_id/Material:Rate" (repeatable)',
    )
    parser.add_argument(
        "--format", choices=["json", "dot"], default="json", help="Output format (default: json)"
    )
    parser.add_argument(
        "--output-file", "-f", help="Write output to file instead of stdout"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every propagation step")
    return parser


def main():
    """Main CLI function.

    Precondition:
        command-line arguments are available via sys.argv

    Postcondition:
        the snapshot is loaded, solved and written to file or stdout
        returns 0 on success, 1 on error

    Returns:
        exit code (0=success, 1=error)
    """
    parser = _create_argument_parser()
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    try:
        nodes, edges = load_snapshot(args.graph)
        print(f"Loaded {len(nodes)} nodes and {len(edges)} edges", file=sys.stderr)

        nodes = _solve_snapshot(nodes, edges, args)
        _write_output(_render(nodes, edges, args.format), args.output_file)
        return 0

    except (ValueError, KeyError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
