# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""CLI entry point for onnx-neuromorphic.

Usage::

    python -m onnx_neuromorphic model.onnx
    python -m onnx_neuromorphic model.onnx -o model_inferred.onnx
    python -m onnx_neuromorphic --list-schemas
"""

from __future__ import annotations

import argparse

import onnx_ir as ir

from onnx_neuromorphic import infer_shapes, registry


def _count_shapes(model: ir.Model) -> int:
    """Count the number of values with shapes in the model."""
    count = 0
    for node in model.graph.all_nodes():
        for output in node.outputs:
            if output.shape is not None:
                count += 1
    return count


def _list_schemas() -> None:
    from onnx_neuromorphic import _ops  # noqa: F401

    for schema in registry.schemas():
        inputs = ", ".join(p.name for p in schema.inputs)
        outputs = ", ".join(p.name for p in schema.outputs)
        print(
            f"{schema.domain or 'ai.onnx'}::{schema.name} "
            f"(since_version={schema.since_version}): ({inputs}) -> ({outputs})"
        )


def main(argv: list[str] | None = None) -> None:
    """Run shape inference on an ONNX model."""
    parser = argparse.ArgumentParser(
        prog="onnx_neuromorphic",
        description="Shape inference for neuromorphic ONNX operators.",
    )
    parser.add_argument("model", nargs="?", help="Path to the input ONNX model.")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Path to save the inferred model. If not provided, the model is not saved.",
    )
    parser.add_argument(
        "--in-place",
        action="store_true",
        help="Save the inferred model back to the input path.",
    )
    parser.add_argument(
        "--policy",
        choices=["skip", "override", "refine", "strict"],
        default="refine",
        help="Shape merge policy (default: refine).",
    )
    parser.add_argument(
        "--no-type-check",
        action="store_true",
        help="Do not validate node arity and element types against the schemas.",
    )
    parser.add_argument(
        "--list-schemas",
        action="store_true",
        help="List the registered operator schemas and exit.",
    )
    args = parser.parse_args(argv)

    if args.list_schemas:
        _list_schemas()
        return

    if args.model is None:
        parser.error("the following arguments are required: model")
    if args.output and args.in_place:
        parser.error("--output and --in-place are mutually exclusive.")

    model = ir.load(args.model)
    shapes_before = _count_shapes(model)

    infer_shapes(model, policy=args.policy, check_types=not args.no_type_check)

    shapes_after = _count_shapes(model)
    new_shapes = shapes_after - shapes_before
    print(f"New shapes created: {new_shapes}")

    save_path = args.model if args.in_place else args.output
    if save_path:
        ir.save(model, save_path)
        print(f"Saved inferred model to {save_path}")


if __name__ == "__main__":
    main()
