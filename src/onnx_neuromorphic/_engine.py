# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Shape inference engine.

This module contains the graph-traversal logic that looks up each node's
schema, validates the node against it, and runs the schema's inference
function with a fresh :class:`~onnx_neuromorphic.InferenceContext`.
"""

from __future__ import annotations

__all__ = [
    "check_node",
    "infer_shapes",
]

import logging

import onnx_ir as ir

from onnx_neuromorphic import _context, _registry
from onnx_neuromorphic._schema import OpSchema

logger = logging.getLogger(__name__)


def infer_shapes(
    model: ir.Model,
    *,
    policy: _context.ShapeMergePolicy = "refine",
    warn_on_missing: bool = True,
    check_types: bool = True,
) -> ir.Model:
    """Perform shape inference on the model.

    Traverses every graph in *model* in node order, applying the inference
    function of each node's registered schema.  The model is modified
    **in place** and also returned for convenience.

    Args:
        model: The model to perform shape inference on.
        policy: How to merge inferred shapes with existing shapes. Under
            ``"skip"``, node failures are logged and traversal continues.
        warn_on_missing: If ``True``, log warnings for ops without
            a registered schema.
        check_types: If ``True``, validate each node's arity and input
            element types against its schema before inference.

    Returns:
        The same *model* object, with shapes updated in place.

    Example::

        import onnx_ir as ir
        from onnx_neuromorphic import infer_shapes

        model = ir.load("model.onnx")
        model = infer_shapes(model)
    """
    _infer_shapes(
        model, policy=policy, warn_on_missing=warn_on_missing, check_types=check_types
    )
    return model


def _infer_shapes(
    model: ir.Model,
    *,
    policy: _context.ShapeMergePolicy = "refine",
    warn_on_missing: bool = True,
    check_types: bool = True,
) -> bool:
    """Core implementation that returns whether the model was modified."""
    # Import ops to trigger registration
    from onnx_neuromorphic import _ops  # noqa: F401

    ctx = _context.ShapeInferenceContext(model.opset_imports, policy=policy)
    _reserve_dim_names(ctx, model.graph)

    return _process_graph(
        ctx, model.graph, warn_on_missing=warn_on_missing, check_types=check_types
    )


def _subgraphs(node: ir.Node) -> list[ir.Graph]:
    return [
        attr.as_graph()
        for attr in node.attributes.values()
        if isinstance(attr, ir.Attr) and attr.type == ir.AttributeType.GRAPH
    ]


def _reserve_dim_names(ctx: _context.ShapeInferenceContext, graph: ir.Graph) -> None:
    """Reserve every symbolic dim name already present in *graph* and its subgraphs."""
    for value in (*graph.inputs, *graph.outputs, *graph.initializers.values()):
        ctx.reserve_dim_names(value)
    for node in graph:
        for value in (*node.inputs, *node.outputs):
            if value is not None:
                ctx.reserve_dim_names(value)
        for subgraph in _subgraphs(node):
            _reserve_dim_names(ctx, subgraph)


def check_node(schema: OpSchema, node: ir.Node) -> list[str]:
    """Validate a node's structure, attributes and input element types against its schema.

    Args:
        schema: The schema the node was resolved to.
        node: The node to validate.

    Returns:
        A list of human-readable problems; empty if the node is valid.
    """
    problems: list[str] = []

    max_inputs = schema.max_inputs
    if max_inputs is not None and len(node.inputs) > max_inputs:
        problems.append(f"Expected at most {max_inputs} input(s), got {len(node.inputs)}")
    max_outputs = schema.max_outputs
    if max_outputs is not None and len(node.outputs) > max_outputs:
        problems.append(f"Expected at most {max_outputs} output(s), got {len(node.outputs)}")

    for slot in schema.inputs:
        if not slot.is_required:
            continue
        if slot.index >= len(node.inputs) or node.inputs[slot.index] is None:
            problems.append(f"Required input '{slot.name}' (#{slot.index}) is missing")

    for name, attr in node.attributes.items():
        declared = schema.attribute(name)
        if declared is None:
            problems.append(f"Attribute '{name}' is not declared by {schema.name}")
        elif attr.type != declared.type:
            problems.append(
                f"Attribute '{name}' has kind {attr.type.name}, expected {declared.type.name}"
            )
    for declared in schema.attributes:
        if declared.required and declared.name not in node.attributes:
            problems.append(f"Required attribute '{declared.name}' is missing")

    # Type parameters bind to the first element type seen for them
    bindings: dict[str, ir.DataType] = {}
    for i, value in enumerate(node.inputs):
        slot = schema.input_slot(i)
        if value is None or slot is None or value.dtype is None:
            continue
        constraint = schema.type_constraint(slot.type_str)
        if constraint is not None and value.dtype not in constraint.allowed_types:
            allowed = ", ".join(sorted(t.name for t in constraint.allowed_types))
            problems.append(
                f"Input '{slot.name}' (#{i}) has element type {value.dtype.name}, "
                f"expected one of {{{allowed}}} for '{slot.type_str}'"
            )
            continue
        bound = bindings.setdefault(slot.type_str, value.dtype)
        if bound != value.dtype:
            problems.append(
                f"Input '{slot.name}' (#{i}) has element type {value.dtype.name}, but "
                f"'{slot.type_str}' is already bound to {bound.name}"
            )

    return problems


def _process_graph(
    ctx: _context.ShapeInferenceContext,
    graph: ir.Graph,
    *,
    warn_on_missing: bool = True,
    check_types: bool = True,
) -> bool:
    """Process a single graph.

    Args:
        ctx: The shape inference context.
        graph: The graph to process.
        warn_on_missing: If ``True``, log warnings for ops without
            a registered schema.
        check_types: If ``True``, validate nodes against their schemas.

    Returns:
        ``True`` if any shapes were modified.
    """
    modified = False
    warned_ops: set[tuple[str, str]] = set()

    # Assign unique names to any anonymous (None) dims on graph inputs
    for value in graph.inputs:
        if ctx.name_anonymous_dims(value):
            modified = True

    # Traverse nodes in topological order
    for node in graph:
        # Recursively process any subgraphs
        for subgraph in _subgraphs(node):
            if _process_graph(
                ctx,
                subgraph,
                warn_on_missing=warn_on_missing,
                check_types=check_types,
            ):
                modified = True

        domain = node.domain or ""
        op_type = node.op_type
        opset_version = ctx.get_opset_version(domain)

        schema = _registry.registry.get(domain, op_type, version=opset_version)

        if schema is None or schema.inference_function is None:
            if warn_on_missing:
                key = (domain, op_type)
                if key not in warned_ops:
                    logger.warning(
                        "No schema registered for %s::%s (opset %s)",
                        domain or "ai.onnx",
                        op_type,
                        opset_version,
                    )
                    warned_ops.add(key)
            continue

        try:
            if _infer_node(ctx, schema, node, check_types=check_types):
                modified = True
        except _context.ShapeInferenceError as e:
            ctx.record_error(e)

    return modified


def _infer_node(
    ctx: _context.ShapeInferenceContext,
    schema: OpSchema,
    node: ir.Node,
    *,
    check_types: bool,
) -> bool:
    """Run a schema's inference function on one node.

    Returns:
        ``True`` if any output shape or type changed.

    Raises:
        ShapeInferenceError: If the node is invalid or inference fails.
    """
    node_ctx = ctx.node_context(node, schema)

    # Name anonymous dims on node inputs before inference
    for inp in node.inputs:
        if inp is not None:
            ctx.name_anonymous_dims(inp)

    if check_types:
        problems = check_node(schema, node)
        if problems:
            node_ctx.fail("; ".join(problems))

    # Track which outputs had shapes and dtypes before
    old_states: list[tuple[ir.Shape | None, ir.TypeProtocol | None]] = [
        (out.shape, out.type) for out in node.outputs
    ]

    try:
        schema.inference_function(node_ctx)
    except _context.ShapeInferenceError:
        raise
    except Exception as e:
        raise _context.ShapeInferenceError(
            node_name=node.name,
            op_type=node.op_type,
            domain=node.domain,
            message=f"Shape inference failed for {node.domain or 'ai.onnx'}::{node.op_type}",
        ) from e

    return any(
        out.shape != old_shape or out.type != old_type
        for out, (old_shape, old_type) in zip(node.outputs, old_states)
    )
