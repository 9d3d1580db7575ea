# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Common test infrastructure for op-level shape inference tests."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import onnx_ir as ir

from onnx_neuromorphic import _context, _registry
from onnx_neuromorphic._ops import _neuromorphic

FLOAT = ir.DataType.FLOAT
FLOAT16 = ir.DataType.FLOAT16
DOUBLE = ir.DataType.DOUBLE
INT32 = ir.DataType.INT32


def ts(
    dtype: ir.DataType | None = None,
    shape: Sequence[int | str | None] | None = None,
) -> ir.TypeAndShape:
    """Create a :class:`ir.TypeAndShape` from a dtype and a shape list.

    Examples::

        ts(ir.DataType.FLOAT, [3, 4])          # Tensor(FLOAT), Shape([3, 4])
        ts(ir.DataType.FLOAT, ["seq", 2, 8])   # Tensor(FLOAT), Shape([seq, 2, 8])
        ts(ir.DataType.FLOAT)                  # Tensor(FLOAT), shape=None
        ts()                                   # type=None, shape=None

    Args:
        dtype: Element data type.  ``None`` means unset.
        shape: Shape dimensions.  ``None`` means unknown rank (unset).
    """
    type_ = ir.TensorType(dtype) if dtype is not None else None
    shape_ = ir.Shape(shape) if shape is not None else None
    return ir.TypeAndShape(type_, shape_)


def attrs(**kwargs: Any) -> dict[str, ir.Attr]:
    """Build node attributes from Python values.

    ``str`` maps to STRING, ``int`` to INT, ``float`` to FLOAT, and lists
    to FLOATS or INTS depending on their first element.
    """
    result: dict[str, ir.Attr] = {}
    for name, value in kwargs.items():
        if isinstance(value, str):
            attr_type = ir.AttributeType.STRING
        elif isinstance(value, int):
            attr_type = ir.AttributeType.INT
        elif isinstance(value, float):
            attr_type = ir.AttributeType.FLOAT
        elif value and isinstance(value[0], int):
            attr_type = ir.AttributeType.INTS
        else:
            attr_type = ir.AttributeType.FLOATS
        result[name] = ir.Attr(name, attr_type, value)
    return result


def make_node(
    op_type: str,
    inputs: Sequence[ir.TypeAndShape | None],
    attributes: Mapping[str, ir.Attr] | None = None,
    *,
    num_outputs: int = 1,
    domain: str = _neuromorphic.NEUROMORPHIC_DOMAIN,
    name: str = "node",
) -> ir.Node:
    """Create a node whose inputs carry the given type-and-shape specs.

    A ``None`` entry in *inputs* stands for an omitted optional input.
    """
    input_values: list[ir.Value | None] = []
    for i, spec in enumerate(inputs):
        if spec is None:
            input_values.append(None)
        else:
            input_values.append(ir.Value(name=f"input_{i}", shape=spec.shape, type=spec.type))

    output_values = [ir.Value(name=f"output_{i}") for i in range(num_outputs)]

    return ir.Node(
        domain,
        op_type,
        inputs=input_values,
        outputs=output_values,
        attributes=dict(attributes or {}),
        name=name,
    )


def run_node(
    node: ir.Node,
    *,
    opset_version: int = _neuromorphic.NEUROMORPHIC_SINCE_VERSION,
    policy: _context.ShapeMergePolicy = "override",
) -> list[ir.TypeAndShape]:
    """Invoke the registered inference function on *node* directly (no engine).

    Returns:
        A list of :class:`ir.TypeAndShape`, one per output.
    """
    schema = _registry.registry.get(node.domain, node.op_type, version=opset_version)
    if schema is None or schema.inference_function is None:
        raise ValueError(
            f"No schema registered for {node.domain}::{node.op_type} version {opset_version}"
        )

    opset_imports = {node.domain: opset_version}
    ctx = _context.ShapeInferenceContext(opset_imports, policy=policy)
    schema.inference_function(ctx.node_context(node, schema))

    return [ir.TypeAndShape(v.type, v.shape) for v in node.outputs]


def run_shape_inference(
    op_type: str,
    inputs: Sequence[ir.TypeAndShape | None],
    attributes: Mapping[str, ir.Attr] | None = None,
    *,
    num_outputs: int = 1,
    opset_version: int = _neuromorphic.NEUROMORPHIC_SINCE_VERSION,
    policy: _context.ShapeMergePolicy = "override",
) -> list[ir.TypeAndShape]:
    """Run the registered inference function for an op and return output types/shapes.

    Args:
        op_type: Operator type (e.g. ``"LIFCell"``).
        inputs: Per-input :class:`ir.TypeAndShape` specs (use :func:`ts` to build them).
        attributes: Node attributes (use :func:`attrs` to build them).
        num_outputs: Number of outputs to create.
        opset_version: Opset version for the operator's domain.
        policy: Shape merge policy for the context.
    """
    node = make_node(op_type, inputs, attributes, num_outputs=num_outputs)
    return run_node(node, opset_version=opset_version, policy=policy)
