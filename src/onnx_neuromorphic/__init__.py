# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Operator schemas and shape inference for neuromorphic recurrent operators.

This module declares the schemas of the LIF, LSNN and AdEx cell and layer
operators and infers the shapes and element types of their outputs from
input shapes and attributes, without executing them.

Example::

    import onnx_ir as ir
    from onnx_neuromorphic import infer_shapes

    # Load a model
    model = ir.load("model.onnx")

    # Run shape inference
    model = infer_shapes(model)

    # Or with custom policy
    model = infer_shapes(model, policy="strict")

Declaring a custom schema::

    from onnx_neuromorphic import OpSchema, FormalParameter, TypeConstraint, registry

    def infer_my_op(ctx):
        ctx.propagate_elem_type_from_input_to_output(0, 0)
        ctx.update_output_shape(0, ctx.get_input_shape(0))

    registry.register(
        OpSchema(
            "MyOp",
            domain="com.custom",
            inputs=[FormalParameter(0, "X", "T")],
            outputs=[FormalParameter(0, "Y", "T")],
            type_constraints=[TypeConstraint("T", [ir.DataType.FLOAT])],
            inference_function=infer_my_op,
        )
    )
"""

from __future__ import annotations

__all__ = [
    # Main API
    "infer_shapes",
    "check_node",
    # Schemas
    "AttributeSpec",
    "FormalParameter",
    "OpSchema",
    "ParameterOption",
    "RecurrentAttributes",
    "TypeConstraint",
    "make_recurrent_schema",
    # Context and policy
    "InferenceContext",
    "SchemaConfigurationError",
    "ShapeInferenceContext",
    "ShapeInferenceError",
    "ShapeMergePolicy",
    # Registry
    "SchemaRegistry",
    "registry",
    # ONNX interop
    "register_onnx_schemas",
    "to_onnx_schema",
    # Utilities
    "merge_dims",
    "merge_shapes",
]

from onnx_neuromorphic._context import (
    InferenceContext,
    ShapeInferenceContext,
    ShapeInferenceError,
    ShapeMergePolicy,
)
from onnx_neuromorphic._engine import check_node, infer_shapes
from onnx_neuromorphic._merge import merge_dims, merge_shapes
from onnx_neuromorphic._onnx_schema import register_onnx_schemas, to_onnx_schema
from onnx_neuromorphic._ops._neuromorphic import make_recurrent_schema
from onnx_neuromorphic._ops._recurrent import RecurrentAttributes
from onnx_neuromorphic._registry import SchemaRegistry, registry
from onnx_neuromorphic._schema import (
    AttributeSpec,
    FormalParameter,
    OpSchema,
    ParameterOption,
    SchemaConfigurationError,
    TypeConstraint,
)


def __set_module() -> None:
    """Set the module of all functions in this module to this public module."""
    global_dict = globals()
    for name in __all__:
        obj = global_dict[name]
        if hasattr(obj, "__module__"):
            obj.__module__ = __name__


__set_module()

__version__ = "0.1.0"
