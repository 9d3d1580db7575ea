# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Export schemas to ``onnx.defs`` so the ONNX checker recognizes the operators."""

from __future__ import annotations

__all__ = [
    "register_onnx_schemas",
    "to_onnx_schema",
]

import logging
from collections.abc import Iterable

import onnx
import onnx.defs
import onnx.helper
import onnx_ir as ir

from onnx_neuromorphic import _registry
from onnx_neuromorphic._schema import AttributeSpec, FormalParameter, OpSchema, ParameterOption

logger = logging.getLogger(__name__)

_PARAM_OPTIONS = {
    ParameterOption.SINGLE: onnx.defs.OpSchema.FormalParameterOption.Single,
    ParameterOption.OPTIONAL: onnx.defs.OpSchema.FormalParameterOption.Optional,
    ParameterOption.VARIADIC: onnx.defs.OpSchema.FormalParameterOption.Variadic,
}


def _type_str(dtype: ir.DataType) -> str:
    """Return the ONNX type string of a tensor element type, e.g. ``tensor(float)``."""
    return f"tensor({dtype.name.lower()})"


def _to_formal_parameter(param: FormalParameter) -> onnx.defs.OpSchema.FormalParameter:
    return onnx.defs.OpSchema.FormalParameter(
        param.name,
        param.type_str,
        param.description,
        param_option=_PARAM_OPTIONS[param.option],
    )


def _to_attribute(attr: AttributeSpec) -> onnx.defs.OpSchema.Attribute:
    if attr.default is not None:
        default = onnx.helper.make_attribute(attr.name, attr.default)
        return onnx.defs.OpSchema.Attribute(attr.name, default, attr.description)
    return onnx.defs.OpSchema.Attribute(
        attr.name,
        onnx.defs.OpSchema.AttrType(attr.type.value),
        attr.description,
        required=attr.required,
    )


def to_onnx_schema(schema: OpSchema) -> onnx.defs.OpSchema:
    """Convert a schema to an :class:`onnx.defs.OpSchema`.

    The resulting schema carries the metadata only; shape inference stays
    with :func:`onnx_neuromorphic.infer_shapes`.
    """
    return onnx.defs.OpSchema(
        schema.name,
        schema.domain,
        schema.since_version,
        schema.doc,
        inputs=[_to_formal_parameter(p) for p in schema.inputs],
        outputs=[_to_formal_parameter(p) for p in schema.outputs],
        type_constraints=[
            (
                c.type_param_str,
                sorted(_type_str(t) for t in c.allowed_types),
                c.description,
            )
            for c in schema.type_constraints
        ],
        attributes=[_to_attribute(a) for a in schema.attributes],
    )


def register_onnx_schemas(schemas: Iterable[OpSchema] | None = None) -> list[OpSchema]:
    """Register schemas with ``onnx.defs``.

    Schemas already known to ONNX at the same version are skipped.

    Args:
        schemas: The schemas to register. Defaults to every schema in the
            global registry.

    Returns:
        The schemas that were newly registered.
    """
    if schemas is None:
        # Import ops to trigger registration
        from onnx_neuromorphic import _ops  # noqa: F401

        schemas = list(_registry.registry.schemas())

    registered = []
    for schema in schemas:
        if onnx.defs.has(schema.name, schema.since_version, schema.domain):
            logger.debug(
                "Schema %s::%s already present in onnx.defs",
                schema.domain or "ai.onnx",
                schema.name,
            )
            continue
        onnx.defs.register_schema(to_onnx_schema(schema))
        registered.append(schema)
        logger.debug(
            "Registered %s::%s (since_version=%s) with onnx.defs",
            schema.domain or "ai.onnx",
            schema.name,
            schema.since_version,
        )
    return registered
