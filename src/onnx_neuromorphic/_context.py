# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Shape inference contexts and merge policies."""

from __future__ import annotations

__all__ = [
    "InferenceContext",
    "ShapeInferenceContext",
    "ShapeInferenceError",
    "ShapeMergePolicy",
]

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Literal, NoReturn

import onnx_ir as ir

from onnx_neuromorphic import _merge
from onnx_neuromorphic._schema import OpSchema

logger = logging.getLogger(__name__)


class ShapeInferenceError(ValueError):
    """A node-scoped failure from shape inference.

    Can be raised directly (it is a :class:`ValueError` subclass) or stored
    for later inspection via :attr:`ShapeInferenceContext.errors`.

    Attributes:
        node_name: The name of the node (or ``None`` if unnamed).
        op_type: The operator type (e.g. ``"LIFCell"``).
        domain: The operator domain.
        message: Human-readable description of the error.
    """

    def __init__(
        self,
        *,
        node_name: str | None,
        op_type: str,
        domain: str,
        message: str,
    ) -> None:
        self.node_name = node_name
        self.op_type = op_type
        self.domain = domain
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        op_id = f"{self.domain}::{self.op_type}" if self.domain else self.op_type
        node_desc = f" (node {self.node_name!r})" if self.node_name else ""
        return f"{op_id}{node_desc}: {self.message}"


ShapeMergePolicy = Literal["skip", "override", "refine", "strict"]
"""Policy for merging inferred shapes/dtypes with existing values.

* ``"skip"``: Don't update if shape/dtype already exists. Errors are logged
    and recorded instead of raised.
* ``"override"``: Always replace with inferred shape/dtype.
* ``"refine"``: Only update if inferred is more specific
    (concrete beats symbolic, named symbolic beats None).
* ``"strict"``: Fail if inferred shape/dtype conflicts with existing.
"""


class ShapeInferenceContext:
    """Graph-wide state for a shape inference pass.

    Holds the merge policy, the opset imports and the errors recorded while
    processing nodes. Per-node views are created from it with
    :meth:`node_context`.

    Attributes:
        opset_imports: Mapping from domain to opset version.
        policy: The shape merge policy.
    """

    def __init__(
        self,
        opset_imports: Mapping[str, int] | None = None,
        policy: ShapeMergePolicy = "refine",
    ) -> None:
        """Initialize the shape inference context.

        Args:
            opset_imports: Mapping from ONNX domain to opset version
                (e.g. ``{"": 10}``).  When ``None``, defaults to ``{"": 1}``.
            policy: The shape merge policy to use.
        """
        self.opset_imports: Mapping[str, int] = opset_imports or {"": 1}
        self.policy = policy

        # Recorded errors from shape inference
        self._errors: list[ShapeInferenceError] = []
        # Counter for generating unique symbolic dimension names
        self._dim_counter: int = 0
        # Symbolic names already in use; generated names must avoid these
        self._used_dim_names: set[str] = set()

    @property
    def opset(self) -> int:
        """Get the default opset version for inference."""
        return self.opset_imports.get("", 1)

    def get_opset_version(self, domain: str) -> int:
        """Get the opset version for a specific domain."""
        if domain in self.opset_imports:
            return self.opset_imports[domain]
        if domain in ("", "ai.onnx"):
            return self.opset
        return 1

    def node_context(self, node: ir.Node, schema: OpSchema) -> InferenceContext:
        """Create a fresh per-node inference context."""
        return InferenceContext(self, node, schema)

    def reserve_dim_names(self, value: ir.Value) -> None:
        """Mark the symbolic dim names on *value* as taken.

        Names found on a model from an earlier inference run are reserved
        so that freshly generated names never alias them.
        """
        shape = value.shape
        if shape is None:
            return
        for dim in shape.dims:
            if isinstance(dim, ir.SymbolicDim) and dim.value is not None:
                self._used_dim_names.add(dim.value)

    def new_symbolic_dim(self) -> ir.SymbolicDim:
        """Create a new symbolic dimension with a unique auto-generated name.

        Names reserved with :meth:`reserve_dim_names` are skipped.

        Returns:
            A :class:`ir.SymbolicDim` with a unique name like ``_d0``, ``_d1``, …
        """
        name = f"_d{self._dim_counter}"
        self._dim_counter += 1
        while name in self._used_dim_names:
            name = f"_d{self._dim_counter}"
            self._dim_counter += 1
        self._used_dim_names.add(name)
        return ir.SymbolicDim(name)

    def name_anonymous_dims(self, value: ir.Value) -> bool:
        """Replace anonymous (``None``) symbolic dims on *value* with unique names.

        This mutates the value's shape in-place.  It is a no-op when the value
        has no shape or all dims are already named/concrete.

        Returns:
            ``True`` if any dim was renamed.
        """
        shape = value.shape
        if shape is None:
            return False

        new_dims: list[int | ir.SymbolicDim] = []
        changed = False
        for dim in shape.dims:
            if isinstance(dim, ir.SymbolicDim) and dim.value is None:
                new_dims.append(self.new_symbolic_dim())
                changed = True
            else:
                new_dims.append(dim)

        if changed:
            value.shape = ir.Shape(new_dims)
        return changed

    def record_error(self, error: ShapeInferenceError) -> None:
        """Record a shape inference error.

        The error is raised again unless the merge policy is ``"skip"``, in
        which case it is only logged and appended to :attr:`errors`.

        Raises:
            ShapeInferenceError: If the merge policy is not ``"skip"``.
        """
        self._errors.append(error)
        if self.policy == "skip":
            logger.warning("Shape inference error: %s", error)
            return
        raise error

    @property
    def errors(self) -> Sequence[ShapeInferenceError]:
        """All errors recorded during shape inference."""
        return self._errors

    def set_shape(self, value: ir.Value, shape: ir.Shape) -> bool:
        """Set the shape of a value according to the merge policy.

        Args:
            value: The value to set the shape on.
            shape: The inferred shape.

        Returns:
            True if the shape was updated, False otherwise.

        Raises:
            ValueError: If policy is STRICT and shapes conflict.
        """
        existing = value.shape

        if existing is None:
            value.shape = shape
            return True

        if self.policy == "skip":
            return False

        if self.policy == "override":
            value.shape = shape
            return True

        if self.policy == "strict":
            try:
                merged = _merge.merge_shapes(existing, shape)
            except ValueError as e:
                raise ValueError(f"Shape conflict for {value.name}: {e}") from e
            if merged == existing:
                return False
            value.shape = merged
            return True

        # "refine" policy
        return self._refine_shape(value, existing, shape)

    def _refine_shape(self, value: ir.Value, existing: ir.Shape, inferred: ir.Shape) -> bool:
        """Refine existing shape with inferred shape, keeping more specific dims."""
        if existing.rank() != inferred.rank():
            # Can't refine if ranks differ; keep existing
            return False

        modified = False
        new_dims: list[int | ir.SymbolicDim] = []

        for e_dim, i_dim in zip(existing.dims, inferred.dims):
            if _merge.is_more_specific(i_dim, e_dim):
                new_dims.append(i_dim)
                modified = True
            else:
                new_dims.append(e_dim)

        if modified:
            value.shape = ir.Shape(new_dims)

        return modified

    def set_dtype(self, value: ir.Value, dtype: ir.DataType) -> bool:
        """Set the dtype of a value according to the merge policy.

        Returns:
            True if the dtype was updated, False otherwise.

        Raises:
            ValueError: If policy is STRICT and dtypes conflict.
        """
        existing = value.dtype

        if existing is None:
            value.dtype = dtype
            return True

        if self.policy == "override":
            value.dtype = dtype
            return True

        if self.policy == "strict" and existing != dtype:
            raise ValueError(
                f"Dtype conflict for {value.name}: existing {existing} vs inferred {dtype}"
            )

        # "skip", "refine" and agreeing "strict" keep the existing dtype
        return False


class InferenceContext:
    """Per-node view handed to a schema's inference function.

    A new instance is created for every node evaluation and discarded
    afterwards. Inference functions read the node's input shapes, element
    types and resolved attributes through it, and write output shapes and
    element types back through it; writes are merged according to the
    owning :class:`ShapeInferenceContext`'s policy.

    Attributes:
        node: The node being inferred.
        schema: The schema the node was resolved to.
    """

    def __init__(self, graph_ctx: ShapeInferenceContext, node: ir.Node, schema: OpSchema):
        self._graph_ctx = graph_ctx
        self.node = node
        self.schema = schema

    @property
    def num_inputs(self) -> int:
        """Number of input slots on the node, including omitted optional ones."""
        return len(self.node.inputs)

    @property
    def num_outputs(self) -> int:
        """Number of outputs the node declares."""
        return len(self.node.outputs)

    def _input(self, index: int) -> ir.Value | None:
        if index < 0 or index >= len(self.node.inputs):
            return None
        return self.node.inputs[index]

    def has_input(self, index: int) -> bool:
        """Whether input *index* is present (not omitted)."""
        return self._input(index) is not None

    def has_input_shape(self, index: int) -> bool:
        """Whether input *index* is present and its rank is known."""
        value = self._input(index)
        return value is not None and value.shape is not None

    def get_input_shape(self, index: int) -> ir.Shape:
        """Return the shape of input *index*.

        Raises:
            ShapeInferenceError: If the input is absent or has no shape.
        """
        value = self._input(index)
        if value is None or value.shape is None:
            self.fail(f"Input #{index} has no shape")
        return value.shape

    def get_input_type(self, index: int) -> ir.DataType | None:
        """Return the element type of input *index*, or ``None`` if unknown."""
        value = self._input(index)
        if value is None:
            return None
        return value.dtype

    def get_attribute(self, name: str, default: Any = None) -> Any:
        """Return the value of attribute *name*.

        When the node does not carry the attribute, the schema's declared
        default is used, then *default*.
        """
        attr = self.node.attributes.get(name)
        if attr is not None:
            return attr.value
        spec = self.schema.attribute(name)
        if spec is not None and spec.default is not None:
            return spec.default
        return default

    def _output(self, index: int) -> ir.Value | None:
        if index < 0 or index >= len(self.node.outputs):
            return None
        return self.node.outputs[index]

    def propagate_elem_type_from_input_to_output(
        self, input_index: int, output_index: int
    ) -> bool:
        """Copy the element type of an input onto an output.

        Nothing is written when the input is absent or its element type is
        unknown.

        Returns:
            True if the output's element type was updated.
        """
        dtype = self.get_input_type(input_index)
        output = self._output(output_index)
        if dtype is None or output is None:
            return False
        return self._write(output, self._graph_ctx.set_dtype, dtype)

    def update_output_shape(
        self,
        output_index: int,
        shape: ir.Shape | Sequence[int | str | ir.SymbolicDim | None],
    ) -> bool:
        """Record the inferred shape of output *output_index*.

        Returns:
            True if the output's shape was updated.
        """
        output = self._output(output_index)
        if output is None:
            return False
        if not isinstance(shape, ir.Shape):
            shape = ir.Shape(shape)
        return self._write(output, self._graph_ctx.set_shape, shape)

    def _write(
        self,
        value: ir.Value,
        setter: Callable[[ir.Value, Any], bool],
        inferred: Any,
    ) -> bool:
        try:
            return setter(value, inferred)
        except ValueError as e:
            self.fail(str(e))

    def fail(self, message: str) -> NoReturn:
        """Abort inference for this node.

        Raises:
            ShapeInferenceError: Always.
        """
        raise ShapeInferenceError(
            node_name=self.node.name,
            op_type=self.node.op_type,
            domain=self.node.domain,
            message=message,
        )
