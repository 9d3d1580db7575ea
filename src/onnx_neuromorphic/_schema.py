# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Immutable operator schema descriptors."""

from __future__ import annotations

__all__ = [
    "AttributeSpec",
    "FormalParameter",
    "InferenceFunction",
    "OpSchema",
    "ParameterOption",
    "SchemaConfigurationError",
    "TypeConstraint",
]

import dataclasses
import enum
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any

import onnx_ir as ir

if TYPE_CHECKING:
    from onnx_neuromorphic._context import InferenceContext

# Type alias for shape inference functions bound to a schema
InferenceFunction = Callable[["InferenceContext"], None]


class SchemaConfigurationError(ValueError):
    """Raised when an operator schema is malformed.

    This is a construction-time error: the schema can never be used, so it
    is raised when the descriptor is built or registered rather than while
    inferring a particular node.
    """


class ParameterOption(enum.Enum):
    """Optionality of an input or output slot."""

    SINGLE = "single"
    OPTIONAL = "optional"
    VARIADIC = "variadic"


@dataclasses.dataclass(frozen=True)
class FormalParameter:
    """An input or output slot of an operator.

    Attributes:
        index: Position of the slot.
        name: Slot name (e.g. ``"X"``).
        type_str: Symbol of the type constraint the slot's element type must
            satisfy (e.g. ``"T"``).
        option: Whether the slot is required, optional or variadic.
        description: Human-readable description.
    """

    index: int
    name: str
    type_str: str
    option: ParameterOption = ParameterOption.SINGLE
    description: str = ""

    @property
    def is_required(self) -> bool:
        return self.option == ParameterOption.SINGLE


@dataclasses.dataclass(frozen=True)
class AttributeSpec:
    """Declaration of an operator attribute.

    Attributes:
        name: Attribute name.
        type: The attribute kind.
        description: Human-readable description.
        required: Whether every node must carry the attribute.
        default: Value used when the attribute is absent, or ``None``.
    """

    name: str
    type: ir.AttributeType
    description: str = ""
    required: bool = False
    default: Any = None


@dataclasses.dataclass(frozen=True)
class TypeConstraint:
    """A named group of allowed element types."""

    type_param_str: str
    allowed_types: Iterable[ir.DataType]
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_types", frozenset(self.allowed_types))


# Python types accepted as defaults for each attribute kind
_DEFAULT_TYPES: dict[ir.AttributeType, tuple[type, ...]] = {
    ir.AttributeType.STRING: (str,),
    ir.AttributeType.INT: (int,),
    ir.AttributeType.FLOAT: (float, int),
    ir.AttributeType.FLOATS: (tuple, list),
    ir.AttributeType.INTS: (tuple, list),
    ir.AttributeType.STRINGS: (tuple, list),
}


def _check_slots(schema_name: str, side: str, slots: Sequence[FormalParameter]) -> None:
    indices = [slot.index for slot in slots]
    if len(set(indices)) != len(indices):
        raise SchemaConfigurationError(f"{schema_name}: duplicate {side} slot indices {indices}")
    if sorted(indices) != list(range(len(indices))):
        raise SchemaConfigurationError(
            f"{schema_name}: {side} slot indices must be contiguous from 0, got {sorted(indices)}"
        )
    for slot in slots[:-1]:
        if slot.option == ParameterOption.VARIADIC:
            raise SchemaConfigurationError(
                f"{schema_name}: variadic {side} '{slot.name}' must be the last slot"
            )


@dataclasses.dataclass(frozen=True)
class OpSchema:
    """Immutable descriptor of an operator.

    Constructing an :class:`OpSchema` validates it; a malformed declaration
    raises :class:`SchemaConfigurationError`. Slots may be given in any
    order and are stored sorted by index.

    Example::

        schema = OpSchema(
            "MyCell",
            domain="",
            since_version=10,
            inputs=[FormalParameter(0, "X", "T")],
            outputs=[FormalParameter(0, "Y", "T", ParameterOption.OPTIONAL)],
            type_constraints=[TypeConstraint("T", [ir.DataType.FLOAT])],
            inference_function=infer_my_cell,
        )
    """

    name: str
    domain: str = ""
    since_version: int = 1
    doc: str = ""
    inputs: Sequence[FormalParameter] = ()
    outputs: Sequence[FormalParameter] = ()
    attributes: Sequence[AttributeSpec] = ()
    type_constraints: Sequence[TypeConstraint] = ()
    inference_function: InferenceFunction | None = dataclasses.field(
        default=None, compare=False
    )

    def __post_init__(self) -> None:
        if not self.name:
            raise SchemaConfigurationError("Operator schema must have a name")
        if self.since_version < 1:
            raise SchemaConfigurationError(
                f"{self.name}: since_version must be >= 1, got {self.since_version}"
            )

        inputs = tuple(sorted(self.inputs, key=lambda p: p.index))
        outputs = tuple(sorted(self.outputs, key=lambda p: p.index))
        object.__setattr__(self, "inputs", inputs)
        object.__setattr__(self, "outputs", outputs)
        object.__setattr__(self, "attributes", tuple(self.attributes))
        object.__setattr__(self, "type_constraints", tuple(self.type_constraints))

        _check_slots(self.name, "input", inputs)
        _check_slots(self.name, "output", outputs)

        constraints: dict[str, TypeConstraint] = {}
        for constraint in self.type_constraints:
            if constraint.type_param_str in constraints:
                raise SchemaConfigurationError(
                    f"{self.name}: duplicate type constraint '{constraint.type_param_str}'"
                )
            constraints[constraint.type_param_str] = constraint

        for slot in (*inputs, *outputs):
            constraint = constraints.get(slot.type_str)
            if constraint is None:
                raise SchemaConfigurationError(
                    f"{self.name}: slot '{slot.name}' references undeclared "
                    f"type constraint '{slot.type_str}'"
                )
            if not constraint.allowed_types:
                raise SchemaConfigurationError(
                    f"{self.name}: type constraint '{slot.type_str}' allows no types"
                )

        seen: set[str] = set()
        for attr in self.attributes:
            if attr.name in seen:
                raise SchemaConfigurationError(f"{self.name}: duplicate attribute '{attr.name}'")
            seen.add(attr.name)
            if attr.default is None:
                continue
            if attr.required:
                raise SchemaConfigurationError(
                    f"{self.name}: required attribute '{attr.name}' cannot have a default"
                )
            expected = _DEFAULT_TYPES.get(attr.type)
            # bool is an int subclass but never a valid numeric default
            if expected is not None and (
                not isinstance(attr.default, expected) or isinstance(attr.default, bool)
            ):
                raise SchemaConfigurationError(
                    f"{self.name}: default of attribute '{attr.name}' does not match "
                    f"kind {attr.type.name}: {attr.default!r}"
                )

    @property
    def min_inputs(self) -> int:
        """Number of leading inputs that every node must provide."""
        count = 0
        for slot in self.inputs:
            if slot.is_required:
                count = slot.index + 1
        return count

    @property
    def max_inputs(self) -> int | None:
        """Maximum number of inputs, or ``None`` if the last slot is variadic."""
        if self.inputs and self.inputs[-1].option == ParameterOption.VARIADIC:
            return None
        return len(self.inputs)

    @property
    def max_outputs(self) -> int | None:
        """Maximum number of outputs, or ``None`` if the last slot is variadic."""
        if self.outputs and self.outputs[-1].option == ParameterOption.VARIADIC:
            return None
        return len(self.outputs)

    def input_slot(self, index: int) -> FormalParameter | None:
        """Return the input slot covering *index*, taking variadic slots into account."""
        if index < len(self.inputs):
            return self.inputs[index]
        if self.inputs and self.inputs[-1].option == ParameterOption.VARIADIC:
            return self.inputs[-1]
        return None

    def attribute(self, name: str) -> AttributeSpec | None:
        """Return the declaration of attribute *name*, or ``None``."""
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None

    def type_constraint(self, type_param_str: str) -> TypeConstraint | None:
        """Return the type constraint group named *type_param_str*, or ``None``."""
        for constraint in self.type_constraints:
            if constraint.type_param_str == type_param_str:
                return constraint
        return None
