# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Shape inference for neuromorphic recurrent cells and layers."""

from __future__ import annotations

__all__ = [
    "RecurrentAttributes",
    "infer_recurrent_cell",
    "num_directions",
]

import dataclasses
from collections.abc import Sequence

import onnx_ir as ir

from onnx_neuromorphic import _context

# Output slots in order: Y, Y_h, Y_c
_Y, _Y_H, _Y_C = 0, 1, 2

_DIRECTION_COUNTS = {
    "forward": 1,
    "reverse": 1,
    "bidirectional": 2,
}


def num_directions(direction: str) -> int | None:
    """Return the number of directions for a ``direction`` attribute value.

    Unrecognized values yield ``None`` (unknown) rather than an error.
    """
    return _DIRECTION_COUNTS.get(direction)


@dataclasses.dataclass(frozen=True)
class RecurrentAttributes:
    """Attributes of a recurrent neuromorphic node, resolved once per node.

    Every recognized attribute is listed with its default. ``hidden_size``
    is ``None`` when the node does not set it. The activation and membrane
    parameters only matter for execution.
    """

    direction: str = "forward"
    hidden_size: int | None = None
    activation_alpha: Sequence[float] | None = None
    activation_beta: Sequence[float] | None = None
    v_thresh: Sequence[float] | None = None
    v_leak: Sequence[float] | None = None
    v_reset: Sequence[float] | None = None

    @classmethod
    def from_context(cls, ctx: _context.InferenceContext) -> RecurrentAttributes:
        return cls(
            direction=ctx.get_attribute("direction", "forward"),
            hidden_size=ctx.get_attribute("hidden_size"),
            activation_alpha=ctx.get_attribute("activation_alpha"),
            activation_beta=ctx.get_attribute("activation_beta"),
            v_thresh=ctx.get_attribute("v_thresh"),
            v_leak=ctx.get_attribute("v_leak"),
            v_reset=ctx.get_attribute("v_reset"),
        )

    @property
    def num_directions(self) -> int | None:
        return num_directions(self.direction)

    @property
    def hidden_dim(self) -> int | None:
        """The hidden dimension, or ``None`` if unset or non-positive."""
        if self.hidden_size is not None and self.hidden_size > 0:
            return self.hidden_size
        return None


def _dim(value: int | ir.SymbolicDim | None) -> int | ir.SymbolicDim:
    return ir.SymbolicDim(None) if value is None else value


def infer_recurrent_cell(ctx: _context.InferenceContext) -> None:
    """Infer output shapes and dtypes for LIF, LSNN and AdEx cells and layers.

    Inputs: X=[seq_length, batch_size, input_size], W, R, sequence_lens, initial_h.
    Outputs: Y=[seq_length, num_directions, batch_size, hidden_size],
    Y_h=[num_directions, batch_size, hidden_size] and, where defined,
    Y_c with the same shape as Y_h.

    Dimensions that cannot be determined are left unknown. The only failure
    is an input X whose rank is not 3.
    """
    attrs = RecurrentAttributes.from_context(ctx)
    directions = _dim(attrs.num_directions)
    hidden_size = _dim(attrs.hidden_dim)

    seq_length: int | ir.SymbolicDim = ir.SymbolicDim(None)
    batch_size: int | ir.SymbolicDim = ir.SymbolicDim(None)
    if ctx.has_input_shape(0):
        x_shape = ctx.get_input_shape(0)
        if x_shape.rank() != 3:
            ctx.fail(f"Input 'X' (#0) must have rank 3, got rank {x_shape.rank()}")
        seq_length = x_shape[0]
        batch_size = x_shape[1]

    num_outputs = ctx.num_outputs

    if num_outputs > _Y:
        ctx.propagate_elem_type_from_input_to_output(0, _Y)
        ctx.update_output_shape(_Y, [seq_length, directions, batch_size, hidden_size])

    if num_outputs > _Y_H:
        ctx.propagate_elem_type_from_input_to_output(0, _Y_H)
        ctx.update_output_shape(_Y_H, [directions, batch_size, hidden_size])

    # Y_c: cell state of gated variants
    if num_outputs > _Y_C:
        ctx.propagate_elem_type_from_input_to_output(0, _Y_C)
        ctx.update_output_shape(_Y_C, [directions, batch_size, hidden_size])
