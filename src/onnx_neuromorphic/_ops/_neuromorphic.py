# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Schemas for the neuromorphic recurrent operators (LIF, LSNN, AdEx)."""

from __future__ import annotations

__all__ = [
    "ADEX_CELL",
    "ADEX_LAYER",
    "LIF_CELL",
    "LIF_LAYER",
    "LSNN_CELL",
    "LSNN_LAYER",
    "NEUROMORPHIC_DOMAIN",
    "NEUROMORPHIC_SINCE_VERSION",
    "make_recurrent_schema",
]

from collections.abc import Sequence

import onnx_ir as ir

from onnx_neuromorphic import _registry
from onnx_neuromorphic._ops import _recurrent
from onnx_neuromorphic._schema import (
    AttributeSpec,
    FormalParameter,
    OpSchema,
    ParameterOption,
    TypeConstraint,
)

NEUROMORPHIC_DOMAIN = ""
NEUROMORPHIC_SINCE_VERSION = 10

_OPTIONAL = ParameterOption.OPTIONAL

_ACTIVATION_DOC = (
    "Optional scaling values used by some activation functions. The values "
    "are consumed in the order of activation functions, for example (f, g, h) "
    "in LSTM. Default values are the same as of corresponding ONNX operators."
)

_RECURRENT_ATTRIBUTES = (
    AttributeSpec(
        "direction",
        ir.AttributeType.STRING,
        "Specify if the RNN is forward, reverse, or bidirectional. "
        "Must be one of forward (default), reverse, or bidirectional.",
        default="forward",
    ),
    AttributeSpec(
        "hidden_size",
        ir.AttributeType.INT,
        "Number of neurons in the hidden layer",
    ),
    AttributeSpec(
        "activation_alpha",
        ir.AttributeType.FLOATS,
        _ACTIVATION_DOC + " For example with LeakyRelu, the default alpha is 0.01.",
    ),
    AttributeSpec(
        "activation_beta",
        ir.AttributeType.FLOATS,
        _ACTIVATION_DOC,
    ),
)

_MEMBRANE_ATTRIBUTES = (
    AttributeSpec("v_thresh", ir.AttributeType.FLOATS, "Membrane voltage threshold"),
    AttributeSpec("v_leak", ir.AttributeType.FLOATS, "Membrane voltage leak"),
    AttributeSpec("v_reset", ir.AttributeType.FLOATS, "Membrane voltage reset"),
)

_INPUTS = (
    FormalParameter(
        0,
        "X",
        "T",
        description="The input sequences packed (and potentially padded) into one 3-D "
        "tensor with the shape of `[seq_length, batch_size, input_size]`.",
    ),
    FormalParameter(
        1,
        "W",
        "T",
        description="The weight tensor for the gates. Concatenation of `W[iofc]` and "
        "`WB[iofc]` (if bidirectional) along dimension 0. The tensor has shape "
        "`[num_directions, 4*hidden_size, input_size]`.",
    ),
    FormalParameter(
        2,
        "R",
        "T",
        description="The recurrence weight tensor. Concatenation of `R[iofc]` and "
        "`RB[iofc]` (if bidirectional) along dimension 0. This tensor has shape "
        "`[num_directions, 4*hidden_size, hidden_size]`.",
    ),
    FormalParameter(
        3,
        "sequence_lens",
        "T1",
        _OPTIONAL,
        "Optional tensor specifying lengths of the sequences in a batch. "
        "If not specified - assumed all sequences in the batch to have "
        "length `seq_length`. It has shape `[batch_size]`.",
    ),
    FormalParameter(
        4,
        "initial_h",
        "T",
        _OPTIONAL,
        "Optional initial value of the hidden. If not specified - assumed "
        "to be 0. It has shape `[num_directions, batch_size, hidden_size]`.",
    ),
)

_OUTPUTS = (
    FormalParameter(
        0,
        "Y",
        "T",
        _OPTIONAL,
        "A tensor that concats all the intermediate output values of the hidden. "
        "It has shape `[seq_length, num_directions, batch_size, hidden_size]`.",
    ),
    FormalParameter(
        1,
        "Y_h",
        "T",
        _OPTIONAL,
        "The last output value of the hidden. It has shape "
        "`[num_directions, batch_size, hidden_size]`.",
    ),
)

_CELL_STATE_OUTPUT = FormalParameter(
    2,
    "Y_c",
    "T",
    _OPTIONAL,
    "The last output value of the cell. It has shape "
    "`[num_directions, batch_size, hidden_size]`.",
)

_TYPE_CONSTRAINTS = (
    TypeConstraint(
        "T",
        [ir.DataType.FLOAT16, ir.DataType.FLOAT, ir.DataType.DOUBLE],
        "Constrain input and output types to float tensors.",
    ),
    TypeConstraint("T1", [ir.DataType.INT32], "Constrain seq_lens to integer tensor."),
)

_OPTIONAL_ARGUMENTS_DOC = """
This operator has **optional** inputs/outputs. An empty string may be used
in place of an actual argument's name to indicate a missing argument.
Trailing optional arguments (those not followed by an argument that is
present) may also be simply omitted.
"""


def make_recurrent_schema(
    name: str,
    doc: str = "",
    *,
    extra_attributes: Sequence[AttributeSpec] = (),
    cell_state: bool = False,
    domain: str = NEUROMORPHIC_DOMAIN,
    since_version: int = NEUROMORPHIC_SINCE_VERSION,
) -> OpSchema:
    """Build the schema of a recurrent neuromorphic operator.

    All operators of the family share inputs ``X, W, R, sequence_lens,
    initial_h``, outputs ``Y, Y_h``, the recurrent attributes and the
    :func:`~onnx_neuromorphic._ops._recurrent.infer_recurrent_cell` routine.

    Args:
        name: Operator type.
        doc: Operator documentation.
        extra_attributes: Operator-specific attributes, declared before the
            shared ones.
        cell_state: Whether the operator also produces a ``Y_c`` output.
        domain: Operator domain.
        since_version: First opset version the schema applies to.
    """
    outputs = _OUTPUTS + (_CELL_STATE_OUTPUT,) if cell_state else _OUTPUTS
    return OpSchema(
        name,
        domain=domain,
        since_version=since_version,
        doc=doc.strip() + "\n" + _OPTIONAL_ARGUMENTS_DOC,
        inputs=_INPUTS,
        outputs=outputs,
        attributes=(*extra_attributes, *_RECURRENT_ATTRIBUTES),
        type_constraints=_TYPE_CONSTRAINTS,
        inference_function=_recurrent.infer_recurrent_cell,
    )


_reg = _registry.registry.register

LIF_CELL = _reg(
    make_recurrent_schema("LIFCell", "Leaky integrate-and-fire neuron cell.")
)
LIF_LAYER = _reg(
    make_recurrent_schema(
        "LIFLayer",
        "Layer of leaky integrate-and-fire neurons.",
        extra_attributes=_MEMBRANE_ATTRIBUTES,
    )
)
LSNN_CELL = _reg(
    make_recurrent_schema(
        "LSNNCell",
        "Long short-term memory spiking neural network cell.",
        extra_attributes=_MEMBRANE_ATTRIBUTES,
    )
)
LSNN_LAYER = _reg(
    make_recurrent_schema(
        "LSNNLayer", "Layer of long short-term memory spiking neural network neurons."
    )
)
ADEX_CELL = _reg(
    make_recurrent_schema("ADEXCell", "Adaptive exponential integrate-and-fire neuron cell.")
)
ADEX_LAYER = _reg(
    make_recurrent_schema(
        "ADEXLayer", "Layer of adaptive exponential integrate-and-fire neurons."
    )
)
