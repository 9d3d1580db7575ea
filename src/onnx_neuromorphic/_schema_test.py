# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Tests for OpSchema construction-time validation."""

from __future__ import annotations

import dataclasses
import unittest

import onnx_ir as ir

from onnx_neuromorphic._schema import (
    AttributeSpec,
    FormalParameter,
    OpSchema,
    ParameterOption,
    SchemaConfigurationError,
    TypeConstraint,
)

_T = TypeConstraint("T", [ir.DataType.FLOAT])


def _schema(**kwargs) -> OpSchema:
    fields = {
        "inputs": [FormalParameter(0, "X", "T")],
        "outputs": [FormalParameter(0, "Y", "T")],
        "type_constraints": [_T],
    }
    fields.update(kwargs)
    return OpSchema("TestOp", **fields)


class OpSchemaTest(unittest.TestCase):
    def test_valid_schema(self):
        schema = _schema()
        self.assertEqual(schema.name, "TestOp")
        self.assertEqual(schema.domain, "")
        self.assertEqual(schema.since_version, 1)
        self.assertIsInstance(schema.inputs, tuple)

    def test_is_immutable(self):
        schema = _schema()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            schema.name = "Other"  # type: ignore[misc]

    def test_slots_are_sorted_by_index(self):
        schema = _schema(
            inputs=[
                FormalParameter(2, "C", "T"),
                FormalParameter(0, "A", "T"),
                FormalParameter(1, "B", "T"),
            ]
        )
        self.assertEqual([p.name for p in schema.inputs], ["A", "B", "C"])

    def test_allowed_types_become_frozenset(self):
        constraint = TypeConstraint("T", [ir.DataType.FLOAT, ir.DataType.FLOAT])
        self.assertEqual(constraint.allowed_types, frozenset({ir.DataType.FLOAT}))

    def test_duplicate_slot_index(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "duplicate input"):
            _schema(inputs=[FormalParameter(0, "A", "T"), FormalParameter(0, "B", "T")])

    def test_non_contiguous_slots(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "contiguous"):
            _schema(inputs=[FormalParameter(0, "A", "T"), FormalParameter(2, "C", "T")])

    def test_slots_must_start_at_zero(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "contiguous"):
            _schema(outputs=[FormalParameter(1, "Y", "T")])

    def test_variadic_must_be_last(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "variadic"):
            _schema(
                inputs=[
                    FormalParameter(0, "A", "T", ParameterOption.VARIADIC),
                    FormalParameter(1, "B", "T"),
                ]
            )

    def test_trailing_variadic_is_allowed(self):
        schema = _schema(
            inputs=[
                FormalParameter(0, "A", "T"),
                FormalParameter(1, "rest", "T", ParameterOption.VARIADIC),
            ]
        )
        self.assertIsNone(schema.max_inputs)
        self.assertEqual(schema.input_slot(5).name, "rest")

    def test_undeclared_type_constraint(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "undeclared type constraint"):
            _schema(inputs=[FormalParameter(0, "X", "U")])

    def test_empty_type_constraint(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "allows no types"):
            _schema(type_constraints=[TypeConstraint("T", [])])

    def test_duplicate_type_constraint(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "duplicate type constraint"):
            _schema(type_constraints=[_T, _T])

    def test_duplicate_attribute(self):
        attr = AttributeSpec("alpha", ir.AttributeType.FLOAT)
        with self.assertRaisesRegex(SchemaConfigurationError, "duplicate attribute"):
            _schema(attributes=[attr, attr])

    def test_required_attribute_with_default(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "cannot have a default"):
            _schema(
                attributes=[
                    AttributeSpec("alpha", ir.AttributeType.FLOAT, required=True, default=1.0)
                ]
            )

    def test_default_must_match_kind(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "does not match"):
            _schema(attributes=[AttributeSpec("direction", ir.AttributeType.STRING, default=1)])

    def test_bool_default_is_not_an_int(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "does not match"):
            _schema(attributes=[AttributeSpec("hidden_size", ir.AttributeType.INT, default=True)])

    def test_empty_name(self):
        with self.assertRaises(SchemaConfigurationError):
            OpSchema("")

    def test_since_version_must_be_positive(self):
        with self.assertRaisesRegex(SchemaConfigurationError, "since_version"):
            _schema(since_version=0)

    def test_configuration_error_is_value_error(self):
        with self.assertRaises(ValueError):
            _schema(since_version=0)

    def test_min_inputs(self):
        schema = _schema(
            inputs=[
                FormalParameter(0, "A", "T"),
                FormalParameter(1, "B", "T", ParameterOption.OPTIONAL),
                FormalParameter(2, "C", "T"),
                FormalParameter(3, "D", "T", ParameterOption.OPTIONAL),
            ]
        )
        self.assertEqual(schema.min_inputs, 3)
        self.assertEqual(schema.max_inputs, 4)
        self.assertIsNone(schema.input_slot(4))

    def test_lookup_helpers(self):
        schema = _schema(attributes=[AttributeSpec("alpha", ir.AttributeType.FLOAT)])
        self.assertEqual(schema.attribute("alpha").type, ir.AttributeType.FLOAT)
        self.assertIsNone(schema.attribute("beta"))
        self.assertIs(schema.type_constraint("T"), schema.type_constraints[0])
        self.assertIsNone(schema.type_constraint("T1"))


if __name__ == "__main__":
    unittest.main()
