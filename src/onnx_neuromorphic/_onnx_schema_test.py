# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Tests for exporting schemas to onnx.defs."""

from __future__ import annotations

import unittest

import onnx.defs

from onnx_neuromorphic import _onnx_schema
from onnx_neuromorphic._ops import _neuromorphic


class ToOnnxSchemaTest(unittest.TestCase):
    def test_metadata(self):
        schema = _onnx_schema.to_onnx_schema(_neuromorphic.LIF_LAYER)

        self.assertEqual(schema.name, "LIFLayer")
        self.assertEqual(schema.domain, "")
        self.assertEqual(schema.since_version, 10)
        self.assertEqual(
            [p.name for p in schema.inputs], ["X", "W", "R", "sequence_lens", "initial_h"]
        )
        self.assertEqual([p.name for p in schema.outputs], ["Y", "Y_h"])
        self.assertEqual(
            schema.inputs[3].option, onnx.defs.OpSchema.FormalParameterOption.Optional
        )

    def test_type_constraints(self):
        schema = _onnx_schema.to_onnx_schema(_neuromorphic.LIF_CELL)
        constraints = {c.type_param_str: c for c in schema.type_constraints}

        self.assertEqual(
            sorted(constraints["T"].allowed_type_strs),
            ["tensor(double)", "tensor(float)", "tensor(float16)"],
        )
        self.assertEqual(list(constraints["T1"].allowed_type_strs), ["tensor(int32)"])

    def test_attributes(self):
        schema = _onnx_schema.to_onnx_schema(_neuromorphic.LSNN_CELL)

        self.assertEqual(
            set(schema.attributes),
            {
                "direction",
                "hidden_size",
                "activation_alpha",
                "activation_beta",
                "v_thresh",
                "v_leak",
                "v_reset",
            },
        )
        self.assertEqual(schema.attributes["direction"].default_value.s, b"forward")
        self.assertFalse(schema.attributes["hidden_size"].required)
        self.assertEqual(
            schema.attributes["hidden_size"].type, onnx.defs.OpSchema.AttrType.INT
        )
        self.assertEqual(
            schema.attributes["v_thresh"].type, onnx.defs.OpSchema.AttrType.FLOATS
        )


class RegisterOnnxSchemasTest(unittest.TestCase):
    def test_register_and_skip_existing(self):
        schema = _neuromorphic.make_recurrent_schema("TestNeuromorphicCell")
        registered = _onnx_schema.register_onnx_schemas([schema])
        self.addCleanup(
            onnx.defs.deregister_schema, schema.name, schema.since_version, schema.domain
        )

        self.assertEqual(registered, [schema])
        self.assertTrue(onnx.defs.has("TestNeuromorphicCell", schema.domain))
        onnx_schema = onnx.defs.get_schema("TestNeuromorphicCell", 10, schema.domain)
        self.assertEqual(len(onnx_schema.inputs), 5)

        # Registering again is a no-op
        self.assertEqual(_onnx_schema.register_onnx_schemas([schema]), [])


if __name__ == "__main__":
    unittest.main()
