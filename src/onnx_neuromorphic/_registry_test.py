# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Tests for SchemaRegistry."""

from __future__ import annotations

import unittest

import onnx_ir as ir

from onnx_neuromorphic._registry import SchemaRegistry
from onnx_neuromorphic._schema import (
    FormalParameter,
    OpSchema,
    SchemaConfigurationError,
    TypeConstraint,
)


def _schema(name: str = "TestOp", since_version: int = 1, domain: str = "") -> OpSchema:
    return OpSchema(
        name,
        domain=domain,
        since_version=since_version,
        inputs=[FormalParameter(0, "X", "T")],
        outputs=[FormalParameter(0, "Y", "T")],
        type_constraints=[TypeConstraint("T", [ir.DataType.FLOAT])],
    )


class SchemaRegistryTest(unittest.TestCase):
    """Tests for SchemaRegistry."""

    def setUp(self):
        # Use a fresh registry for each test
        self.registry = SchemaRegistry()

    def test_register_with_since_version(self):
        self.registry.register(_schema(since_version=7))

        # Should work for version 7 and above
        self.assertIsNotNone(self.registry.get("", "TestOp", version=7))
        self.assertIsNotNone(self.registry.get("", "TestOp", version=10))
        self.assertIsNotNone(self.registry.get("", "TestOp", version=20))
        # Should not work below version 7
        self.assertIsNone(self.registry.get("", "TestOp", version=6))

    def test_register_returns_schema(self):
        schema = _schema()
        self.assertIs(self.registry.register(schema), schema)

    def test_has(self):
        self.registry.register(_schema())

        self.assertTrue(self.registry.has("", "TestOp"))
        self.assertFalse(self.registry.has("", "NonExistent"))
        self.assertFalse(self.registry.has("com.other", "TestOp"))

    def test_multiple_version_registrations(self):
        v7 = self.registry.register(_schema(since_version=7))
        v14 = self.registry.register(_schema(since_version=14))

        self.assertIsNone(self.registry.get("", "TestOp", version=6))
        for version in range(7, 14):
            self.assertIs(self.registry.get("", "TestOp", version=version), v7)
        self.assertIs(self.registry.get("", "TestOp", version=14), v14)
        self.assertIs(self.registry.get("", "TestOp", version=20), v14)

    def test_registration_order_does_not_matter(self):
        v14 = self.registry.register(_schema(since_version=14))
        v7 = self.registry.register(_schema(since_version=7))

        self.assertIs(self.registry.get("", "TestOp", version=10), v7)
        self.assertIs(self.registry.get("", "TestOp", version=15), v14)

    def test_duplicate_registration_raises(self):
        self.registry.register(_schema(since_version=7))
        with self.assertRaises(SchemaConfigurationError):
            self.registry.register(_schema(since_version=7))

    def test_cache_invalidation_on_new_registration(self):
        self.registry.register(_schema(since_version=7))

        # Build cache
        self.registry.get("", "TestOp", version=10)

        key = ("", "TestOp")
        self.assertIn(key, self.registry._cache)

        v14 = self.registry.register(_schema(since_version=14))

        # Cache should be invalidated
        self.assertNotIn(key, self.registry._cache)
        self.assertIs(self.registry.get("", "TestOp", version=20), v14)

    def test_domains_are_separate(self):
        default = self.registry.register(_schema())
        custom = self.registry.register(_schema(domain="com.custom"))

        self.assertIs(self.registry.get("", "TestOp", version=1), default)
        self.assertIs(self.registry.get("com.custom", "TestOp", version=1), custom)

    def test_schemas_are_listed_in_order(self):
        self.registry.register(_schema("B"))
        self.registry.register(_schema("A", since_version=3))
        self.registry.register(_schema("A", since_version=1))

        listed = [(s.name, s.since_version) for s in self.registry.schemas()]
        self.assertEqual(listed, [("A", 1), ("A", 3), ("B", 1)])

    def test_clear(self):
        self.registry.register(_schema())
        self.registry.clear()
        self.assertFalse(self.registry.has("", "TestOp"))
        self.assertIsNone(self.registry.get("", "TestOp", version=1))


if __name__ == "__main__":
    unittest.main()
