# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Registry for operator schemas."""

from __future__ import annotations

__all__ = [
    "SchemaRegistry",
    "registry",
]

import logging
from collections.abc import Iterator

from onnx_neuromorphic._schema import OpSchema, SchemaConfigurationError

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """Registry for operator schemas.

    Supports registration by (domain, op_type) with since_version semantics.
    When looking up a schema, dispatches to the correct version where
    target_version >= since_version and target_version < next_since_version.

    Example::

        from onnx_neuromorphic import registry

        registry.register(lif_cell_v10)
        registry.register(lif_cell_v14)

        schema = registry.get("", "LIFCell", version=13)  # Returns lif_cell_v10
        schema = registry.get("", "LIFCell", version=14)  # Returns lif_cell_v14
    """

    def __init__(self) -> None:
        # Raw registrations: {(domain, op_type): [schema, ...]}
        # Sorted by since_version ascending
        self._registrations: dict[tuple[str, str], list[OpSchema]] = {}
        # Cached lookup table: {(domain, op_type): {version: schema}}
        # Built on first lookup for each (domain, op_type)
        self._cache: dict[tuple[str, str], dict[int, OpSchema]] = {}

    def register(self, schema: OpSchema) -> OpSchema:
        """Register an operator schema.

        Args:
            schema: The schema to register.

        Returns:
            The registered schema, so that the call can be used inline.

        Raises:
            SchemaConfigurationError: If a schema with the same domain, name
                and since_version is already registered.
        """
        key = (schema.domain, schema.name)
        registrations = self._registrations.setdefault(key, [])

        for existing in registrations:
            if existing.since_version == schema.since_version:
                raise SchemaConfigurationError(
                    f"Schema {schema.domain or 'ai.onnx'}::{schema.name} "
                    f"(since_version={schema.since_version}) is already registered"
                )

        registrations.append(schema)
        # Keep sorted by since_version ascending
        registrations.sort(key=lambda s: s.since_version)

        # Invalidate cache for this key since registrations changed
        self._cache.pop(key, None)

        logger.debug(
            "Registered schema for %s::%s (since_version=%s)",
            schema.domain or "ai.onnx",
            schema.name,
            schema.since_version,
        )
        return schema

    def _build_cache(self, key: tuple[str, str]) -> None:
        """Build the O(1) lookup cache for a given (domain, op_type) key."""
        registrations = self._registrations.get(key)
        if not registrations:
            return

        cache: dict[int, OpSchema] = {}
        for i, schema in enumerate(registrations[:-1]):
            # Fill cache from since_version to the next registration (exclusive)
            for ver in range(schema.since_version, registrations[i + 1].since_version):
                cache[ver] = schema

        self._cache[key] = cache

    def get(
        self,
        domain: str,
        op_type: str,
        version: int,
    ) -> OpSchema | None:
        """Get the schema for an operator.

        Args:
            domain: ONNX domain.
            op_type: Operator type.
            version: Opset version to look up.

        Returns:
            The schema, or None if not found.
        """
        key = (domain, op_type)

        if key not in self._cache and key in self._registrations:
            self._build_cache(key)

        if key not in self._cache:
            return None

        schema = self._cache[key].get(version)
        if schema is not None:
            return schema

        # Versions at or above the newest since_version map to the newest schema
        newest = self._registrations[key][-1]
        if version >= newest.since_version:
            return newest

        # Version is below all registered since_versions
        return None

    def has(self, domain: str, op_type: str) -> bool:
        """Check if any schema is registered for an operator."""
        return bool(self._registrations.get((domain, op_type)))

    def schemas(self) -> Iterator[OpSchema]:
        """Iterate over every registered schema, ordered by domain, name and version."""
        for key in sorted(self._registrations):
            yield from self._registrations[key]

    def clear(self) -> None:
        """Clear all registered schemas (mainly for testing)."""
        self._registrations.clear()
        self._cache.clear()


# Global registry instance
registry = SchemaRegistry()
