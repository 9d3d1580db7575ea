# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Dimension and shape merging utilities for shape inference."""

from __future__ import annotations

__all__ = [
    "is_more_specific",
    "merge_dims",
    "merge_shapes",
]

import onnx_ir as ir


def merge_dims(
    dim1: int | ir.SymbolicDim,
    dim2: int | ir.SymbolicDim,
) -> int | ir.SymbolicDim:
    """Merge two dimensions that describe the same axis.

    Merge rules:
    1. Two concrete values must be equal.
    2. A concrete value merged with a symbolic or unknown value yields the
       concrete value.
    3. A named symbolic value beats an unknown (``SymbolicDim(None)``) one.
    4. Two unknown values yield unknown.

    Args:
        dim1: First dimension.
        dim2: Second dimension.

    Returns:
        The merged dimension.

    Raises:
        ValueError: If both dimensions are concrete and differ.

    Example::

        >>> import onnx_ir as ir
        >>> merge_dims(3, ir.SymbolicDim(None))
        3
        >>> merge_dims(ir.SymbolicDim(None), ir.SymbolicDim("batch"))
        SymbolicDim(batch)
    """
    if isinstance(dim1, int) and isinstance(dim2, int):
        if dim1 != dim2:
            raise ValueError(f"Cannot merge dimensions {dim1} and {dim2}")
        return dim1

    if isinstance(dim1, int):
        return dim1
    if isinstance(dim2, int):
        return dim2

    # Both symbolic
    if dim1.value is None:
        return dim2
    return dim1


def merge_shapes(
    shape1: ir.Shape | None,
    shape2: ir.Shape | None,
) -> ir.Shape | None:
    """Merge two shapes of the same value dimension by dimension.

    An unknown shape (``None``, rank unknown) merges to the other shape.

    Raises:
        ValueError: If the ranks differ or any pair of dimensions conflicts.
    """
    if shape1 is None:
        return shape2
    if shape2 is None:
        return shape1

    if shape1.rank() != shape2.rank():
        raise ValueError(f"Cannot merge shapes of rank {shape1.rank()} and {shape2.rank()}")

    merged: list[int | ir.SymbolicDim] = []
    for i, (d1, d2) in enumerate(zip(shape1.dims, shape2.dims)):
        try:
            merged.append(merge_dims(d1, d2))
        except ValueError as e:
            raise ValueError(f"Dimension {i}: {e}") from e
    return ir.Shape(merged)


def is_more_specific(
    inferred_dim: int | ir.SymbolicDim,
    existing_dim: int | ir.SymbolicDim,
) -> bool:
    """Check if the inferred dimension is more specific than the existing one.

    Specificity order: concrete int > named symbolic > unknown (None)
    """
    if isinstance(inferred_dim, int):
        return not isinstance(existing_dim, int)

    if inferred_dim.value is not None:
        if isinstance(existing_dim, ir.SymbolicDim) and existing_dim.value is None:
            return True

    return False
