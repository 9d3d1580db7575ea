# Copyright (c) ONNX Project Contributors
# SPDX-License-Identifier: Apache-2.0
"""Operator schemas and their shape inference functions.

Importing this package registers every schema with the global registry.
"""

from onnx_neuromorphic._ops import _neuromorphic, _recurrent  # noqa: F401
