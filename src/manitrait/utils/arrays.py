"""
Output buffers for the in-place operation variants.

jax arrays are immutable, so every in-place operation (`exp_`, `log_`, ...)
writes into a numpy buffer. Values computed with `jax.numpy` are copied in.
"""
from typing import Optional, Tuple

import numpy as np


def allocate(x, shape: Optional[Tuple[int, ...]] = None, dtype=None) -> np.ndarray:
    """
    A fresh, writable buffer shaped like `x` (or `shape`).

    The dtype is promoted to at least float so geometric results fit.
    """
    x = np.asarray(x)
    if dtype is None:
        dtype = np.result_type(x.dtype, np.float32)
    return np.empty(x.shape if shape is None else tuple(shape), dtype=dtype)


def assign(out: np.ndarray, value) -> np.ndarray:
    """Write `value` into `out` and return `out`."""
    np.copyto(out, np.asarray(value), casting="same_kind")
    return out
