from __future__ import annotations
import numpy as np

def normalize_rows(v: np.ndarray, eps: float = 1e-12) -> np.ndarray:
    """Normalize each row of an (N,3) array. Zero rows stay zero."""
    n = np.linalg.norm(v, axis=-1, keepdims=True)
    out = np.zeros_like(v)
    np.divide(v, n, out=out, where=n > eps)
    return out

def lerp(a: np.ndarray, b: np.ndarray, t: np.ndarray | float) -> np.ndarray:
    return a + (b - a) * t
