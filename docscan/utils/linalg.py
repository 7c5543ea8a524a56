"""
Dense linear system solver used by the homography estimator.
"""

import logging
from typing import Sequence, Union

import numpy as np

from ..exceptions import SingularSystemError

logger = logging.getLogger(__name__)

# Relative pivot tolerance (scaled by the largest entry of the matrix)
PIVOT_EPSILON = 1e-12

ArrayLike = Union[np.ndarray, Sequence[Sequence[float]]]


def solve_linear_system(A: ArrayLike, b: Union[np.ndarray, Sequence[float]]) -> np.ndarray:
    """
    Solve A x = b by Gaussian elimination with partial pivoting.

    At each step the remaining row with the largest magnitude in the pivot
    column is swapped into place before eliminating below it; the solution
    is then recovered by back substitution from the last row upward.

    Args:
        A: n x n coefficient matrix
        b: right-hand side of length n

    Returns:
        Solution vector of length n (float64)

    Raises:
        ValueError: If the shapes do not describe a square system
        SingularSystemError: If no usable pivot exists for some column
    """
    M = np.array(A, dtype=np.float64)
    rhs = np.array(b, dtype=np.float64).reshape(-1)

    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise ValueError(f"Coefficient matrix must be square, got shape {M.shape}")
    n = M.shape[0]
    if rhs.shape[0] != n:
        raise ValueError(f"Right-hand side has length {rhs.shape[0]}, expected {n}")
    if n == 0:
        return np.zeros(0, dtype=np.float64)

    scale = float(np.max(np.abs(M)))
    tolerance = PIVOT_EPSILON * (scale if scale > 0 else 1.0)

    augmented = np.hstack([M, rhs[:, None]])

    for i in range(n):
        pivot_row = i + int(np.argmax(np.abs(augmented[i:, i])))
        if abs(augmented[pivot_row, i]) <= tolerance:
            raise SingularSystemError(
                f"Matrix is singular: no usable pivot in column {i}"
            )
        if pivot_row != i:
            augmented[[i, pivot_row]] = augmented[[pivot_row, i]]

        factors = augmented[i + 1:, i] / augmented[i, i]
        augmented[i + 1:, i:] -= factors[:, None] * augmented[i, i:]

    x = np.zeros(n, dtype=np.float64)
    for i in range(n - 1, -1, -1):
        x[i] = (augmented[i, n] - np.dot(augmented[i, i + 1:n], x[i + 1:])) / augmented[i, i]

    return x
