"""
Numerical convergence-order checks for retractions and vector transports.

Each check walks along the geodesic `t -> exp(M, p, t * X / |X|)` for
`t = 10 ** log_range`, measures how far the approximation is from the exact
map, and fits a line to the errors in log-log scale. An approximation of
order k has error O(t ** (k + 1)), so a second order retraction should show
slope 3.
"""
import logging
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .core.errors import CheckFailedError
from .core.reporting import check_error_mode, report
from .interface import (
    distance,
    exp_fused,
    inverse_retract,
    norm,
    parallel_transport_to,
    retract_fused,
    vector_transport_to,
)

logger = logging.getLogger(__name__)

Window = Optional[Union[int, Sequence[int]]]


def _log_range(limits, N, log_range):
    if log_range is None:
        log_range = np.linspace(limits[0], limits[1], N)
    return np.asarray(log_range, dtype=float)


def _unit(M, p, X):
    return np.asarray(X) / norm(M, p, X)


def check_retraction(M, retraction_method, p, X, *, exactness_tol: float = 1e-12,
                     limits: Tuple[float, float] = (-8.0, 0.0), N: int = 101,
                     second_order: bool = True, name: Optional[str] = None,
                     log_range=None, slope_tol: float = 0.1, error: str = "none",
                     window: Window = None) -> bool:
    """
    Check numerically that `retraction_method` approximates `exp` to the expected order.

    Args:
        M: The manifold.
        retraction_method: The retraction to check.
        p: Base point.
        X: Tangent direction at `p`; only its direction is used.
        exactness_tol: If all errors are below this, the retraction is exact.
        limits: Exponent range of the step sizes, used when `log_range` is None.
        N: Number of step sizes within `limits`.
        second_order: Expect slope 3 (second order) instead of 2.
        name: Name used in messages.
        log_range: Explicit exponents of the step sizes.
        slope_tol: Accepted deviation from the expected slope.
        error: "none", "info", "warn" or "error".
        window: Window size(s) to search when the global slope is off.

    Returns:
        True if the check passes.
    """
    log_range = _log_range(limits, N, log_range)
    Xn = _unit(M, p, X)
    T = 10.0 ** log_range
    points = [exp_fused(M, p, Xn, t) for t in T]
    approx_points = [retract_fused(M, p, Xn, t, retraction_method) for t in T]
    errors = [distance(M, q, r) for q, r in zip(points, approx_points)]
    if name is None:
        name = "second order retraction" if second_order else "retraction"
    return prepare_check_result(
        log_range, errors, 3.0 if second_order else 2.0, exactness_tol=exactness_tol,
        name=name, slope_tol=slope_tol, error=error, window=window,
    )


def check_inverse_retraction(M, inverse_retraction_method, p, X, *, exactness_tol: float = 1e-12,
                             limits: Tuple[float, float] = (-8.0, 0.0), N: int = 101,
                             second_order: bool = True, name: Optional[str] = None,
                             log_range=None, slope_tol: float = 0.1, error: str = "none",
                             window: Window = None) -> bool:
    """
    Check numerically that `inverse_retraction_method` approximates `log`.

    The points `exp(M, p, t * Xn)` are mapped back with the inverse
    retraction and compared against `t * Xn`. Arguments as in `check_retraction`.
    """
    log_range = _log_range(limits, N, log_range)
    Xn = _unit(M, p, X)
    T = 10.0 ** log_range
    points = [exp_fused(M, p, Xn, t) for t in T]
    approx = [inverse_retract(M, p, q, inverse_retraction_method) for q in points]
    errors = [norm(M, p, t * Xn - np.asarray(Y)) for t, Y in zip(T, approx)]
    if name is None:
        name = "second order inverse retraction" if second_order else "inverse retraction"
    return prepare_check_result(
        log_range, errors, 3.0 if second_order else 2.0, exactness_tol=exactness_tol,
        name=name, slope_tol=slope_tol, error=error, window=window,
    )


def check_vector_transport(M, vector_transport_method, p, X, Y, *, exactness_tol: float = 1e-12,
                           limits: Tuple[float, float] = (-8.0, 0.0), N: int = 101,
                           second_order: bool = True, name: Optional[str] = None,
                           log_range=None, slope_tol: float = 0.1, error: str = "none",
                           window: Window = None) -> bool:
    """
    Check numerically that `vector_transport_method` approximates parallel transport.

    `Y` is transported to the points `exp(M, p, t * Xn)` with both methods
    and the difference is measured at the target. Arguments as in
    `check_retraction`.
    """
    log_range = _log_range(limits, N, log_range)
    Xn = _unit(M, p, X)
    T = 10.0 ** log_range
    points = [exp_fused(M, p, Xn, t) for t in T]
    errors = []
    for q in points:
        Yv = np.asarray(vector_transport_to(M, p, Y, q, vector_transport_method))
        Yp = np.asarray(parallel_transport_to(M, p, Y, q))
        errors.append(norm(M, q, Yv - Yp))
    if name is None:
        name = "second order vector transport" if second_order else "vector transport"
    return prepare_check_result(
        log_range, errors, 3.0 if second_order else 2.0, exactness_tol=exactness_tol,
        name=name, slope_tol=slope_tol, error=error, window=window,
    )


def prepare_check_result(log_range, errors, slope: float, *, exactness_tol: Optional[float] = None,
                         name: str = "estimated slope", slope_tol: float = 0.1,
                         error: str = "none", window: Window = None) -> bool:
    """
    Decide whether `errors` sampled at `10 ** log_range` decay with `slope` in log-log scale.

    Errors all below `exactness_tol` count as an exact method. Otherwise a line
    is fitted to all positive errors. If its slope is off by more than
    `slope_tol`, the best fitting window is searched and reported before the
    check fails according to `error`.

    Raises:
        CheckFailedError: If the check fails and `error` is "error".
    """
    check_error_mode(error)
    log_range = np.asarray(log_range, dtype=float)
    errors = np.asarray(errors, dtype=float)
    if exactness_tol is None:
        exactness_tol = 1e3 * np.finfo(errors.dtype).eps
    if np.max(errors) < exactness_tol:
        logger.info(
            "All errors are below the exactness tolerance %g. The %s can be considered exact.",
            exactness_tol, name,
        )
        return True
    positive = errors > 0
    x = log_range[positive]
    y = np.log10(errors[positive])
    a, b, _, _ = find_best_slope_window(x, y, len(x), slope=slope, slope_tol=slope_tol)
    if abs(b - slope) <= slope_tol:
        logger.info("The %s's slope is globally %.4f, so within %s +- %s.", name, b, slope, slope_tol)
        return True
    _, bb, ib, jb = find_best_slope_window(x, y, window, slope=slope, slope_tol=slope_tol)
    msg = (
        f"The {name} fits best on [{10.0 ** x[ib]:g}, {10.0 ** x[jb]:g}] with slope {bb:.4f}, "
        f"but globally the slope {b:.4f} is outside of the tolerance {slope} +- {slope_tol}."
    )
    return report(CheckFailedError(msg), error)


def find_best_slope_window(x, y, window: Window = None, *, slope: float = 2.0,
                           slope_tol: float = 0.1) -> Tuple[float, float, int, int]:
    """
    The regression line `a + b * t` of the best contiguous window of (x, y).

    Every window size in `window` (all sizes 2..len(x) when None) is tried at
    every offset. Among windows whose slope is within `slope_tol` of `slope`
    the longest wins; without any such window the slope closest to `slope`
    wins.

    Returns:
        (a, b, i, j): intercept and slope of the line fitted to x[i], ..., x[j].
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = len(x)
    if n < 2:
        raise ValueError(f"At least two samples are needed to fit a slope, got {n}.")
    if window is None:
        sizes = range(2, n + 1)
    elif np.ndim(window) == 0:
        sizes = (int(window),)
    else:
        sizes = tuple(int(w) for w in window)

    best = None
    best_inside = False
    best_key = None
    for w in sizes:
        w = min(max(w, 2), n)
        for i in range(n - w + 1):
            j = i + w - 1
            b, a = np.polyfit(x[i:j + 1], y[i:j + 1], 1)
            inside = abs(b - slope) <= slope_tol
            # Inside the tolerance longer windows win, outside closer slopes win.
            key = (w, -abs(b - slope)) if inside else (-abs(b - slope), w)
            if best is None or (inside, key) > (best_inside, best_key):
                best, best_inside, best_key = (float(a), float(b), i, j), inside, key
    return best
