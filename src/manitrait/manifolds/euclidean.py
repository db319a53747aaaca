import jax
import jax.numpy as jnp
import numpy as np
import equinox as eqx

from ..core.errors import ManifoldDomainError
from ..core.manifold import AbstractManifold
from ..interface import (
    check_point,
    check_vector,
    distance,
    exp_,
    injectivity_radius,
    inner,
    log_,
    manifold_dimension,
    parallel_transport_along_,
    parallel_transport_direction_,
    parallel_transport_to_,
    project_,
    rand,
    representation_size,
)
from ..methods import EfficientEstimator, default_approximation_method
from ..utils.arrays import assign
from ..utils.math import safe_norm


class Euclidean(AbstractManifold):
    """
    Flat space R^n.

    Points and tangent vectors are both arrays of shape (n,); every tangent
    space is R^n itself, so transports are the identity.
    """

    n: int = eqx.field(static=True)

    def __init__(self, n: int = 3):
        if n < 1:
            raise ValueError(f"Euclidean space needs a positive dimension, got {n}.")
        self.n = n


@representation_size.register(Euclidean)
def _representation_size(M):
    return (M.n,)


@manifold_dimension.register(Euclidean)
def _manifold_dimension(M):
    return M.n


@check_point.register(Euclidean)
def _check_point(M, p, **kwargs):
    if not np.all(np.isfinite(np.asarray(p))):
        return ManifoldDomainError(f"The point {p} on {M} has non-finite entries.")
    return None


@check_vector.register(Euclidean)
def _check_vector(M, p, X, **kwargs):
    if not np.all(np.isfinite(np.asarray(X))):
        return ManifoldDomainError(f"The tangent vector {X} at {p} on {M} has non-finite entries.")
    return None


@exp_.register(Euclidean)
def _exp(M, q, p, X):
    return assign(q, jnp.asarray(p) + jnp.asarray(X))


@log_.register(Euclidean)
def _log(M, X, p, q):
    return assign(X, jnp.asarray(q) - jnp.asarray(p))


@inner.register(Euclidean)
def _inner(M, p, X, Y):
    return float(jnp.dot(jnp.asarray(X), jnp.asarray(Y)))


@distance.register(Euclidean)
def _distance(M, p, q):
    return float(safe_norm(jnp.asarray(q) - jnp.asarray(p)))


@injectivity_radius.register(Euclidean)
def _injectivity_radius(M, *args):
    return float("inf")


@project_.register(Euclidean)
def _project(M, q, p, *X):
    # Every point is on R^n and every vector is tangent.
    return assign(q, X[0] if X else p)


@parallel_transport_to_.register(Euclidean)
def _parallel_transport_to(M, Y, p, X, q):
    return assign(Y, X)


@parallel_transport_direction_.register(Euclidean)
def _parallel_transport_direction(M, Y, p, X, d):
    return assign(Y, X)


@parallel_transport_along_.register(Euclidean)
def _parallel_transport_along(M, Y, p, X, c):
    return assign(Y, X)


@rand.register(Euclidean)
def _rand(M, key, vector_at=None, sigma: float = 1.0):
    """A normally distributed point, or tangent vector at `vector_at`, with std `sigma`."""
    return sigma * jax.random.normal(key, (M.n,))


@default_approximation_method.register(Euclidean)
def _default_approximation(M, f=None):
    return EfficientEstimator()
