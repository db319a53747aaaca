import jax
import jax.numpy as jnp
import numpy as np
import equinox as eqx

from ..core.errors import ManifoldDomainError
from ..core.manifold import AbstractDecoratorManifold, active_traits, get_embedding
from ..embedded import IsEmbeddedSubmanifold
from ..interface import (
    check_point,
    injectivity_radius,
    manifold_dimension,
    project_,
    rand,
)
from ..methods import AbstractRetractionMethod
from ..utils.arrays import assign
from .euclidean import Euclidean


class PositiveOrthant(AbstractDecoratorManifold):
    """
    The open set {p in R^n : p_i > 0} with the Euclidean metric.

    As an open submanifold it shares exp, log and every transport with
    R^n; only its points are restricted.
    """

    n: int = eqx.field(static=True)

    def __init__(self, n: int = 2):
        if n < 1:
            raise ValueError(f"The positive orthant needs a positive dimension, got {n}.")
        self.n = n


@active_traits.register(PositiveOrthant)
def _orthant_traits(M, operation, *args):
    if operation is injectivity_radius:
        return ()
    return (IsEmbeddedSubmanifold,)


@get_embedding.register(PositiveOrthant)
def _orthant_embedding(M, p=None):
    return Euclidean(M.n)


@manifold_dimension.register(PositiveOrthant)
def _manifold_dimension(M):
    return M.n


@check_point.register(PositiveOrthant)
def _check_point(M, p, **kwargs):
    if not np.all(np.asarray(p) > 0):
        return ManifoldDomainError(f"The point {p} does not lie on {M}, since not all its entries are positive.")
    return None


@injectivity_radius.register(PositiveOrthant)
def _injectivity_radius(M, *args):
    # Geodesics are straight lines that leave the set at its boundary.
    if args and not isinstance(args[0], AbstractRetractionMethod):
        return float(np.min(np.asarray(args[0])))
    return 0.0


@project_.register(PositiveOrthant)
def _project(M, q, p, *X):
    if X:
        return assign(q, X[0])
    return assign(q, jnp.maximum(jnp.asarray(p), np.finfo(np.float32).tiny))


@rand.register(PositiveOrthant)
def _rand(M, key, vector_at=None, sigma: float = 1.0):
    x = sigma * jax.random.normal(key, (M.n,))
    if vector_at is None:
        return jnp.exp(x)
    return x
