import jax
import jax.numpy as jnp
import numpy as np
import equinox as eqx

from ..core.errors import ManifoldDomainError
from ..core.manifold import AbstractDecoratorManifold, active_traits, get_embedding
from ..embedded import IsIsometricEmbeddedManifold
from ..interface import (
    check_point,
    check_vector,
    distance,
    exp_,
    injectivity_radius,
    log_,
    manifold_dimension,
    parallel_transport_to_,
    project_,
    rand,
)
from ..methods import GeodesicInterpolation, ProjectionRetraction, default_approximation_method
from ..utils.arrays import assign
from ..utils.math import safe_norm
from .euclidean import Euclidean


def _tolerance(x, atol):
    if atol is not None:
        return atol
    dtype = np.result_type(np.asarray(x).dtype, np.float32)
    return float(np.sqrt(np.finfo(dtype).eps))


class Sphere(AbstractDecoratorManifold):
    """
    The unit sphere S^n, isometrically embedded in R^(n+1).

    Constraint: |p| = 1
    Tangent space condition: <p, X> = 0

    The metric (inner, norm) comes from the embedding; exp, log and the
    transports are the closed-form great-circle formulas.
    """

    n: int = eqx.field(static=True)

    def __init__(self, n: int = 2):
        if n < 1:
            raise ValueError(f"The sphere needs a positive dimension, got {n}.")
        self.n = n


@active_traits.register(Sphere)
def _sphere_traits(M, operation, *args):
    # The injectivity radius is intrinsic: pi, not the one of R^(n+1).
    if operation is injectivity_radius:
        return ()
    return (IsIsometricEmbeddedManifold,)


@get_embedding.register(Sphere)
def _sphere_embedding(M, p=None):
    return Euclidean(M.n + 1)


@manifold_dimension.register(Sphere)
def _manifold_dimension(M):
    return M.n


@check_point.register(Sphere)
def _check_point(M, p, atol=None, **kwargs):
    atol = _tolerance(p, atol)
    r = float(safe_norm(p))
    if not abs(r - 1.0) <= atol:
        return ManifoldDomainError(
            f"The point {p} does not lie on {M} since its norm is not 1 but {r}."
        )
    return None


@check_vector.register(Sphere)
def _check_vector(M, p, X, atol=None, **kwargs):
    atol = _tolerance(X, atol)
    d = float(jnp.dot(jnp.asarray(p), jnp.asarray(X)))
    if not abs(d) <= atol:
        return ManifoldDomainError(
            f"The vector {X} is not a tangent vector to {p} on {M}, since it is not "
            f"orthogonal in the embedding (inner product {d})."
        )
    return None


@exp_.register(Sphere)
def _exp(M, q, p, X):
    p, X = jnp.asarray(p), jnp.asarray(X)
    theta = safe_norm(X)
    # sinc(theta / pi) = sin(theta) / theta, finite at theta = 0
    return assign(q, jnp.cos(theta) * p + jnp.sinc(theta / jnp.pi) * X)


@log_.register(Sphere)
def _log(M, X, p, q):
    p, q = jnp.asarray(p), jnp.asarray(q)
    v = q - jnp.dot(p, q) * p
    s = safe_norm(v)
    theta = distance(M, p, q)
    return assign(X, jnp.where(s > 0, theta / jnp.where(s > 0, s, 1.0), 0.0) * v)


@distance.register(Sphere)
def _distance(M, p, q):
    p, q = jnp.asarray(p), jnp.asarray(q)
    # Stable for nearby and for antipodal points, unlike arccos(<p, q>).
    return float(2 * jnp.arctan2(safe_norm(p - q), safe_norm(p + q)))


@injectivity_radius.register(Sphere)
def _injectivity_radius(M, *args):
    if args and isinstance(args[-1], ProjectionRetraction):
        return float(jnp.pi / 2)
    return float(jnp.pi)


@project_.register(Sphere)
def _project(M, q, p, *X):
    p = jnp.asarray(p)
    if X:
        Y = jnp.asarray(X[0])
        return assign(q, Y - jnp.dot(p, Y) * p)
    return assign(q, p / jnp.maximum(safe_norm(p), 1e-12))


@parallel_transport_to_.register(Sphere)
def _parallel_transport_to(M, Y, p, X, q):
    p, X, q = jnp.asarray(p), jnp.asarray(X), jnp.asarray(q)
    m = p + q
    factor = 2 * jnp.dot(X, q) / jnp.dot(m, m)
    return assign(Y, X - factor * m)


@rand.register(Sphere)
def _rand(M, key, vector_at=None, sigma: float = 1.0):
    """Uniform point on S^n, or a normally distributed tangent vector at `vector_at`."""
    x = jax.random.normal(key, (M.n + 1,))
    if vector_at is None:
        return x / safe_norm(x)
    p = jnp.asarray(vector_at)
    return sigma * (x - jnp.dot(p, x) * p)


@default_approximation_method.register(Sphere)
def _default_approximation(M, f=None):
    return GeodesicInterpolation()
