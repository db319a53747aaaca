"""
The manifold operation set and its generic defaults.

Every value-returning operation `f` has an in-place partner `f_` that writes
into its first argument after `M` (`exp_(M, q, p, X)`). The generic `f`
allocates its result through `allocate_result`, itself an operation, and then
calls `f_`, so a trait that changes the result shape only has to specialise
the allocation.

Generic implementations registered here on `AbstractManifold` are the last
resort of resolution. Concrete manifolds register more specific ones with
`op.register(MyManifold)`; traits register theirs with `op.register_trait`.
"""
from functools import singledispatch

import numpy as np

from .core.dispatch import Operation
from .core.errors import ManifoldDomainError, NoImplementationError
from .core.manifold import AbstractManifold
from .core.reporting import report
from .methods import (
    ExponentialRetraction,
    LogarithmicInverseRetraction,
    ParallelTransport,
    ProjectionInverseRetraction,
    ProjectionRetraction,
    ProjectionTransport,
    default_inverse_retraction_method,
    default_retraction_method,
    default_vector_transport_method,
)
from .utils.arrays import allocate, assign

representation_size = Operation("representation_size", doc="Shape of the arrays representing points on M.")
manifold_dimension = Operation("manifold_dimension", doc="Intrinsic dimension of M.")
allocate_result = Operation("allocate_result", doc="A buffer for the result of f(M, *args).")
copyto = Operation("copyto")

check_size = Operation("check_size")
check_point = Operation("check_point")
check_vector = Operation("check_vector")
is_point = Operation("is_point")
is_vector = Operation("is_vector")

embed = Operation("embed")
embed_ = Operation("embed_")
embed_project = Operation("embed_project", doc="Embed, then project back: a cleanup of points and tangent vectors.")
embed_project_ = Operation("embed_project_")
project = Operation("project")
project_ = Operation("project_")
zero_vector = Operation("zero_vector")
zero_vector_ = Operation("zero_vector_")

inner = Operation("inner")
norm = Operation("norm")
distance = Operation("distance")
injectivity_radius = Operation("injectivity_radius")
isapprox = Operation("isapprox")
rand = Operation("rand", doc="Random point (or tangent vector at `vector_at`) from a jax PRNG key.")

exp = Operation("exp")
exp_ = Operation("exp_")
log = Operation("log")
log_ = Operation("log_")
mid_point = Operation("mid_point", doc="The point halfway along the geodesic from p to q.")
mid_point_ = Operation("mid_point_")
retract = Operation("retract")
retract_ = Operation("retract_")
inverse_retract = Operation("inverse_retract")
inverse_retract_ = Operation("inverse_retract_")

parallel_transport_along = Operation("parallel_transport_along")
parallel_transport_along_ = Operation("parallel_transport_along_")
parallel_transport_direction = Operation("parallel_transport_direction")
parallel_transport_direction_ = Operation("parallel_transport_direction_")
parallel_transport_to = Operation("parallel_transport_to")
parallel_transport_to_ = Operation("parallel_transport_to_")
vector_transport_along = Operation("vector_transport_along")
vector_transport_along_ = Operation("vector_transport_along_")
vector_transport_direction = Operation("vector_transport_direction")
vector_transport_direction_ = Operation("vector_transport_direction_")
vector_transport_to = Operation("vector_transport_to")
vector_transport_to_ = Operation("vector_transport_to_")


def exp_fused(M, p, X, t):
    """exp(M, p, t * X) without the caller building t * X."""
    return exp(M, p, t * np.asarray(X))


def retract_fused(M, p, X, t, m=None):
    Y = t * np.asarray(X)
    if m is None:
        return retract(M, p, Y)
    return retract(M, p, Y, m)


# --- Sizes and buffers ---


@allocate_result.register(AbstractManifold)
def _allocate_result(M, f, *args):
    if not args:
        return np.empty(tuple(representation_size(M)))
    return allocate(args[0])


@copyto.register(AbstractManifold)
def _copyto(M, target, *args):
    # copyto(M, q, p) copies a point, copyto(M, Y, p, X) a tangent vector
    return assign(target, args[-1])


# --- Validity ---


def size_error(M, value, kind="point"):
    """A ManifoldDomainError if `value` does not have M's representation size."""
    n = tuple(representation_size(M))
    size = np.shape(value)
    if size != n:
        return ManifoldDomainError(
            f"The {kind} {value} can not belong to the manifold {M}, since its size "
            f"{size} is not equal to the manifold's representation size {n}."
        )
    return None


@check_size.register(AbstractManifold)
def _check_size(M, p, X=None):
    if X is None:
        return size_error(M, p)
    return size_error(M, X, "tangent vector")


@check_point.register(AbstractManifold)
def _check_point(M, p, **kwargs):
    return None


@check_vector.register(AbstractManifold)
def _check_vector(M, p, X, **kwargs):
    return None


@is_point.register(AbstractManifold)
def _is_point(M, p, error="none", **kwargs):
    """
    Whether `p` is a point on `M`.

    A failed check is reported according to `error`; with "error" it raises
    `ManifoldDomainError`, otherwise False is returned.
    """
    es = check_size(M, p)
    if es is not None:
        return report(es, error)
    mpe = check_point(M, p, **kwargs)
    if mpe is not None:
        return report(mpe, error)
    return True


@is_vector.register(AbstractManifold)
def _is_vector(M, p, X, check_base_point=True, error="none", **kwargs):
    if check_base_point and not is_point(M, p, error=error, **kwargs):
        return False
    es = check_size(M, p, X)
    if es is not None:
        return report(es, error)
    mve = check_vector(M, p, X, **kwargs)
    if mve is not None:
        return report(mve, error)
    return True


@isapprox.register(AbstractManifold)
def _isapprox(M, p, *args, **kwargs):
    # isapprox(M, p, q) compares points, isapprox(M, p, X, Y) tangent vectors at p
    a, b = (p, args[0]) if len(args) == 1 else args
    return bool(np.allclose(np.asarray(a), np.asarray(b), **kwargs))


# --- Embedding, projection, zero vector ---


@embed.register(AbstractManifold)
def _embed(M, p, *X):
    q = allocate_result(M, embed, p, *X)
    return embed_(M, q, p, *X)


@embed_.register(AbstractManifold)
def _embed_inplace(M, q, p, *X):
    return copyto(M, q, p, *X)


@project.register(AbstractManifold)
def _project(M, p, *X):
    q = allocate_result(M, project, p, *X)
    return project_(M, q, p, *X)


@embed_project.register(AbstractManifold)
def _embed_project(M, p, *X):
    # embed_project(M, p) for points, embed_project(M, p, X) for tangent vectors at p
    if X:
        return project(M, p, embed(M, p, X[0]))
    return project(M, embed(M, p))


@embed_project_.register(AbstractManifold)
def _embed_project_inplace(M, q, p, *X):
    if X:
        return project_(M, q, p, embed(M, p, X[0]))
    return project_(M, q, embed(M, p))


@zero_vector.register(AbstractManifold)
def _zero_vector(M, p):
    X = allocate_result(M, zero_vector, p)
    return zero_vector_(M, X, p)


@zero_vector_.register(AbstractManifold)
def _zero_vector_inplace(M, X, p):
    X[...] = 0
    return X


# --- Metric ---


@norm.register(AbstractManifold)
def _norm(M, p, X):
    return float(np.sqrt(np.real(inner(M, p, X, X))))


@distance.register(AbstractManifold)
def _distance(M, p, q):
    return norm(M, p, log(M, p, q))


# --- Exponential and logarithmic map ---


@exp.register(AbstractManifold)
def _exp(M, p, X):
    q = allocate_result(M, exp, p, X)
    return exp_(M, q, p, X)


@log.register(AbstractManifold)
def _log(M, p, q):
    X = allocate_result(M, log, p, q)
    return log_(M, X, p, q)


@mid_point.register(AbstractManifold)
def _mid_point(M, p, q):
    r = allocate_result(M, mid_point, p, q)
    return mid_point_(M, r, p, q)


@mid_point_.register(AbstractManifold)
def _mid_point_inplace(M, r, p, q):
    return exp_(M, r, p, 0.5 * np.asarray(log(M, p, q)))


# --- Retractions ---


@singledispatch
def _retract_with(m, M, q, p, X):
    raise NoImplementationError("retract_", type(M), f"retraction method {m!r}")


@_retract_with.register(ExponentialRetraction)
def _(m, M, q, p, X):
    return exp_(M, q, p, X)


@_retract_with.register(ProjectionRetraction)
def _(m, M, q, p, X):
    return project_(M, q, np.asarray(p) + np.asarray(X))


@retract.register(AbstractManifold)
def _retract(M, p, X, m=None):
    if m is None:
        m = default_retraction_method(M)
    q = allocate_result(M, retract, p, X)
    return retract_(M, q, p, X, m)


@retract_.register(AbstractManifold)
def _retract_inplace(M, q, p, X, m=None):
    if m is None:
        m = default_retraction_method(M)
    return _retract_with(m, M, q, p, X)


@singledispatch
def _inverse_retract_with(m, M, X, p, q):
    raise NoImplementationError("inverse_retract_", type(M), f"inverse retraction method {m!r}")


@_inverse_retract_with.register(LogarithmicInverseRetraction)
def _(m, M, X, p, q):
    return log_(M, X, p, q)


@_inverse_retract_with.register(ProjectionInverseRetraction)
def _(m, M, X, p, q):
    return project_(M, X, p, np.asarray(q) - np.asarray(p))


@inverse_retract.register(AbstractManifold)
def _inverse_retract(M, p, q, m=None):
    if m is None:
        m = default_inverse_retraction_method(M)
    X = allocate_result(M, inverse_retract, p, q)
    return inverse_retract_(M, X, p, q, m)


@inverse_retract_.register(AbstractManifold)
def _inverse_retract_inplace(M, X, p, q, m=None):
    if m is None:
        m = default_inverse_retraction_method(M)
    return _inverse_retract_with(m, M, X, p, q)


# --- Parallel transport ---


@parallel_transport_to.register(AbstractManifold)
def _parallel_transport_to(M, p, X, q):
    Y = allocate_result(M, parallel_transport_to, p, X, q)
    return parallel_transport_to_(M, Y, p, X, q)


@parallel_transport_direction.register(AbstractManifold)
def _parallel_transport_direction(M, p, X, d):
    Y = allocate_result(M, parallel_transport_direction, p, X, d)
    return parallel_transport_direction_(M, Y, p, X, d)


@parallel_transport_direction_.register(AbstractManifold)
def _parallel_transport_direction_inplace(M, Y, p, X, d):
    return parallel_transport_to_(M, Y, p, X, exp(M, p, d))


@parallel_transport_along.register(AbstractManifold)
def _parallel_transport_along(M, p, X, c):
    Y = allocate_result(M, parallel_transport_along, p, X, c)
    return parallel_transport_along_(M, Y, p, X, c)


@parallel_transport_along_.register(AbstractManifold)
def _parallel_transport_along_inplace(M, Y, p, X, c):
    """Transport X from p successively through the points of the discrete curve c."""
    current_p, current_X = p, X
    for q in c:
        current_X = parallel_transport_to(M, current_p, current_X, q)
        current_p = q
    return copyto(M, Y, current_p, current_X)


# --- Vector transport ---


@singledispatch
def _vector_transport_to_with(m, M, Y, p, X, q):
    raise NoImplementationError("vector_transport_to_", type(M), f"vector transport method {m!r}")


@_vector_transport_to_with.register(ParallelTransport)
def _(m, M, Y, p, X, q):
    return parallel_transport_to_(M, Y, p, X, q)


@_vector_transport_to_with.register(ProjectionTransport)
def _(m, M, Y, p, X, q):
    return project_(M, Y, q, X)


@vector_transport_to.register(AbstractManifold)
def _vector_transport_to(M, p, X, q, m=None):
    if m is None:
        m = default_vector_transport_method(M)
    Y = allocate_result(M, vector_transport_to, p, X, q)
    return vector_transport_to_(M, Y, p, X, q, m)


@vector_transport_to_.register(AbstractManifold)
def _vector_transport_to_inplace(M, Y, p, X, q, m=None):
    if m is None:
        m = default_vector_transport_method(M)
    return _vector_transport_to_with(m, M, Y, p, X, q)


@vector_transport_direction.register(AbstractManifold)
def _vector_transport_direction(M, p, X, d, m=None):
    if m is None:
        m = default_vector_transport_method(M)
    Y = allocate_result(M, vector_transport_direction, p, X, d)
    return vector_transport_direction_(M, Y, p, X, d, m)


@vector_transport_direction_.register(AbstractManifold)
def _vector_transport_direction_inplace(M, Y, p, X, d, m=None):
    if m is None:
        m = default_vector_transport_method(M)
    return vector_transport_to_(M, Y, p, X, retract(M, p, d), m)


@vector_transport_along.register(AbstractManifold)
def _vector_transport_along(M, p, X, c, m=None):
    if m is None:
        m = default_vector_transport_method(M)
    Y = allocate_result(M, vector_transport_along, p, X, c)
    return vector_transport_along_(M, Y, p, X, c, m)


@vector_transport_along_.register(AbstractManifold)
def _vector_transport_along_inplace(M, Y, p, X, c, m=None):
    if m is None:
        m = default_vector_transport_method(M)
    if isinstance(m, ParallelTransport):
        return parallel_transport_along_(M, Y, p, X, c)
    current_p, current_X = p, X
    for q in c:
        current_X = vector_transport_to(M, current_p, current_X, q, m)
        current_p = q
    return copyto(M, Y, current_p, current_X)


__all__ = [
    "allocate_result",
    "check_point",
    "check_size",
    "check_vector",
    "copyto",
    "distance",
    "embed",
    "embed_",
    "embed_project",
    "embed_project_",
    "exp",
    "exp_",
    "exp_fused",
    "injectivity_radius",
    "inner",
    "inverse_retract",
    "inverse_retract_",
    "is_point",
    "is_vector",
    "isapprox",
    "log",
    "log_",
    "manifold_dimension",
    "mid_point",
    "mid_point_",
    "norm",
    "parallel_transport_along",
    "parallel_transport_along_",
    "parallel_transport_direction",
    "parallel_transport_direction_",
    "parallel_transport_to",
    "parallel_transport_to_",
    "project",
    "project_",
    "rand",
    "representation_size",
    "retract",
    "retract_",
    "retract_fused",
    "size_error",
    "vector_transport_along",
    "vector_transport_along_",
    "vector_transport_direction",
    "vector_transport_direction_",
    "vector_transport_to",
    "vector_transport_to_",
    "zero_vector",
    "zero_vector_",
]
