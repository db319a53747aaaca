"""
Traits that forward operations of a manifold to its embedding.

    IsEmbeddedSubmanifold -> IsIsometricEmbeddedManifold -> IsEmbeddedManifold

Each trait implies its parent, so a submanifold also gets the metric
forwarding of the isometric trait and the checks of the embedded trait.

* IsEmbeddedManifold: sizes, validity checks, embed/project and zero vectors
  go through `get_embedding(M, p)`.
* IsIsometricEmbeddedManifold: inner, norm and injectivity_radius are
  forwarded to the embedding unchanged.
* IsEmbeddedSubmanifold: exp, log, retractions and all transports are
  forwarded to the embedding unchanged.
"""
from typing import Any, Optional

from .core.dispatch import Operation
from .core.errors import ManifoldDomainError
from .core.manifold import AbstractDecoratorManifold, active_traits, decorated_object, get_embedding
from .core.reporting import report
from .core.traits import declare_trait, merge_traits
from .interface import (
    allocate_result,
    check_point,
    check_size,
    check_vector,
    copyto,
    embed,
    embed_,
    exp,
    exp_,
    injectivity_radius,
    inner,
    inverse_retract,
    inverse_retract_,
    is_point,
    is_vector,
    log,
    log_,
    norm,
    parallel_transport_along,
    parallel_transport_along_,
    parallel_transport_direction,
    parallel_transport_direction_,
    parallel_transport_to,
    parallel_transport_to_,
    project,
    project_,
    representation_size,
    retract,
    retract_,
    size_error,
    vector_transport_along,
    vector_transport_along_,
    vector_transport_direction,
    vector_transport_direction_,
    vector_transport_to,
    vector_transport_to_,
    zero_vector,
    zero_vector_,
)
from .methods import (
    AbstractRetractionMethod,
    default_inverse_retraction_method,
    default_retraction_method,
    default_vector_transport_method,
)
from .utils.arrays import allocate

IsEmbeddedManifold = declare_trait("IsEmbeddedManifold")
IsIsometricEmbeddedManifold = declare_trait("IsIsometricEmbeddedManifold", IsEmbeddedManifold)
IsEmbeddedSubmanifold = declare_trait("IsEmbeddedSubmanifold", IsIsometricEmbeddedManifold)


class EmbeddedManifold(AbstractDecoratorManifold):
    """
    Declares `manifold` to be embedded in `embedding`.

    Checks and embed/project use the embedding; everything else is forwarded
    to `manifold`.
    """

    manifold: Any
    embedding: Any


@active_traits.register(EmbeddedManifold)
def _embedded_manifold_traits(M, operation, *args):
    # The wrapped manifold keeps its own traits; they come first so that a more
    # specific embedding trait it declares still precedes IsEmbeddedManifold.
    return merge_traits(active_traits(M.manifold, operation, *args), (IsEmbeddedManifold,))


@decorated_object.register(EmbeddedManifold)
def _embedded_manifold_decorated(M):
    return M.manifold


@get_embedding.register(EmbeddedManifold)
def _embedded_manifold_embedding(M, p=None):
    return M.embedding


# --- IsEmbeddedManifold ---


@representation_size.register_trait(IsEmbeddedManifold)
def _representation_size(M):
    return representation_size(get_embedding(M))


@allocate_result.register_trait(IsEmbeddedManifold, signature=(embed, object))
@allocate_result.register_trait(IsEmbeddedManifold, signature=(embed, object, object))
def _allocate_embed(M, f, p, *X):
    E = get_embedding(M, p)
    return allocate(X[0] if X else p, shape=representation_size(E))


@allocate_result.register_trait(IsEmbeddedManifold, signature=(project, object))
@allocate_result.register_trait(IsEmbeddedManifold, signature=(project, object, object))
def _allocate_project(M, f, p, *X):
    return allocate(X[0] if X else p, shape=representation_size(M))


@check_size.register_trait(IsEmbeddedManifold, signature=(object,))
def _check_size_point(M, p):
    # The point has to fit M's representation before it can be embedded at all.
    es = size_error(M, p)
    if es is not None:
        return es
    mpe = check_size(get_embedding(M, p), embed(M, p))
    if mpe is not None:
        return ManifoldDomainError(
            f"{p} is not a point on {M} because it is not a valid point in its embedding: ",
            mpe,
        )
    return None


@check_size.register_trait(IsEmbeddedManifold, signature=(object, object))
def _check_size_vector(M, p, X):
    es = size_error(M, X, "tangent vector")
    if es is not None:
        return es
    mpe = check_size(get_embedding(M, p), embed(M, p), embed(M, p, X))
    if mpe is not None:
        return ManifoldDomainError(
            f"{X} is not a tangent vector to {p} on {M} because it is not a valid "
            f"tangent vector in its embedding: ",
            mpe,
        )
    return None


@is_point.register_trait(IsEmbeddedManifold)
def _is_point(M, p, error="none", **kwargs):
    # Sizes first, so the embedding never sees a malformed array.
    es = check_size(M, p)
    if es is not None:
        return report(es, error)
    mpe = check_point(get_embedding(M, p), embed(M, p), **kwargs)
    if mpe is not None:
        return report(
            ManifoldDomainError(
                f"{p} is not a point on {M} because it is not a valid point in its embedding: ",
                mpe,
            ),
            error,
        )
    mpe = check_point(M, p, **kwargs)
    if mpe is not None:
        return report(mpe, error)
    return True


@is_vector.register_trait(IsEmbeddedManifold)
def _is_vector(M, p, X, check_base_point=True, error="none", **kwargs):
    if check_base_point and not is_point(M, p, error=error, **kwargs):
        return False
    es = check_size(M, p, X)
    if es is not None:
        return report(es, error)
    mpe = check_vector(get_embedding(M, p), embed(M, p), embed(M, p, X), **kwargs)
    if mpe is not None:
        return report(
            ManifoldDomainError(
                f"{X} is not a tangent vector to {p} on {M} because it is not a valid "
                f"tangent vector in its embedding: ",
                mpe,
            ),
            error,
        )
    mpe = check_vector(M, p, X, **kwargs)
    if mpe is not None:
        return report(mpe, error)
    return True


@embed.register_trait(IsEmbeddedManifold)
def _embed(M, p, *X):
    q = allocate_result(M, embed, p, *X)
    return embed_(M, q, p, *X)


@embed_.register_trait(IsEmbeddedManifold)
def _embed_inplace(M, q, p, *X):
    return copyto(M, q, p, *X)


@project.register_trait(IsEmbeddedManifold)
def _project(M, p, *X):
    q = allocate_result(M, project, p, *X)
    return project_(M, q, p, *X)


@zero_vector.register_trait(IsEmbeddedManifold)
def _zero_vector(M, p):
    X = allocate_result(M, zero_vector, p)
    return zero_vector_(M, X, p)


@zero_vector_.register_trait(IsEmbeddedManifold)
def _zero_vector_inplace(M, X, p):
    return zero_vector_(get_embedding(M, p), X, p)


# --- IsIsometricEmbeddedManifold ---


@inner.register_trait(IsIsometricEmbeddedManifold)
def _inner(M, p, X, Y):
    return inner(get_embedding(M, p), p, X, Y)


@norm.register_trait(IsIsometricEmbeddedManifold)
def _norm(M, p, X):
    return norm(get_embedding(M, p), p, X)


@injectivity_radius.register_trait(IsIsometricEmbeddedManifold, signature=())
def _injectivity_radius(M):
    return injectivity_radius(get_embedding(M))


@injectivity_radius.register_trait(IsIsometricEmbeddedManifold, signature=(object,))
def _injectivity_radius_at(M, p):
    return injectivity_radius(get_embedding(M, p), p)


@injectivity_radius.register_trait(IsIsometricEmbeddedManifold, signature=(AbstractRetractionMethod,))
def _injectivity_radius_method(M, m):
    return injectivity_radius(get_embedding(M), m)


@injectivity_radius.register_trait(IsIsometricEmbeddedManifold, signature=(object, AbstractRetractionMethod))
def _injectivity_radius_at_method(M, p, m):
    return injectivity_radius(get_embedding(M, p), p, m)


# --- IsEmbeddedSubmanifold ---
#
# Every value-returning form allocates via allocate_result and calls its
# in-place partner; the in-place form hands the call to the embedding.
# `n_args` counts the positional arguments after M (and after the output
# array for in-place forms) that are not the optional method.


def _with_method(M, op: Operation, args, n_args: int, default_method: Optional[Operation], m):
    # The method may come positionally or as `m=`; it always ends up last.
    if default_method is None:
        if m is not None:
            raise TypeError(f"{op.name} takes no method, got m={m!r}")
        return args
    if m is not None:
        if len(args) > n_args:
            raise TypeError(f"{op.name} got the method both positionally and as m={m!r}")
        args = args + (m,)
    if len(args) == n_args:
        args = args + (default_method(M),)
    return args


def _forward_value(op: Operation, inplace: Operation, n_args: int,
                   default_method: Optional[Operation] = None):
    def forwarded(M, *args, m=None):
        args = _with_method(M, op, args, n_args, default_method, m)
        out = allocate_result(M, op, *args[:n_args])
        return inplace(M, out, *args)
    forwarded.__name__ = f"_{op.name}_submanifold"
    return forwarded


def _forward_inplace(inplace: Operation, n_args: int, default_method: Optional[Operation] = None):
    def forwarded(M, out, *args, m=None):
        args = _with_method(M, inplace, args, n_args, default_method, m)
        return inplace(get_embedding(M, args[0]), out, *args)
    forwarded.__name__ = f"_{inplace.name}_submanifold"
    return forwarded


_SUBMANIFOLD_FORWARDS = [
    (exp, exp_, 2, None),
    (log, log_, 2, None),
    (retract, retract_, 2, default_retraction_method),
    (inverse_retract, inverse_retract_, 2, default_inverse_retraction_method),
    (parallel_transport_to, parallel_transport_to_, 3, None),
    (parallel_transport_direction, parallel_transport_direction_, 3, None),
    (parallel_transport_along, parallel_transport_along_, 3, None),
    (vector_transport_to, vector_transport_to_, 3, default_vector_transport_method),
    (vector_transport_direction, vector_transport_direction_, 3, default_vector_transport_method),
    (vector_transport_along, vector_transport_along_, 3, default_vector_transport_method),
]

for _op, _inplace, _n, _default in _SUBMANIFOLD_FORWARDS:
    _op.register_trait(IsEmbeddedSubmanifold)(_forward_value(_op, _inplace, _n, _default))
    _inplace.register_trait(IsEmbeddedSubmanifold)(_forward_inplace(_inplace, _n, _default))
