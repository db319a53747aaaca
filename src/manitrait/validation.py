"""
A decorator that checks inputs and outputs of the interface operations.

    M = ValidationManifold(Sphere(2), error="warn", ignore_contexts=("Output",))
    exp(M, p, X)  # checks p and X, skips the check of the result

Checks are grouped into contexts:

* "All": every check
* "Point" / "Vector": checks of points / tangent vectors
* "Input" / "Output": checks of arguments / results

A check runs unless one of its contexts (or "All") is ignored, globally or
for the operation it runs in. Operations are named by their value-returning
form, so ignoring within `exp` also covers `exp_`.
"""
import threading
from dataclasses import dataclass
from functools import singledispatch
from typing import Any, Dict, FrozenSet, Iterable, Optional, Set, Union

import equinox as eqx
import numpy as np
from jax.tree_util import register_dataclass

from .core.dispatch import Operation
from .core.errors import ManifoldDomainError
from .core.manifold import AbstractDecoratorManifold, decorated_object
from .core.reporting import check_error_mode, report
from .interface import (
    check_point,
    check_size,
    check_vector,
    copyto,
    distance,
    embed,
    embed_,
    embed_project,
    embed_project_,
    exp,
    exp_,
    injectivity_radius,
    inner,
    inverse_retract,
    inverse_retract_,
    is_point,
    is_vector,
    isapprox,
    log,
    log_,
    mid_point,
    mid_point_,
    norm,
    parallel_transport_along,
    parallel_transport_along_,
    parallel_transport_direction,
    parallel_transport_direction_,
    parallel_transport_to,
    parallel_transport_to_,
    project,
    project_,
    rand,
    retract,
    retract_,
    vector_transport_along,
    vector_transport_along_,
    vector_transport_direction,
    vector_transport_direction_,
    vector_transport_to,
    vector_transport_to_,
    zero_vector,
    zero_vector_,
)
from .methods import AbstractRetractionMethod

CONTEXTS = ("All", "Point", "Vector", "Input", "Output")

Contexts = Union[str, Iterable[str]]


def as_contexts(contexts: Contexts) -> FrozenSet[str]:
    if isinstance(contexts, str):
        contexts = (contexts,)
    contexts = frozenset(contexts)
    unknown = contexts.difference(CONTEXTS)
    if unknown:
        raise ValueError(
            f"Unknown validation context(s) {sorted(unknown)}. Available: {', '.join(CONTEXTS)}"
        )
    return contexts


def function_key(f: Union[str, Operation]) -> str:
    """The name an operation is filed under: `exp_` and `exp` both give "exp"."""
    name = f if isinstance(f, str) else getattr(f, "name", f.__name__)
    return name[:-1] if name.endswith("_") else name


class ValidationPolicy:
    """
    Which checks a `ValidationManifold` skips.

    Holds a global set of ignored contexts and a set per operation. Both can
    be changed while the manifold is in use; every access takes the lock.
    """

    def __init__(self, ignore_contexts: Contexts = (),
                 ignore_functions: Optional[Dict[Any, Contexts]] = None):
        self._lock = threading.RLock()
        self._contexts: Set[str] = set(as_contexts(ignore_contexts))
        self._functions: Dict[str, Set[str]] = {}
        for f, contexts in (ignore_functions or {}).items():
            self.ignore_within(f, contexts)

    def ignore(self, contexts: Contexts) -> None:
        contexts = as_contexts(contexts)
        with self._lock:
            self._contexts.update(contexts)

    def ignore_within(self, f, contexts: Contexts) -> None:
        contexts = as_contexts(contexts)
        with self._lock:
            self._functions.setdefault(function_key(f), set()).update(contexts)

    def restore(self, contexts: Optional[Contexts] = None, within=None) -> None:
        """
        Re-enable checks.

        Args:
            contexts: The contexts to re-enable. None re-enables all of them.
            within: Restrict the change to the entry of this operation.
                Without it the global set is changed.
        """
        with self._lock:
            if within is None:
                target = self._contexts
            else:
                target = self._functions.get(function_key(within), set())
            if contexts is None:
                target.clear()
            else:
                target.difference_update(as_contexts(contexts))

    def ignored(self, within=None) -> FrozenSet[str]:
        """The contexts ignored globally, plus those ignored within `within`."""
        with self._lock:
            contexts = set(self._contexts)
            if within is not None:
                contexts.update(self._functions.get(function_key(within), ()))
        return frozenset(contexts)

    def is_active(self, within, contexts: Contexts) -> bool:
        """Whether a check of `contexts` should run inside operation `within`."""
        ignored = self.ignored(within)
        if "All" in ignored:
            return False
        return ignored.isdisjoint(as_contexts(contexts))

    def __repr__(self) -> str:
        with self._lock:
            return f"ValidationPolicy(ignore_contexts={sorted(self._contexts)}, ignore_functions={self._functions})"


# --- Semantic wrappers ---


@register_dataclass
@dataclass(frozen=True)
class ValidationMPoint:
    """A point on a `ValidationManifold`."""

    value: Any

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self.value, dtype=dtype)


@register_dataclass
@dataclass(frozen=True)
class ValidationFibreVector:
    """
    A vector in a fibre over a point of a `ValidationManifold`.

    `point` is the base point when the manifold stores it, None otherwise.
    """

    value: Any
    point: Any = None

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self.value, dtype=dtype)


@register_dataclass
@dataclass(frozen=True)
class ValidationTVector(ValidationFibreVector):
    """A tangent vector on a `ValidationManifold`."""


@register_dataclass
@dataclass(frozen=True)
class ValidationCoTVector(ValidationFibreVector):
    """A cotangent vector on a `ValidationManifold`."""


@singledispatch
def _value(x):
    """The plain value inside a wrapper, or `x` itself."""
    return x


@_value.register(ValidationMPoint)
@_value.register(ValidationFibreVector)
def _(x):
    return x.value


class ValidationManifold(AbstractDecoratorManifold):
    """
    Wraps `manifold` and validates the arguments and results of its operations.

    Args:
        manifold: The manifold to validate.
        error: How failed checks are reported: "none", "info", "warn" or "error".
        store_base_point: Keep the base point inside returned tangent vectors.
        ignore_contexts: Contexts skipped everywhere.
        ignore_functions: Operation (or its name) -> contexts skipped inside it.
    """

    manifold: Any
    error: str = eqx.field(static=True)
    store_base_point: bool = eqx.field(static=True)
    policy: ValidationPolicy

    def __init__(self, manifold, error: str = "error", store_base_point: bool = False,
                 ignore_contexts: Contexts = (), ignore_functions: Optional[Dict[Any, Contexts]] = None):
        self.manifold = manifold
        self.error = check_error_mode(error)
        self.store_base_point = store_base_point
        self.policy = ValidationPolicy(ignore_contexts, ignore_functions)


@decorated_object.register(ValidationManifold)
def _validation_decorated(M):
    return M.manifold


def _point(M, p, within, context, **kwargs):
    return is_point(M, p, error=M.error, within=within, context=(context,), **kwargs)


def _vector(M, p, X, within, context, **kwargs):
    return is_vector(M, p, X, error=M.error, within=within, context=(context,), **kwargs)


def _msg(M, message, within, context):
    if M.policy.is_active(within, (context,)):
        report(ManifoldDomainError(message), M.error)


def _tvector(M, X, p, like=None):
    # A result keeps the fibre type of the vector it was computed from.
    cls = type(like) if isinstance(like, ValidationFibreVector) else ValidationTVector
    return cls(X, _value(p) if M.store_base_point else None)


def _method(m):
    return () if m is None else (m,)


# --- Checks ---


@is_point.register(ValidationManifold)
def _is_point(M, p, error="none", within=None, context=(), **kwargs):
    """
    `is_point` on the wrapped manifold, unless the check is switched off.

    `within` names the operation the check runs in and `context` the
    contexts it belongs to; "Point" is always added. A skipped check passes.
    """
    if not M.policy.is_active(within, ("Point",) + tuple(context)):
        return True
    return is_point(M.manifold, _value(p), error=error, **kwargs)


@is_vector.register(ValidationManifold)
def _is_vector(M, p, X, check_base_point=True, error="none", within=None, context=(), **kwargs):
    if not M.policy.is_active(within, ("Vector",) + tuple(context)):
        return True
    return is_vector(M.manifold, _value(p), _value(X), check_base_point, error=error, **kwargs)


@check_size.register(ValidationManifold)
def _check_size(M, p, *X):
    return check_size(M.manifold, _value(p), *map(_value, X))


@check_point.register(ValidationManifold)
def _check_point(M, p, **kwargs):
    return check_point(M.manifold, _value(p), **kwargs)


@check_vector.register(ValidationManifold)
def _check_vector(M, p, X, **kwargs):
    return check_vector(M.manifold, _value(p), _value(X), **kwargs)


# --- Buffers, embedding, projection ---


@copyto.register(ValidationManifold)
def _copyto(M, target, p, *X, **kwargs):
    _point(M, p, copyto, "Input", **kwargs)
    if X:
        _vector(M, p, X[0], copyto, "Input", **kwargs)
    copyto(M.manifold, _value(target), _value(p), *map(_value, X))
    if not X:
        _point(M, target, copyto, "Output", **kwargs)
    return target


@embed.register(ValidationManifold)
def _embed(M, p, *X, **kwargs):
    _point(M, p, embed, "Input", **kwargs)
    if X:
        _vector(M, p, X[0], embed, "Input", **kwargs)
        return _tvector(M, embed(M.manifold, _value(p), _value(X[0])), p, like=X[0])
    return ValidationMPoint(embed(M.manifold, _value(p)))


@embed_.register(ValidationManifold)
def _embed_inplace(M, q, p, *X, **kwargs):
    _point(M, p, embed, "Input", **kwargs)
    if X:
        _vector(M, p, X[0], embed, "Input", **kwargs)
    embed_(M.manifold, _value(q), _value(p), *map(_value, X))
    return q


@embed_project.register(ValidationManifold)
def _embed_project(M, p, *X, **kwargs):
    _point(M, p, embed_project, "Input", **kwargs)
    if X:
        _vector(M, p, X[0], embed_project, "Input", **kwargs)
        Y = embed_project(M.manifold, _value(p), _value(X[0]))
        _vector(M, p, Y, embed_project, "Output", **kwargs)
        return _tvector(M, Y, p, like=X[0])
    q = embed_project(M.manifold, _value(p))
    _point(M, q, embed_project, "Output", **kwargs)
    return ValidationMPoint(q)


@embed_project_.register(ValidationManifold)
def _embed_project_inplace(M, q, p, *X, **kwargs):
    _point(M, p, embed_project, "Input", **kwargs)
    if X:
        _vector(M, p, X[0], embed_project, "Input", **kwargs)
        embed_project_(M.manifold, _value(q), _value(p), _value(X[0]))
        _vector(M, p, q, embed_project, "Output", **kwargs)
        return q
    embed_project_(M.manifold, _value(q), _value(p))
    _point(M, q, embed_project, "Output", **kwargs)
    return q


# The point given to project lives in the embedding, so only results are checked.


@project.register(ValidationManifold)
def _project(M, p, *X, **kwargs):
    if X:
        _point(M, p, project, "Input", **kwargs)
        Y = project(M.manifold, _value(p), _value(X[0]))
        _vector(M, p, Y, project, "Output", **kwargs)
        return _tvector(M, Y, p, like=X[0])
    q = project(M.manifold, _value(p))
    _point(M, q, project, "Output", **kwargs)
    return ValidationMPoint(q)


@project_.register(ValidationManifold)
def _project_inplace(M, q, p, *X, **kwargs):
    if X:
        _point(M, p, project, "Input", **kwargs)
        project_(M.manifold, _value(q), _value(p), _value(X[0]))
        _vector(M, p, q, project, "Output", **kwargs)
        return q
    project_(M.manifold, _value(q), _value(p))
    _point(M, q, project, "Output", **kwargs)
    return q


@zero_vector.register(ValidationManifold)
def _zero_vector(M, p, **kwargs):
    _point(M, p, zero_vector, "Input", **kwargs)
    X = zero_vector(M.manifold, _value(p))
    _vector(M, p, X, zero_vector, "Output", **kwargs)
    return _tvector(M, X, p)


@zero_vector_.register(ValidationManifold)
def _zero_vector_inplace(M, X, p, **kwargs):
    _point(M, p, zero_vector, "Input", **kwargs)
    zero_vector_(M.manifold, _value(X), _value(p))
    _vector(M, p, X, zero_vector, "Output", **kwargs)
    return X


# --- Metric ---


@inner.register(ValidationManifold)
def _inner(M, p, X, Y, **kwargs):
    _point(M, p, inner, "Input", **kwargs)
    _vector(M, p, X, inner, "Input", **kwargs)
    _vector(M, p, Y, inner, "Input", **kwargs)
    return inner(M.manifold, _value(p), _value(X), _value(Y))


@norm.register(ValidationManifold)
def _norm(M, p, X, **kwargs):
    _point(M, p, norm, "Input", **kwargs)
    _vector(M, p, X, norm, "Input", **kwargs)
    n = norm(M.manifold, _value(p), _value(X))
    if n < 0:
        _msg(M, f"Norm is negative: {n}", norm, "Output")
    return n


@distance.register(ValidationManifold)
def _distance(M, p, q, **kwargs):
    _point(M, p, distance, "Input", **kwargs)
    _point(M, q, distance, "Input", **kwargs)
    d = distance(M.manifold, _value(p), _value(q))
    if d < 0:
        _msg(M, f"Distance is negative: {d}", distance, "Output")
    return d


@injectivity_radius.register(ValidationManifold)
def _injectivity_radius(M, *args, **kwargs):
    if args and not isinstance(args[0], AbstractRetractionMethod):
        _point(M, args[0], injectivity_radius, "Input", **kwargs)
        args = (_value(args[0]),) + args[1:]
    return injectivity_radius(M.manifold, *args)


@isapprox.register(ValidationManifold)
def _isapprox(M, p, *args, **kwargs):
    if len(args) == 1:
        _point(M, p, isapprox, "Input")
        _point(M, args[0], isapprox, "Input")
    else:
        _point(M, p, isapprox, "Input")
        for X in args:
            _vector(M, p, X, isapprox, "Input")
    return isapprox(M.manifold, _value(p), *map(_value, args), **kwargs)


@rand.register(ValidationManifold)
def _rand(M, key, vector_at=None, **kwargs):
    if vector_at is None:
        p = rand(M.manifold, key, **kwargs)
        _point(M, p, rand, "Output")
        return ValidationMPoint(p)
    _point(M, vector_at, rand, "Input")
    X = rand(M.manifold, key, vector_at=_value(vector_at), **kwargs)
    _vector(M, vector_at, X, rand, "Output")
    return _tvector(M, X, vector_at)


# --- Exponential and logarithmic map, retractions ---


@exp.register(ValidationManifold)
def _exp(M, p, X, **kwargs):
    _point(M, p, exp, "Input", **kwargs)
    _vector(M, p, X, exp, "Input", **kwargs)
    q = exp(M.manifold, _value(p), _value(X))
    _point(M, q, exp, "Output", **kwargs)
    return ValidationMPoint(q)


@exp_.register(ValidationManifold)
def _exp_inplace(M, q, p, X, **kwargs):
    _point(M, p, exp, "Input", **kwargs)
    _vector(M, p, X, exp, "Input", **kwargs)
    exp_(M.manifold, _value(q), _value(p), _value(X))
    _point(M, q, exp, "Output", **kwargs)
    return q


@log.register(ValidationManifold)
def _log(M, p, q, **kwargs):
    _point(M, p, log, "Input", **kwargs)
    _point(M, q, log, "Input", **kwargs)
    X = log(M.manifold, _value(p), _value(q))
    _vector(M, p, X, log, "Output", **kwargs)
    return _tvector(M, X, p)


@log_.register(ValidationManifold)
def _log_inplace(M, X, p, q, **kwargs):
    _point(M, p, log, "Input", **kwargs)
    _point(M, q, log, "Input", **kwargs)
    log_(M.manifold, _value(X), _value(p), _value(q))
    _vector(M, p, X, log, "Output", **kwargs)
    return X


@mid_point.register(ValidationManifold)
def _mid_point(M, p, q, **kwargs):
    _point(M, p, mid_point, "Input", **kwargs)
    _point(M, q, mid_point, "Input", **kwargs)
    r = mid_point(M.manifold, _value(p), _value(q))
    _point(M, r, mid_point, "Output", **kwargs)
    return ValidationMPoint(r)


@mid_point_.register(ValidationManifold)
def _mid_point_inplace(M, r, p, q, **kwargs):
    _point(M, p, mid_point, "Input", **kwargs)
    _point(M, q, mid_point, "Input", **kwargs)
    mid_point_(M.manifold, _value(r), _value(p), _value(q))
    _point(M, r, mid_point, "Output", **kwargs)
    return r


# The method `m` is passed on only when given, so the wrapped manifold's
# default applies otherwise. It never reaches the checks.


@retract.register(ValidationManifold)
def _retract(M, p, X, m=None, **kwargs):
    _point(M, p, retract, "Input", **kwargs)
    _vector(M, p, X, retract, "Input", **kwargs)
    q = retract(M.manifold, _value(p), _value(X), *_method(m))
    _point(M, q, retract, "Output", **kwargs)
    return ValidationMPoint(q)


@retract_.register(ValidationManifold)
def _retract_inplace(M, q, p, X, m=None, **kwargs):
    _point(M, p, retract, "Input", **kwargs)
    _vector(M, p, X, retract, "Input", **kwargs)
    retract_(M.manifold, _value(q), _value(p), _value(X), *_method(m))
    _point(M, q, retract, "Output", **kwargs)
    return q


@inverse_retract.register(ValidationManifold)
def _inverse_retract(M, p, q, m=None, **kwargs):
    _point(M, p, inverse_retract, "Input", **kwargs)
    _point(M, q, inverse_retract, "Input", **kwargs)
    X = inverse_retract(M.manifold, _value(p), _value(q), *_method(m))
    _vector(M, p, X, inverse_retract, "Output", **kwargs)
    return _tvector(M, X, p)


@inverse_retract_.register(ValidationManifold)
def _inverse_retract_inplace(M, X, p, q, m=None, **kwargs):
    _point(M, p, inverse_retract, "Input", **kwargs)
    _point(M, q, inverse_retract, "Input", **kwargs)
    inverse_retract_(M.manifold, _value(X), _value(p), _value(q), *_method(m))
    _vector(M, p, X, inverse_retract, "Output", **kwargs)
    return X


# --- Transports ---


@parallel_transport_to.register(ValidationManifold)
def _parallel_transport_to(M, p, X, q, **kwargs):
    _point(M, q, parallel_transport_to, "Input", **kwargs)
    _vector(M, p, X, parallel_transport_to, "Input", **kwargs)
    Y = parallel_transport_to(M.manifold, _value(p), _value(X), _value(q))
    _vector(M, q, Y, parallel_transport_to, "Output", **kwargs)
    return _tvector(M, Y, q, like=X)


@parallel_transport_to_.register(ValidationManifold)
def _parallel_transport_to_inplace(M, Y, p, X, q, **kwargs):
    _point(M, q, parallel_transport_to, "Input", **kwargs)
    _vector(M, p, X, parallel_transport_to, "Input", **kwargs)
    parallel_transport_to_(M.manifold, _value(Y), _value(p), _value(X), _value(q))
    _vector(M, q, Y, parallel_transport_to, "Output", **kwargs)
    return Y


@parallel_transport_direction.register(ValidationManifold)
def _parallel_transport_direction(M, p, X, d, **kwargs):
    _vector(M, p, X, parallel_transport_direction, "Input", **kwargs)
    _vector(M, p, d, parallel_transport_direction, "Input", **kwargs)
    Y = parallel_transport_direction(M.manifold, _value(p), _value(X), _value(d))
    q = exp(M.manifold, _value(p), _value(d))
    _vector(M, q, Y, parallel_transport_direction, "Output", **kwargs)
    return _tvector(M, Y, q, like=X)


@parallel_transport_direction_.register(ValidationManifold)
def _parallel_transport_direction_inplace(M, Y, p, X, d, **kwargs):
    _vector(M, p, X, parallel_transport_direction, "Input", **kwargs)
    _vector(M, p, d, parallel_transport_direction, "Input", **kwargs)
    parallel_transport_direction_(M.manifold, _value(Y), _value(p), _value(X), _value(d))
    q = exp(M.manifold, _value(p), _value(d))
    _vector(M, q, Y, parallel_transport_direction, "Output", **kwargs)
    return Y


@parallel_transport_along.register(ValidationManifold)
def _parallel_transport_along(M, p, X, c, **kwargs):
    _vector(M, p, X, parallel_transport_along, "Input", **kwargs)
    c = [_value(q) for q in c]
    Y = parallel_transport_along(M.manifold, _value(p), _value(X), c)
    q = c[-1] if c else p
    _vector(M, q, Y, parallel_transport_along, "Output", **kwargs)
    return _tvector(M, Y, q, like=X)


@parallel_transport_along_.register(ValidationManifold)
def _parallel_transport_along_inplace(M, Y, p, X, c, **kwargs):
    _vector(M, p, X, parallel_transport_along, "Input", **kwargs)
    c = [_value(q) for q in c]
    parallel_transport_along_(M.manifold, _value(Y), _value(p), _value(X), c)
    _vector(M, c[-1] if c else p, Y, parallel_transport_along, "Output", **kwargs)
    return Y


@vector_transport_to.register(ValidationManifold)
def _vector_transport_to(M, p, X, q, m=None, **kwargs):
    _point(M, q, vector_transport_to, "Input", **kwargs)
    _vector(M, p, X, vector_transport_to, "Input", **kwargs)
    Y = vector_transport_to(M.manifold, _value(p), _value(X), _value(q), *_method(m))
    _vector(M, q, Y, vector_transport_to, "Output", **kwargs)
    return _tvector(M, Y, q, like=X)


@vector_transport_to_.register(ValidationManifold)
def _vector_transport_to_inplace(M, Y, p, X, q, m=None, **kwargs):
    _point(M, q, vector_transport_to, "Input", **kwargs)
    _vector(M, p, X, vector_transport_to, "Input", **kwargs)
    vector_transport_to_(M.manifold, _value(Y), _value(p), _value(X), _value(q), *_method(m))
    _vector(M, q, Y, vector_transport_to, "Output", **kwargs)
    return Y


# vector_transport_direction moves X to retract(M, p, d) with the default retraction.


@vector_transport_direction.register(ValidationManifold)
def _vector_transport_direction(M, p, X, d, m=None, **kwargs):
    _vector(M, p, X, vector_transport_direction, "Input", **kwargs)
    _vector(M, p, d, vector_transport_direction, "Input", **kwargs)
    Y = vector_transport_direction(M.manifold, _value(p), _value(X), _value(d), *_method(m))
    q = retract(M.manifold, _value(p), _value(d))
    _vector(M, q, Y, vector_transport_direction, "Output", **kwargs)
    return _tvector(M, Y, q, like=X)


@vector_transport_direction_.register(ValidationManifold)
def _vector_transport_direction_inplace(M, Y, p, X, d, m=None, **kwargs):
    _vector(M, p, X, vector_transport_direction, "Input", **kwargs)
    _vector(M, p, d, vector_transport_direction, "Input", **kwargs)
    vector_transport_direction_(M.manifold, _value(Y), _value(p), _value(X), _value(d), *_method(m))
    q = retract(M.manifold, _value(p), _value(d))
    _vector(M, q, Y, vector_transport_direction, "Output", **kwargs)
    return Y


@vector_transport_along.register(ValidationManifold)
def _vector_transport_along(M, p, X, c, m=None, **kwargs):
    _vector(M, p, X, vector_transport_along, "Input", **kwargs)
    c = [_value(q) for q in c]
    Y = vector_transport_along(M.manifold, _value(p), _value(X), c, *_method(m))
    q = c[-1] if c else p
    _vector(M, q, Y, vector_transport_along, "Output", **kwargs)
    return _tvector(M, Y, q, like=X)


@vector_transport_along_.register(ValidationManifold)
def _vector_transport_along_inplace(M, Y, p, X, c, m=None, **kwargs):
    _vector(M, p, X, vector_transport_along, "Input", **kwargs)
    c = [_value(q) for q in c]
    vector_transport_along_(M.manifold, _value(Y), _value(p), _value(X), c, *_method(m))
    _vector(M, c[-1] if c else p, Y, vector_transport_along, "Output", **kwargs)
    return Y
