from abc import ABC
from functools import singledispatch
from typing import Any, Tuple

import equinox as eqx

from .errors import NoImplementationError
from .traits import Trait


class AbstractManifold(eqx.Module, ABC):
    """
    Abstract base class for every manifold handled by manitrait.

    The class itself carries no geometry. Operations such as `exp` or `inner`
    are `Operation` objects in `manitrait.interface`; a concrete manifold
    registers its implementations there instead of overriding methods here.
    """


class AbstractDecoratorManifold(AbstractManifold):
    """
    A manifold that takes part in trait dispatch.

    A decorator wraps exactly one other manifold (see `decorated_object`).
    Every operation it has no trait or explicit implementation for is
    forwarded unchanged to the wrapped manifold. A decorator that wraps
    nothing reports itself as its decorated object and is terminal.
    """


# --- The three declarations a new manifold type provides ---


@singledispatch
def active_traits(M: Any, operation, *args) -> Tuple[Trait, ...]:
    """
    The ordered traits `M` claims for a call of `operation` with `args`.

    Register per type with `@active_traits.register(MyManifold)`. Most types
    return one static tuple; a type may also vary the answer by operation.
    """
    return ()


@singledispatch
def decorated_object(M: Any) -> Any:
    """
    The object `M` wraps. For a non-decorator, or a terminal one, this is `M`.
    """
    return M


@singledispatch
def get_embedding(M: Any, p=None) -> AbstractManifold:
    """
    The manifold `M` is embedded in.

    The point `p` is passed on so that manifolds with several charts or
    representations can choose the embedding per point.
    """
    raise NoImplementationError("get_embedding", type(M))


def base_object(M: Any, depth: int = -1) -> Any:
    """
    Strip decorators from `M`.

    Args:
        M: A (possibly decorated) manifold.
        depth: How many layers to remove. A negative value unwraps until a
            terminal object is reached; 0 returns `M` unchanged.

    Returns:
        The object found after unwrapping.
    """
    current = M
    while depth != 0:
        inner = decorated_object(current)
        if inner is current:
            break
        current = inner
        depth -= 1
    return current
