"""
Trait-qualified dispatch on top of Python's single dispatch.

An `Operation` carries two kinds of implementations:

* generic ones, keyed by receiver type through `functools.singledispatch`;
* trait-qualified ones, kept in a `DispatchTable` and keyed by
  (operation, trait, argument signature).

Calling an operation asks the receiver for its active traits, expands them
into a trait chain (each trait followed by its ancestors, first occurrence
wins) and runs the first trait's matching implementation. Without a trait
match the generic implementation for the receiver's type runs. Decorators get
a generic implementation for free that forwards the call to the object they
wrap, which makes them transparent unless something intercepts the call.
"""
import logging
from collections import defaultdict
from functools import singledispatch
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from .errors import NoImplementationError, RegistrationError, TraitConfigurationError
from .traits import TRAITS, Trait, TraitHierarchy
from .manifold import (
    AbstractDecoratorManifold,
    AbstractManifold,
    active_traits,
    decorated_object,
)

logger = logging.getLogger(__name__)

Signature = Optional[Tuple[Any, ...]]


class Registration(NamedTuple):
    trait: Trait
    signature: Signature
    func: Callable
    order: int


def _entry_matches(pattern, arg) -> bool:
    # Types match by isinstance, anything else (operations) by identity.
    if isinstance(pattern, type):
        return isinstance(arg, pattern)
    return arg is pattern


def signature_matches(signature: Signature, args: Sequence) -> bool:
    if signature is None:
        return True
    if len(signature) != len(args):
        return False
    return all(_entry_matches(s, a) for s, a in zip(signature, args))


def _entry_covers(a, b) -> bool:
    """Whether pattern entry `a` is at least as specific as `b`."""
    if not isinstance(b, type):
        return a is b
    if not isinstance(a, type):
        return isinstance(a, b)
    return issubclass(a, b)


def at_least_as_specific(a: Signature, b: Signature) -> bool:
    if b is None:
        return True
    if a is None:
        return False
    return len(a) == len(b) and all(_entry_covers(x, y) for x, y in zip(a, b))


class DispatchTable:
    """
    Trait registrations for a set of operations.

    The table is filled while modules are imported and only read afterwards,
    so `resolve` runs without locking.
    """

    def __init__(self, hierarchy: TraitHierarchy = TRAITS):
        self.hierarchy = hierarchy
        self._registrations: Dict[Tuple["Operation", Trait], List[Registration]] = defaultdict(list)
        self._order = 0

    def register(self, operation: "Operation", trait: Trait, func: Callable,
                 signature: Signature = None) -> Callable:
        if trait not in self.hierarchy:
            raise TraitConfigurationError(
                f"Cannot register {operation.name} for undeclared trait {trait}"
            )
        if signature is not None:
            signature = tuple(signature)
        entries = self._registrations[(operation, trait)]
        for reg in entries:
            if reg.signature == signature:
                raise RegistrationError(
                    f"{operation.name} already has an implementation for trait "
                    f"{trait} with signature {signature}"
                )
        entries.append(Registration(trait, signature, func, self._order))
        self._order += 1
        logger.debug("registered %s for trait %s, signature %s", operation.name, trait, signature)
        return func

    def implementations(self, operation: "Operation", trait: Trait) -> Tuple[Registration, ...]:
        return tuple(self._registrations.get((operation, trait), ()))

    def registered_traits(self, operation: "Operation") -> Tuple[Trait, ...]:
        return tuple(t for (op, t), regs in self._registrations.items() if op is operation and regs)

    def lookup(self, operation: "Operation", trait: Trait, args: Sequence) -> Optional[Registration]:
        """
        The registration of `trait` that applies to `args`, if any.

        Among matching registrations the most specific signature wins; equally
        specific ones are decided by registration order, first one wins.
        """
        best = None
        for reg in self._registrations.get((operation, trait), ()):
            if not signature_matches(reg.signature, args):
                continue
            if best is None or (
                at_least_as_specific(reg.signature, best.signature)
                and not at_least_as_specific(best.signature, reg.signature)
            ):
                best = reg
        return best

    def trait_chain(self, operation: "Operation", M: Any, args: Sequence) -> Tuple[Trait, ...]:
        if not self.hierarchy.validated:
            self.hierarchy.validate()
        return self.hierarchy.linearize(active_traits(M, operation, *args))

    def resolve(self, operation: "Operation", M: Any, args: Sequence) -> Callable:
        for trait in self.trait_chain(operation, M, args):
            reg = self.lookup(operation, trait, args)
            if reg is not None:
                return reg.func
        impl = operation.generic_for(M)
        if impl is None:
            raise NoImplementationError(operation.name, type(M))
        return impl


DEFAULT_TABLE = DispatchTable(TRAITS)


class Operation:
    """
    A named manifold operation, called as `op(M, *args, **kwargs)`.

    Only positional arguments take part in signature matching; keyword
    arguments are passed through to the selected implementation.
    """

    def __init__(self, name: str, table: Optional[DispatchTable] = None, doc: Optional[str] = None):
        self.name = name
        self.__name__ = name
        self.__doc__ = doc
        self.table = DEFAULT_TABLE if table is None else table
        # Bound methods are created on every attribute access; keep one of each
        # so the singledispatch registry can be compared by identity.
        self._missing_impl = self._missing
        self._forward_impl = self._forward
        self._generic = singledispatch(self._missing_impl)
        self._generic.register(AbstractDecoratorManifold, self._forward_impl)

    def __repr__(self) -> str:
        return f"<Operation {self.name}>"

    def __call__(self, M, *args, **kwargs):
        return self.table.resolve(self, M, args)(M, *args, **kwargs)

    def _missing(self, M, *args, **kwargs):
        raise NoImplementationError(self.name, type(M))

    def _forward(self, M, *args, **kwargs):
        return self(decorated_object(M), *args, **kwargs)

    def register(self, cls: type, func: Optional[Callable] = None):
        """Register the generic implementation for receivers of type `cls`."""
        return self._generic.register(cls, func)

    def register_trait(self, trait: Trait, signature: Signature = None):
        """
        Decorator registering a trait-qualified implementation.

        Args:
            trait: The trait the implementation belongs to.
            signature: Types (or operations, matched by identity) the
                positional arguments after the receiver must match. None
                accepts any arguments.
        """
        def decorator(func: Callable) -> Callable:
            return self.table.register(self, trait, func, signature)
        return decorator

    def generic_for(self, M) -> Optional[Callable]:
        """The generic implementation for `M`, or None when there is none."""
        impl = self._generic.dispatch(type(M))
        if impl is self._forward_impl and decorated_object(M) is M:
            # A terminal decorator has nothing to forward to.
            impl = self._generic.dispatch(AbstractManifold)
        if impl is self._missing_impl:
            return None
        return impl

    def trait_chain(self, M, *args) -> Tuple[Trait, ...]:
        return self.table.trait_chain(self, M, args)

    def resolve(self, M, *args) -> Callable:
        return self.table.resolve(self, M, args)


def resolve(operation: Operation, M, *args) -> Callable:
    """The implementation `operation(M, *args)` would run."""
    return operation.resolve(M, *args)
