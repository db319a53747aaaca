"""
Trait tags and the generalization forest they live in.

A trait names one abstract capability ("is an embedded manifold"). Traits
carry no data and compare by name. Each trait has at most one parent, a more
general capability it implies. The parent links form a forest that is
declared once, validated once, and only read afterwards.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

from .errors import TraitConfigurationError

logger = logging.getLogger(__name__)

# Longest parent chain accepted by `TraitHierarchy.validate`.
DEFAULT_MAX_DEPTH = 64


@dataclass(frozen=True)
class Trait:
    """An immutable capability tag."""

    name: str

    def __repr__(self) -> str:
        return self.name


class TraitHierarchy:
    """
    Explicit parent lookup for traits.

    Parents are recorded at declaration and never changed. A trait may name a
    parent that is declared later, so a cycle can only be found by `validate`.
    """

    def __init__(self):
        self._parents: Dict[Trait, Optional[Trait]] = {}
        self._validated = False

    def declare(self, trait: Union[str, Trait], parent: Optional[Trait] = None) -> Trait:
        """Declare `trait` (or a new trait of that name) with an optional parent."""
        if isinstance(trait, str):
            trait = Trait(trait)
        if trait in self._parents:
            if self._parents[trait] != parent:
                raise TraitConfigurationError(
                    f"Trait {trait} already declared with parent "
                    f"{self._parents[trait]}, cannot change it to {parent}"
                )
            return trait
        if parent is not None and parent == trait:
            raise TraitConfigurationError(f"Trait {trait} cannot be its own parent")
        self._parents[trait] = parent
        self._validated = False
        logger.debug("declared trait %s (parent: %s)", trait, parent)
        return trait

    def __contains__(self, trait: Trait) -> bool:
        return trait in self._parents

    def __iter__(self) -> Iterator[Trait]:
        return iter(self._parents)

    def parent(self, trait: Trait) -> Optional[Trait]:
        """The immediate generalization of `trait`, or None for a root."""
        return self._parents.get(trait)

    def ancestors(self, trait: Trait, max_depth: int = DEFAULT_MAX_DEPTH) -> Iterator[Trait]:
        """Yield `trait` and then each of its parents, most specific first."""
        current: Optional[Trait] = trait
        for _ in range(max_depth + 1):
            yield current
            current = self.parent(current)
            if current is None:
                return
        raise TraitConfigurationError(
            f"Parent chain of trait {trait} does not terminate within {max_depth} steps"
        )

    @property
    def validated(self) -> bool:
        return self._validated

    def validate(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        """
        Walk every declared trait to its root.

        Raises:
            TraitConfigurationError: if a parent was never declared or a chain
                does not end within `max_depth` steps (which covers cycles).
        """
        for trait, parent in self._parents.items():
            if parent is not None and parent not in self._parents:
                raise TraitConfigurationError(
                    f"Trait {trait} names undeclared parent {parent}"
                )
            for _ in self.ancestors(trait, max_depth):
                pass
        self._validated = True
        logger.debug("validated %d traits", len(self._parents))

    def linearize(self, traits: Iterable[Trait]) -> Tuple[Trait, ...]:
        """
        Expand each trait into itself followed by its ancestors.

        The expansions are concatenated in order and only the first occurrence
        of each trait is kept, so a trait reachable twice sits at its most
        specific position.
        """
        chain = []
        seen = set()
        for trait in traits:
            for t in self.ancestors(trait):
                if t not in seen:
                    seen.add(t)
                    chain.append(t)
        return tuple(chain)


def merge_traits(*sequences: Iterable[Trait]) -> Tuple[Trait, ...]:
    """
    Concatenate trait sequences, keeping only the first occurrence of a tag.

    Earlier sequences take priority: merging [t1, t2] with [t2, t3] gives
    (t1, t2, t3).
    """
    merged = []
    seen = set()
    for seq in sequences:
        for trait in seq:
            if trait not in seen:
                seen.add(trait)
                merged.append(trait)
    return tuple(merged)


# Process-wide hierarchy used by the built-in traits and operations.
TRAITS = TraitHierarchy()


def declare_trait(name: str, parent: Optional[Trait] = None) -> Trait:
    return TRAITS.declare(name, parent)


def parent_trait(trait: Trait) -> Optional[Trait]:
    return TRAITS.parent(trait)
