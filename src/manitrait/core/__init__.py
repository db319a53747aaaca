from .traits import (
    DEFAULT_MAX_DEPTH,
    TRAITS,
    Trait,
    TraitHierarchy,
    declare_trait,
    merge_traits,
    parent_trait,
)
from .errors import (
    CheckFailedError,
    ConfigurationError,
    ManifoldDomainError,
    ManitraitError,
    NoImplementationError,
    RegistrationError,
    TraitConfigurationError,
)
from .manifold import (
    AbstractDecoratorManifold,
    AbstractManifold,
    active_traits,
    base_object,
    decorated_object,
    get_embedding,
)
from .dispatch import DEFAULT_TABLE, DispatchTable, Operation, resolve
from .reporting import ERROR_MODES, report
