__version__ = "0.1.0"

from jax import config

from .core import (
    DEFAULT_TABLE,
    TRAITS,
    AbstractDecoratorManifold,
    AbstractManifold,
    CheckFailedError,
    ConfigurationError,
    DispatchTable,
    ManifoldDomainError,
    ManitraitError,
    NoImplementationError,
    Operation,
    RegistrationError,
    Trait,
    TraitConfigurationError,
    TraitHierarchy,
    active_traits,
    base_object,
    declare_trait,
    decorated_object,
    get_embedding,
    merge_traits,
    parent_trait,
    resolve,
)
from . import methods
from . import interface
from .interface import *  # noqa: F401,F403
from .methods import (
    CyclicProximalPointEstimation,
    EfficientEstimator,
    ExponentialRetraction,
    ExtrinsicEstimation,
    GeodesicInterpolation,
    GeodesicInterpolationWithinRadius,
    GradientDescentEstimation,
    LogarithmicInverseRetraction,
    ParallelTransport,
    ProjectionInverseRetraction,
    ProjectionRetraction,
    ProjectionTransport,
    WeiszfeldEstimation,
    default_approximation_method,
    default_inverse_retraction_method,
    default_retraction_method,
    default_vector_transport_method,
)
from .embedded import (
    EmbeddedManifold,
    IsEmbeddedManifold,
    IsEmbeddedSubmanifold,
    IsIsometricEmbeddedManifold,
)
from .validation import (
    ValidationCoTVector,
    ValidationManifold,
    ValidationMPoint,
    ValidationTVector,
)
from .checks import (
    check_inverse_retraction,
    check_retraction,
    check_vector_transport,
    find_best_slope_window,
    prepare_check_result,
)
from .manifolds import Euclidean, PositiveOrthant, Sphere

# All built-in traits are declared by now.
TRAITS.validate()


def enable_x64():
    config.update("jax_enable_x64", True)
