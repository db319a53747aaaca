"""
Marker types selecting an algorithm inside an operation.

These are plain arguments (`retract(M, p, X, ProjectionRetraction())`). They
never take part in trait resolution, only in argument signatures.
"""
from dataclasses import dataclass
from typing import Any

from .core.dispatch import Operation
from .core.manifold import AbstractManifold


class AbstractRetractionMethod:
    """Selects how `retract` maps a tangent vector to a point."""


@dataclass(frozen=True)
class ExponentialRetraction(AbstractRetractionMethod):
    """Retract with the exponential map."""


@dataclass(frozen=True)
class ProjectionRetraction(AbstractRetractionMethod):
    """Retract by projecting p + X from the embedding back onto the manifold."""


class AbstractInverseRetractionMethod:
    """Selects how `inverse_retract` maps a point to a tangent vector."""


@dataclass(frozen=True)
class LogarithmicInverseRetraction(AbstractInverseRetractionMethod):
    """Invert with the logarithmic map."""


@dataclass(frozen=True)
class ProjectionInverseRetraction(AbstractInverseRetractionMethod):
    """Invert by projecting q - p onto the tangent space at p."""


class AbstractVectorTransportMethod:
    """Selects how tangent vectors move between tangent spaces."""


@dataclass(frozen=True)
class ParallelTransport(AbstractVectorTransportMethod):
    """Transport with the Levi-Civita connection."""


@dataclass(frozen=True)
class ProjectionTransport(AbstractVectorTransportMethod):
    """Transport by projecting onto the target tangent space."""


# --- Estimation ---


class AbstractApproximationMethod:
    """Selects how statistics (means, medians) are estimated on a manifold."""


@dataclass(frozen=True)
class GradientDescentEstimation(AbstractApproximationMethod):
    pass


@dataclass(frozen=True)
class CyclicProximalPointEstimation(AbstractApproximationMethod):
    pass


@dataclass(frozen=True)
class EfficientEstimator(AbstractApproximationMethod):
    """The best estimator available, e.g. the arithmetic mean on Euclidean space."""


@dataclass(frozen=True)
class ExtrinsicEstimation(AbstractApproximationMethod):
    """Estimate in the embedding with `extrinsic_estimation`, then project back."""

    extrinsic_estimation: Any


@dataclass(frozen=True)
class WeiszfeldEstimation(AbstractApproximationMethod):
    pass


@dataclass(frozen=True)
class GeodesicInterpolation(AbstractApproximationMethod):
    pass


@dataclass(frozen=True)
class GeodesicInterpolationWithinRadius(AbstractApproximationMethod):
    """Geodesic interpolation restricted to a ball of `radius`."""

    radius: float

    def __post_init__(self):
        if not self.radius > 0:
            raise ValueError(f"The radius must be strictly positive, received {self.radius}.")


# --- Defaults per manifold ---

default_retraction_method = Operation("default_retraction_method")
default_inverse_retraction_method = Operation("default_inverse_retraction_method")
default_vector_transport_method = Operation("default_vector_transport_method")
default_approximation_method = Operation(
    "default_approximation_method",
    doc="The estimation method for statistic `f` on `M`. No generic default exists.",
)


@default_retraction_method.register(AbstractManifold)
def _default_retraction(M, *args):
    return ExponentialRetraction()


@default_inverse_retraction_method.register(AbstractManifold)
def _default_inverse_retraction(M, *args):
    return LogarithmicInverseRetraction()


@default_vector_transport_method.register(AbstractManifold)
def _default_vector_transport(M, *args):
    return ParallelTransport()
