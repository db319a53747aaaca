from .euclidean import Euclidean
from .sphere import Sphere
from .orthant import PositiveOrthant

__all__ = ["Euclidean", "Sphere", "PositiveOrthant"]
