from .math import safe_norm
from .arrays import allocate, assign

__all__ = ["safe_norm", "allocate", "assign"]
