import numpy as np
import equinox as eqx

# JAX Config
from jax import config
config.update("jax_enable_x64", True)

# manitrait Imports
from manitrait import (
    AbstractDecoratorManifold,
    IsEmbeddedSubmanifold,
    active_traits,
    check_point,
    exp,
    get_embedding,
    is_point,
    manifold_dimension,
    Euclidean,
    ManifoldDomainError,
    vector_transport_to,
)


# --- 1. A New Manifold: the open unit ball in R^n ---
class Ball(AbstractDecoratorManifold):
    """Open unit ball, an open submanifold of R^n. Only its points are restricted."""

    n: int = eqx.field(static=True)

    def __init__(self, n: int = 2):
        self.n = n


@active_traits.register(Ball)
def _ball_traits(M, operation, *args):
    return (IsEmbeddedSubmanifold,)


@get_embedding.register(Ball)
def _ball_embedding(M, p=None):
    return Euclidean(M.n)


@manifold_dimension.register(Ball)
def _ball_dimension(M):
    return M.n


@check_point.register(Ball)
def _ball_check_point(M, p, **kwargs):
    r = np.linalg.norm(p)
    if not r < 1:
        return ManifoldDomainError(f"{p} has norm {r} >= 1 and does not lie in {M}.")
    return None


def main():
    print("--- manitrait Custom Manifold Demo ---")
    B = Ball(2)
    p = np.array([0.1, 0.2])
    X = np.array([0.3, -0.1])

    # --- 2. Everything else comes from the embedding ---
    print(f"dim = {manifold_dimension(B)}")
    print(f"exp(p, X) = {exp(B, p, X)}")
    print(f"transport(X) = {vector_transport_to(B, p, X, p + X)}")
    print(f"chain for exp: {exp.trait_chain(B, p, X)}")
    print(f"is_point([0.9, 0.9]) = {is_point(B, np.array([0.9, 0.9]))}")


if __name__ == "__main__":
    main()
