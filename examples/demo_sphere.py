import logging

import jax
import numpy as np

# JAX Config
from jax import config
config.update("jax_enable_x64", True)

# manitrait Imports
from manitrait import (
    ProjectionRetraction,
    ProjectionTransport,
    Sphere,
    ValidationManifold,
    check_retraction,
    check_vector_transport,
    distance,
    exp,
    log,
    norm,
    parallel_transport_to,
    rand,
)

# --- 1. The Manifold ---
S = Sphere(2)


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    print("--- manitrait Sphere Demo ---")

    key_p, key_X = jax.random.split(jax.random.PRNGKey(2025))
    p = np.asarray(rand(S, key_p))
    X = 0.8 * np.asarray(rand(S, key_X, vector_at=p))

    # --- 2. Geodesics ---
    q = exp(S, p, X)
    print(f"p = {p}")
    print(f"q = exp(p, X) = {q}")
    print(f"|X| = {norm(S, p, X):.6f}, d(p, q) = {distance(S, p, q):.6f}")
    print(f"|log(p, q) - X| = {np.linalg.norm(log(S, p, q) - X):.2e}")

    # --- 3. Transport ---
    Y = parallel_transport_to(S, p, X, q)
    print(f"|P(X)| = {norm(S, q, Y):.6f} (parallel transport is an isometry)")

    # --- 4. Convergence Orders ---
    # Projection onto the sphere agrees with exp up to t^3.
    check_retraction(S, ProjectionRetraction(), p, X, limits=(-3.0, -1.0), N=21, error="info")
    check_vector_transport(S, ProjectionTransport(), p, X, X, limits=(-4.0, -1.0), N=31,
                           second_order=False, error="info")

    # --- 5. Validation ---
    M = ValidationManifold(S, error="warn")
    bad = np.array([0.0, 0.0, 2.0])
    print("Calling exp on a point that is not on the sphere (expect a warning):")
    exp(M, bad, X)


if __name__ == "__main__":
    main()
