import jax.numpy as jnp


def safe_norm(x, axis=-1, keepdims=False):
    """Euclidean norm of `x` along `axis` with a finite gradient at x = 0."""
    x = jnp.asarray(x)
    is_zero = jnp.all(x == 0, axis=axis, keepdims=True)
    # Ones stand in for the zero vector; the masked value below is what is returned.
    x_safe = jnp.where(is_zero, jnp.ones_like(x), x)
    return jnp.where(
        is_zero if keepdims else is_zero.squeeze(axis),
        0.0,
        jnp.linalg.norm(x_safe, axis=axis, keepdims=keepdims),
    )
