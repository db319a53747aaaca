import unittest
from typing import Any

import numpy as np
from jax import config

config.update("jax_enable_x64", True)

from manitrait import Euclidean, exp, inner, manifold_dimension, representation_size
from manitrait.core.dispatch import DispatchTable, Operation
from manitrait.core.errors import NoImplementationError
from manitrait.core.manifold import AbstractDecoratorManifold, AbstractManifold, base_object, decorated_object
from manitrait.core.traits import TraitHierarchy


class Wrapper(AbstractDecoratorManifold):
    """A decorator that adds nothing."""

    manifold: Any


@decorated_object.register(Wrapper)
def _wrapper_decorated(M):
    return M.manifold


class Terminal(AbstractDecoratorManifold):
    """A decorator that wraps nothing, so it is its own decorated object."""


def stack(M, depth):
    for _ in range(depth):
        M = Wrapper(M)
    return M


class TestBaseObject(unittest.TestCase):

    def setUp(self):
        self.E = Euclidean(3)

    def test_depth_zero_is_identity(self):
        D = stack(self.E, 3)
        self.assertIs(base_object(D, 0), D)

    def test_single_step(self):
        D = stack(self.E, 3)
        self.assertIs(base_object(D, 1), D.manifold)
        self.assertIs(base_object(D, 2), D.manifold.manifold)

    def test_full_unwrap(self):
        D = stack(self.E, 5)
        self.assertIs(base_object(D), self.E)
        self.assertIs(base_object(D, 100), self.E)

    def test_plain_manifold_is_fixed_point(self):
        self.assertIs(base_object(self.E), self.E)
        self.assertIs(decorated_object(self.E), self.E)

    def test_terminal_decorator_is_fixed_point(self):
        T = Terminal()
        self.assertIs(base_object(T), T)
        self.assertIs(base_object(Wrapper(T)), T)

    def test_deep_stack_terminates(self):
        """Unwrapping is iterative, so depth is not limited by the recursion limit."""
        D = stack(self.E, 2000)
        self.assertIs(base_object(D), self.E)


class TestTransparency(unittest.TestCase):

    def setUp(self):
        self.E = Euclidean(3)
        self.p = np.array([1.0, 2.0, 3.0])
        self.X = np.array([0.5, -1.0, 0.25])

    def test_operations_pass_through(self):
        D = stack(self.E, 3)
        self.assertEqual(manifold_dimension(D), 3)
        self.assertEqual(tuple(representation_size(D)), (3,))
        np.testing.assert_allclose(exp(D, self.p, self.X), exp(self.E, self.p, self.X))
        self.assertAlmostEqual(inner(D, self.p, self.X, self.X), inner(self.E, self.p, self.X, self.X))

    def test_explicit_override_intercepts(self):
        op = Operation("describe", table=DispatchTable(TraitHierarchy()))
        op.register(AbstractManifold, lambda M: "plain")
        self.assertEqual(op(Wrapper(self.E)), "plain")

        op.register(Wrapper, lambda M: "wrapper")
        self.assertEqual(op(Wrapper(self.E)), "wrapper")
        self.assertEqual(op(self.E), "plain")

    def test_terminal_decorator_uses_generic(self):
        op = Operation("describe", table=DispatchTable(TraitHierarchy()))
        op.register(AbstractManifold, lambda M: "generic")
        self.assertEqual(op(Terminal()), "generic")

    def test_terminal_decorator_without_generic(self):
        op = Operation("nothing", table=DispatchTable(TraitHierarchy()))
        with self.assertRaises(NoImplementationError):
            op(Wrapper(Terminal()))


if __name__ == '__main__':
    unittest.main()
