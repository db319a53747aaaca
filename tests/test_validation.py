import threading
import unittest

import numpy as np
from jax import config

config.update("jax_enable_x64", True)

from manitrait import (
    ManifoldDomainError,
    ProjectionInverseRetraction,
    ProjectionRetraction,
    ProjectionTransport,
    Sphere,
    ValidationCoTVector,
    ValidationManifold,
    ValidationMPoint,
    ValidationTVector,
    distance,
    embed,
    embed_project,
    embed_project_,
    exp,
    exp_,
    inner,
    inverse_retract,
    inverse_retract_,
    is_point,
    log,
    manifold_dimension,
    mid_point,
    mid_point_,
    norm,
    parallel_transport_along,
    parallel_transport_direction,
    parallel_transport_to,
    project,
    retract,
    retract_,
    vector_transport_along,
    vector_transport_direction,
    vector_transport_direction_,
    vector_transport_to,
    vector_transport_to_,
    zero_vector,
)
from manitrait.core.manifold import AbstractManifold
from manitrait.interface import (
    check_point,
    exp_ as _exp_op,
    log_,
    parallel_transport_along_,
    parallel_transport_direction_,
    representation_size,
)
from manitrait.utils.arrays import assign
from manitrait.validation import ValidationPolicy, function_key


# --- Mock Manifolds ---
class Broken(AbstractManifold):
    """Unit vectors in R^3 whose exp leaves the manifold and whose metric is negative."""


@representation_size.register(Broken)
def _broken_size(M):
    return (3,)


@check_point.register(Broken)
def _broken_check_point(M, p, **kwargs):
    if not np.isclose(np.linalg.norm(p), 1.0):
        return ManifoldDomainError(f"{p} is not a unit vector")
    return None


@_exp_op.register(Broken)
def _broken_exp(M, q, p, X):
    return assign(q, 2 * np.asarray(p))


@log_.register(Broken)
def _broken_log(M, X, p, q):
    return assign(X, np.asarray(q) - np.asarray(p))


@norm.register(Broken)
def _broken_norm(M, p, X):
    return -1.0


@distance.register(Broken)
def _broken_distance(M, p, q):
    return -1.0


class Twisted(Sphere):
    """A sphere whose parallel transports leave the vector unchanged."""


@parallel_transport_direction_.register(Twisted)
def _twisted_transport_direction(M, Y, p, X, d):
    return assign(Y, X)


@parallel_transport_along_.register(Twisted)
def _twisted_transport_along(M, Y, p, X, c):
    return assign(Y, X)


class TestValidationManifold(unittest.TestCase):

    def setUp(self):
        self.S = Sphere(2)
        self.M = ValidationManifold(self.S)
        self.p = np.array([1.0, 0.0, 0.0])
        self.q = np.array([0.0, 1.0, 0.0])
        self.X = np.array([0.0, 0.0, 0.5])
        self.bad_p = np.array([0.0, 0.0, 2.0])

    # --- 1. Pass-through and wrapping ---
    def test_exp_wraps_result(self):
        q = exp(self.M, self.p, self.X)
        self.assertIsInstance(q, ValidationMPoint)
        np.testing.assert_allclose(q.value, exp(self.S, self.p, self.X))

    def test_log_wraps_result(self):
        X = log(self.M, self.p, self.q)
        self.assertIsInstance(X, ValidationTVector)
        self.assertIsNone(X.point)
        np.testing.assert_allclose(X.value, [0.0, np.pi / 2, 0.0])

    def test_store_base_point(self):
        M = ValidationManifold(self.S, store_base_point=True)
        X = log(M, self.p, self.q)
        np.testing.assert_array_equal(X.point, self.p)

    def test_wrapped_arguments_are_unwrapped(self):
        q = exp(self.M, ValidationMPoint(self.p), ValidationTVector(self.X))
        np.testing.assert_allclose(q.value, exp(self.S, self.p, self.X))
        d = distance(self.M, ValidationMPoint(self.p), self.q)
        self.assertAlmostEqual(d, np.pi / 2)

    def test_inplace_writes_buffer(self):
        out = ValidationMPoint(np.zeros(3))
        result = exp_(self.M, out, self.p, self.X)
        self.assertIs(result, out)
        np.testing.assert_allclose(out.value, exp(self.S, self.p, self.X))

    def test_unwrapped_operations_forward(self):
        self.assertEqual(manifold_dimension(self.M), 2)
        self.assertAlmostEqual(inner(self.M, self.p, self.X, self.X), 0.25)
        Y = parallel_transport_to(self.M, self.p, self.X, self.q)
        np.testing.assert_allclose(Y.value, self.X)
        np.testing.assert_array_equal(zero_vector(self.M, self.p).value, np.zeros(3))
        np.testing.assert_allclose(project(self.M, np.array([0.0, 3.0, 0.0])).value, self.q)
        np.testing.assert_allclose(retract(self.M, self.p, self.X).value, exp(self.S, self.p, self.X))

    # --- 2. Failing checks ---
    def test_invalid_input_raises(self):
        with self.assertRaises(ManifoldDomainError):
            exp(self.M, self.bad_p, self.X)
        with self.assertRaises(ManifoldDomainError):
            exp(self.M, self.p, np.array([1.0, 0.0, 0.0]))

    def test_invalid_output_raises(self):
        with self.assertRaises(ManifoldDomainError):
            exp(ValidationManifold(Broken()), self.p, self.X)

    def test_negative_norm_and_distance(self):
        M = ValidationManifold(Broken())
        with self.assertRaises(ManifoldDomainError):
            norm(M, self.p, self.X)
        with self.assertRaises(ManifoldDomainError):
            distance(M, self.p, self.q)
        M = ValidationManifold(Broken(), ignore_contexts="Output")
        self.assertEqual(norm(M, self.p, self.X), -1.0)

    def test_warn_mode(self):
        M = ValidationManifold(Broken(), error="warn")
        with self.assertWarns(RuntimeWarning):
            q = exp(M, self.p, self.X)
        np.testing.assert_allclose(q.value, 2 * self.p)

    def test_info_mode(self):
        M = ValidationManifold(Broken(), error="info")
        with self.assertLogs("manitrait.core.reporting", level="INFO"):
            exp(M, self.p, self.X)

    def test_none_mode_is_silent(self):
        M = ValidationManifold(Broken(), error="none")
        q = exp(M, self.bad_p, self.X)
        np.testing.assert_allclose(q.value, 2 * self.bad_p)

    def test_unknown_mode(self):
        with self.assertRaises(ValueError):
            ValidationManifold(self.S, error="loud")


class TestValidationMethods(unittest.TestCase):

    def setUp(self):
        self.S = Sphere(2)
        self.M = ValidationManifold(self.S)
        self.p = np.array([1.0, 0.0, 0.0])
        self.q = np.array([0.0, 1.0, 0.0])
        self.X = np.array([0.0, 0.0, 0.5])
        self.V = np.array([0.0, 0.3, 0.5])

    # --- 1. Methods passed by keyword ---
    def test_retract_with_method_keyword(self):
        expected = (self.p + self.X) / np.linalg.norm(self.p + self.X)
        q = retract(self.M, self.p, self.X, m=ProjectionRetraction())
        np.testing.assert_allclose(q.value, expected)
        np.testing.assert_allclose(retract(self.M, self.p, self.X, ProjectionRetraction()).value, expected)
        out = np.zeros(3)
        retract_(self.M, out, self.p, self.X, m=ProjectionRetraction())
        np.testing.assert_allclose(out, expected)

    def test_inverse_retract_with_method_keyword(self):
        expected = inverse_retract(self.S, self.p, self.q, ProjectionInverseRetraction())
        X = inverse_retract(self.M, self.p, self.q, m=ProjectionInverseRetraction())
        np.testing.assert_allclose(X.value, expected)
        self.assertFalse(np.allclose(expected, log(self.S, self.p, self.q)))
        out = np.zeros(3)
        inverse_retract_(self.M, out, self.p, self.q, m=ProjectionInverseRetraction())
        np.testing.assert_allclose(out, expected)

    def test_vector_transport_to_with_method_keyword(self):
        """Projection onto the tangent space at q drops the y component."""
        Y = vector_transport_to(self.M, self.p, self.V, self.q, m=ProjectionTransport())
        np.testing.assert_allclose(Y.value, [0.0, 0.0, 0.5], atol=1e-15)
        out = np.zeros(3)
        vector_transport_to_(self.M, out, self.p, self.V, self.q, m=ProjectionTransport())
        np.testing.assert_allclose(out, [0.0, 0.0, 0.5], atol=1e-15)

    def test_vector_transport_direction_with_method_keyword(self):
        expected = vector_transport_direction(self.S, self.p, self.V, self.X, ProjectionTransport())
        Y = vector_transport_direction(self.M, self.p, self.V, self.X, m=ProjectionTransport())
        np.testing.assert_allclose(Y.value, expected)
        out = np.zeros(3)
        vector_transport_direction_(self.M, out, self.p, self.V, self.X, m=ProjectionTransport())
        np.testing.assert_allclose(out, expected)

    def test_vector_transport_along_with_method_keyword(self):
        c = [exp(self.S, self.p, 0.5 * self.X), exp(self.S, self.p, self.X)]
        expected = vector_transport_along(self.S, self.p, self.V, c, ProjectionTransport())
        Y = vector_transport_along(self.M, self.p, self.V, c, m=ProjectionTransport())
        np.testing.assert_allclose(Y.value, expected)

    # --- 2. Transport results ---
    def test_vector_transport_direction_stores_target(self):
        M = ValidationManifold(self.S, store_base_point=True)
        Y = vector_transport_direction(M, self.p, self.V, self.X)
        np.testing.assert_allclose(Y.point, retract(self.S, self.p, self.X))

    def test_parallel_transport_direction_checks(self):
        with self.assertRaises(ManifoldDomainError):
            parallel_transport_direction(self.M, self.p, self.V, np.array([1.0, 0.0, 0.0]))
        M = ValidationManifold(self.S, store_base_point=True)
        Y = parallel_transport_direction(M, self.p, self.V, self.X)
        np.testing.assert_allclose(Y.point, exp(self.S, self.p, self.X))

    def test_parallel_transport_direction_checks_result_at_target(self):
        M = ValidationManifold(Twisted(2))
        with self.assertRaises(ManifoldDomainError):
            parallel_transport_direction(M, self.p, self.X, self.X)
        M = ValidationManifold(Twisted(2), ignore_functions={parallel_transport_direction: "Output"})
        np.testing.assert_allclose(parallel_transport_direction(M, self.p, self.X, self.X).value, self.X)

    def test_parallel_transport_along_checks(self):
        c = [self.q]
        with self.assertRaises(ManifoldDomainError):
            parallel_transport_along(self.M, self.p, np.array([1.0, 0.0, 0.0]), c)
        M = ValidationManifold(self.S, store_base_point=True)
        Y = parallel_transport_along(M, self.p, self.X, [ValidationMPoint(self.q)])
        np.testing.assert_allclose(Y.point, self.q)
        with self.assertRaises(ManifoldDomainError):
            parallel_transport_along(ValidationManifold(Twisted(2)), self.p, self.X, [np.array([0.0, 0.0, 1.0])])

    # --- 3. Mid points and cleanup ---
    def test_mid_point(self):
        r = mid_point(self.M, self.p, self.q)
        self.assertIsInstance(r, ValidationMPoint)
        np.testing.assert_allclose(r.value, np.array([1.0, 1.0, 0.0]) / np.sqrt(2))
        out = np.zeros(3)
        self.assertIs(mid_point_(self.M, out, self.p, self.q), out)
        np.testing.assert_allclose(out, r.value)
        with self.assertRaises(ManifoldDomainError):
            mid_point(self.M, self.p, np.array([0.0, 0.0, 2.0]))

    def test_embed_project(self):
        r = embed_project(self.M, self.p)
        self.assertIsInstance(r, ValidationMPoint)
        np.testing.assert_allclose(r.value, self.p)
        Y = embed_project(self.M, self.p, self.X)
        self.assertIsInstance(Y, ValidationTVector)
        np.testing.assert_allclose(Y.value, self.X)
        out = np.zeros(3)
        embed_project_(self.M, out, self.p, self.X)
        np.testing.assert_allclose(out, self.X)
        with self.assertRaises(ManifoldDomainError):
            embed_project(self.M, np.array([0.0, 0.0, 2.0]))

    # --- 4. Cotangent vectors ---
    def test_cotangent_vectors_keep_their_type(self):
        xi = ValidationCoTVector(self.X)
        np.testing.assert_array_equal(np.asarray(xi), self.X)
        self.assertIsInstance(parallel_transport_to(self.M, self.p, xi, self.q), ValidationCoTVector)
        self.assertIsInstance(embed(self.M, self.p, xi), ValidationCoTVector)
        self.assertIsInstance(project(self.M, self.p, xi), ValidationCoTVector)
        self.assertIsInstance(log(self.M, self.p, self.q), ValidationTVector)


class TestSuppression(unittest.TestCase):

    def setUp(self):
        self.p = np.array([1.0, 0.0, 0.0])
        self.X = np.array([0.0, 0.0, 0.5])
        self.bad_p = np.array([0.0, 0.0, 2.0])

    def test_output_ignored_globally(self):
        """Input checks still run, the check of the result is skipped."""
        M = ValidationManifold(Broken(), ignore_contexts=("Output",))
        q = exp(M, self.p, self.X)
        np.testing.assert_allclose(q.value, 2 * self.p)
        with self.assertRaises(ManifoldDomainError):
            exp(M, self.bad_p, self.X)

    def test_all_ignored_within_exp_only(self):
        M = ValidationManifold(Broken(), ignore_functions={exp: "All"})
        q = exp(M, self.bad_p, self.X)
        np.testing.assert_allclose(q.value, 2 * self.bad_p)
        with self.assertRaises(ManifoldDomainError):
            log(M, self.bad_p, self.p)

    def test_inplace_variant_follows_value_form(self):
        M = ValidationManifold(Broken(), ignore_functions={exp: ["Output"]})
        out = np.zeros(3)
        exp_(M, out, self.p, self.X)
        np.testing.assert_allclose(out, 2 * self.p)
        M = ValidationManifold(Broken(), ignore_functions={"exp_": "Output"})
        exp(M, self.p, self.X)

    def test_point_context(self):
        M = ValidationManifold(Broken(), ignore_contexts="Point")
        q = exp(M, self.p, self.X)
        np.testing.assert_allclose(q.value, 2 * self.p)
        self.assertTrue(is_point(M, self.bad_p, within=exp, context=("Input",)))

    def test_policy_changes_apply_immediately(self):
        M = ValidationManifold(Broken())
        with self.assertRaises(ManifoldDomainError):
            exp(M, self.p, self.X)
        M.policy.ignore("Output")
        exp(M, self.p, self.X)
        M.policy.restore("Output")
        with self.assertRaises(ManifoldDomainError):
            exp(M, self.p, self.X)
        M.policy.ignore_within(exp, "All")
        exp(M, self.bad_p, self.X)
        M.policy.restore(within=exp)
        with self.assertRaises(ManifoldDomainError):
            exp(M, self.bad_p, self.X)

    def test_unknown_context(self):
        with self.assertRaises(ValueError):
            ValidationManifold(Broken(), ignore_contexts=("Everything",))


class TestValidationPolicy(unittest.TestCase):

    def test_function_key(self):
        self.assertEqual(function_key(exp), "exp")
        self.assertEqual(function_key(exp_), "exp")
        self.assertEqual(function_key("log_"), "log")

    def test_is_active(self):
        policy = ValidationPolicy(ignore_contexts=("Output",), ignore_functions={log: ("Point", "Input")})
        self.assertTrue(policy.is_active(exp, ("Point", "Input")))
        self.assertFalse(policy.is_active(exp, ("Point", "Output")))
        self.assertFalse(policy.is_active(log, ("Point",)))
        self.assertTrue(policy.is_active(log, ("Vector",)))
        self.assertTrue(policy.is_active(None, ("Vector", "Input")))
        self.assertEqual(policy.ignored(log), frozenset({"Output", "Point", "Input"}))

    def test_concurrent_updates(self):
        policy = ValidationPolicy()
        errors = []

        def toggle():
            try:
                for _ in range(200):
                    policy.ignore_within(exp, "Output")
                    policy.is_active(exp, ("Point", "Output"))
                    policy.restore("Output", within=exp)
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=toggle) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(errors, [])
        self.assertTrue(policy.is_active(exp, ("Point", "Output")))


if __name__ == '__main__':
    unittest.main()
