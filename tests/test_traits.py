import unittest

from manitrait.core.errors import TraitConfigurationError
from manitrait.core.traits import Trait, TraitHierarchy, merge_traits, TRAITS
from manitrait.embedded import IsEmbeddedManifold, IsEmbeddedSubmanifold, IsIsometricEmbeddedManifold


class TestTraitHierarchy(unittest.TestCase):

    def setUp(self):
        self.h = TraitHierarchy()
        self.A = self.h.declare("A")
        self.B = self.h.declare("B", self.A)
        self.C = self.h.declare("C", self.B)
        self.D = self.h.declare("D")

    # --- 1. Declaration ---
    def test_traits_compare_by_name(self):
        self.assertEqual(Trait("A"), self.A)
        self.assertEqual(hash(Trait("A")), hash(self.A))
        self.assertEqual(repr(self.C), "C")

    def test_redeclare_same_parent_is_idempotent(self):
        self.assertEqual(self.h.declare("B", self.A), self.B)

    def test_redeclare_other_parent_fails(self):
        with self.assertRaises(TraitConfigurationError):
            self.h.declare("B", self.D)

    def test_self_parent_fails(self):
        with self.assertRaises(TraitConfigurationError):
            self.h.declare("E", Trait("E"))

    # --- 2. Ancestors and linearization ---
    def test_ancestors_most_specific_first(self):
        self.assertEqual(tuple(self.h.ancestors(self.C)), (self.C, self.B, self.A))
        self.assertIsNone(self.h.parent(self.A))

    def test_linearize_expands_and_dedups(self):
        """Each trait is followed by its ancestors; the first occurrence wins."""
        chain = self.h.linearize([self.C, self.D, self.B])
        self.assertEqual(chain, (self.C, self.B, self.A, self.D))

    def test_linearize_empty(self):
        self.assertEqual(self.h.linearize(()), ())

    def test_merge_priority(self):
        t1, t2, t3 = Trait("t1"), Trait("t2"), Trait("t3")
        self.assertEqual(merge_traits([t1, t2], [t2, t3]), (t1, t2, t3))
        self.assertEqual(merge_traits([t2, t3], [t1, t2]), (t2, t3, t1))

    # --- 3. Validation ---
    def test_validate_accepts_forest(self):
        self.h.validate()
        self.assertTrue(self.h.validated)

    def test_declare_invalidates(self):
        self.h.validate()
        self.h.declare("F", self.D)
        self.assertFalse(self.h.validated)

    def test_cycle_is_detected(self):
        h = TraitHierarchy()
        # X names Y before Y exists, Y then closes the loop.
        h.declare("X", Trait("Y"))
        h.declare("Y", Trait("X"))
        with self.assertRaises(TraitConfigurationError):
            h.validate()

    def test_undeclared_parent_is_detected(self):
        h = TraitHierarchy()
        h.declare("orphan", Trait("missing"))
        with self.assertRaises(TraitConfigurationError):
            h.validate()

    def test_depth_bound(self):
        h = TraitHierarchy()
        parent = h.declare("t0")
        for i in range(1, 6):
            parent = h.declare(f"t{i}", parent)
        h.validate(max_depth=5)
        with self.assertRaises(TraitConfigurationError):
            h.validate(max_depth=4)

    # --- 4. Built-in traits ---
    def test_embedding_family(self):
        self.assertEqual(
            TRAITS.linearize([IsEmbeddedSubmanifold]),
            (IsEmbeddedSubmanifold, IsIsometricEmbeddedManifold, IsEmbeddedManifold),
        )
        TRAITS.validate()
        self.assertTrue(TRAITS.validated)


if __name__ == '__main__':
    unittest.main()
