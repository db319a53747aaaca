import unittest

from manitrait import interface
from manitrait.core.dispatch import DEFAULT_TABLE, DispatchTable, Operation, resolve, signature_matches
from manitrait.core.errors import NoImplementationError, RegistrationError, TraitConfigurationError
from manitrait.core.manifold import AbstractManifold, active_traits
from manitrait.core.traits import TRAITS, TraitHierarchy

# Isolated hierarchy so nothing leaks into the built-in table
H = TraitHierarchy()
Base = H.declare("Base")
Child = H.declare("Child", Base)
Other = H.declare("Other")


class Plain(AbstractManifold):
    pass


class WithBase(AbstractManifold):
    pass


class WithChild(AbstractManifold):
    pass


class WithBoth(AbstractManifold):
    pass


class PerOperation(AbstractManifold):
    pass


@active_traits.register(WithBase)
def _with_base(M, operation, *args):
    return (Base,)


@active_traits.register(WithChild)
def _with_child(M, operation, *args):
    return (Child,)


@active_traits.register(WithBoth)
def _with_both(M, operation, *args):
    return (Other, Child)


class TestResolution(unittest.TestCase):

    def setUp(self):
        self.table = DispatchTable(H)
        self.op = Operation("op", table=self.table)

        @self.op.register_trait(Base)
        def base_impl(M, *args):
            return "base"

        @self.op.register_trait(Child)
        def child_impl(M, *args):
            return "child"

        @self.op.register(AbstractManifold)
        def generic_impl(M, *args):
            return "generic"

        self.base_impl, self.child_impl, self.generic_impl = base_impl, child_impl, generic_impl

    # --- 1. Priority ---
    def test_child_trait_wins_over_parent(self):
        self.assertEqual(self.op(WithChild()), "child")
        self.assertEqual(self.op(WithBase()), "base")

    def test_trait_chain(self):
        self.assertEqual(self.op.trait_chain(WithChild()), (Child, Base))
        self.assertEqual(self.op.trait_chain(WithBoth()), (Other, Child, Base))

    def test_earlier_active_trait_wins(self):
        """Other has no registration, so the walk continues to Child."""
        self.assertEqual(self.op(WithBoth()), "child")

        @self.op.register_trait(Other)
        def other_impl(M, *args):
            return "other"

        self.assertEqual(self.op(WithBoth()), "other")

    # --- 2. Fallback ---
    def test_generic_without_traits(self):
        self.assertEqual(self.op(Plain()), "generic")

    def test_no_implementation_names_operation_and_type(self):
        op = Operation("lonely_op", table=self.table)
        with self.assertRaises(NoImplementationError) as ctx:
            op(Plain())
        self.assertIsInstance(ctx.exception, NotImplementedError)
        self.assertIn("lonely_op", str(ctx.exception))
        self.assertIn("Plain", str(ctx.exception))
        self.assertIs(ctx.exception.receiver_type, Plain)

    def test_generic_is_only_checked_when_called(self):
        op = Operation("late_op", table=self.table)
        self.assertIsNone(op.generic_for(Plain()))

    # --- 3. Determinism ---
    def test_resolution_is_stable(self):
        M = WithChild()
        first = self.op.resolve(M)
        for _ in range(10):
            self.assertIs(resolve(self.op, M), first)
        self.assertIs(first, self.child_impl)
        self.assertIs(self.op.resolve(Plain()), self.generic_impl)

    # --- 4. Registration errors ---
    def test_duplicate_registration_fails(self):
        with self.assertRaises(RegistrationError):
            self.op.register_trait(Base)(lambda M, *args: None)

    def test_undeclared_trait_fails(self):
        other = TraitHierarchy().declare("Stranger")
        with self.assertRaises(TraitConfigurationError):
            self.op.register_trait(other)(lambda M, *args: None)


class TestSignatures(unittest.TestCase):

    def setUp(self):
        self.table = DispatchTable(H)
        self.op = Operation("sig_op", table=self.table)

    def test_signature_matching(self):
        self.assertTrue(signature_matches(None, (1, "a")))
        self.assertTrue(signature_matches((int, object), (1, "a")))
        self.assertFalse(signature_matches((int,), (1, "a")))
        self.assertFalse(signature_matches((str,), (1,)))

    def test_most_specific_signature_wins(self):
        self.op.register_trait(Base)(lambda M, *a: "any")
        self.op.register_trait(Base, signature=(object,))(lambda M, x: "object")
        self.op.register_trait(Base, signature=(int,))(lambda M, x: "int")
        M = WithBase()
        self.assertEqual(self.op(M, 3), "int")
        self.assertEqual(self.op(M, "three"), "object")
        self.assertEqual(self.op(M, 1, 2), "any")

    def test_equally_specific_first_registered_wins(self):
        self.op.register_trait(Base, signature=(int, object))(lambda M, x, y: "first")
        self.op.register_trait(Base, signature=(object, int))(lambda M, x, y: "second")
        M = WithBase()
        self.assertEqual(self.op(M, 1, 2), "first")
        self.assertEqual(self.op(M, "a", 2), "second")

    def test_operations_match_by_identity(self):
        a = Operation("a", table=self.table)
        b = Operation("b", table=self.table)
        self.op.register_trait(Base, signature=(a,))(lambda M, f: "for a")
        self.op.register(AbstractManifold, lambda M, f: "generic")
        M = WithBase()
        self.assertEqual(self.op(M, a), "for a")
        self.assertEqual(self.op(M, b), "generic")

    def test_no_matching_signature_falls_back(self):
        self.op.register_trait(Child, signature=(int,))(lambda M, x: "child int")
        self.op.register_trait(Base, signature=(str,))(lambda M, x: "base str")
        M = WithChild()
        self.assertEqual(self.op(M, 1), "child int")
        self.assertEqual(self.op(M, "s"), "base str")
        with self.assertRaises(NoImplementationError):
            self.op(M, 1.5)

    def test_active_traits_per_operation(self):
        other_op = Operation("other_op", table=self.table)

        @active_traits.register(PerOperation)
        def _per_operation(M, operation, *args):
            return (Other,) if operation is self.op else ()

        self.op.register_trait(Other)(lambda M: "traited")
        other_op.register_trait(Other)(lambda M: "traited")
        other_op.register(AbstractManifold, lambda M: "generic")
        self.assertEqual(self.op(PerOperation()), "traited")
        self.assertEqual(other_op(PerOperation()), "generic")


class TestBuiltinTable(unittest.TestCase):

    def test_descendants_precede_registered_ancestors(self):
        """Wherever a trait and one of its ancestors both implement an operation, the descendant comes first."""
        operations = [v for v in vars(interface).values() if isinstance(v, Operation)]
        self.assertTrue(operations)
        for op in operations:
            traits = DEFAULT_TABLE.registered_traits(op)
            for t in traits:
                chain = TRAITS.linearize([t])
                for a in chain[1:]:
                    if a in traits:
                        self.assertLess(chain.index(t), chain.index(a))
                        self.assertEqual(chain[0], t)


if __name__ == '__main__':
    unittest.main()
