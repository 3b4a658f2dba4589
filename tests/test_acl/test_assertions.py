"""Tests for assertion adapters and combinators."""
from __future__ import annotations

import pytest

from aumos_acl.acl.assertions import (
    AllOf,
    AnyOf,
    Assertion,
    CallableAssertion,
    Negate,
    all_of,
    any_of,
    as_assertion,
    negate,
)
from aumos_acl.acl.manager import AclManager
from aumos_acl.acl.types import Resource, Role


class _Fixed(Assertion):
    def __init__(self, outcome: bool) -> None:
        self.outcome = outcome
        self.calls = 0

    def evaluate(self, acl, role, resource, privilege) -> bool:  # type: ignore[no-untyped-def]
        self.calls += 1
        return self.outcome


@pytest.fixture()
def acl() -> AclManager:
    return AclManager()


def _run(assertion: Assertion, acl: AclManager) -> bool:
    return assertion.evaluate(acl, Role("user"), Resource("profile"), "read")


class TestAsAssertion:
    def test_none_passes_through(self) -> None:
        assert as_assertion(None) is None

    def test_assertion_passes_through(self) -> None:
        inner = _Fixed(True)
        assert as_assertion(inner) is inner

    def test_callable_is_wrapped(self) -> None:
        wrapped = as_assertion(lambda acl, role, resource, privilege: True)
        assert isinstance(wrapped, CallableAssertion)

    def test_other_values_raise(self) -> None:
        with pytest.raises(TypeError):
            as_assertion("not callable")  # type: ignore[arg-type]


class TestCallableAssertion:
    def test_receives_query_arguments(self, acl: AclManager) -> None:
        seen: list[tuple[object, ...]] = []

        def record(acl_arg, role, resource, privilege):  # type: ignore[no-untyped-def]
            seen.append((acl_arg, role, resource, privilege))
            return 1

        assert _run(CallableAssertion(func=record), acl) is True
        assert seen == [(acl, Role("user"), Resource("profile"), "read")]

    def test_result_is_coerced_to_bool(self, acl: AclManager) -> None:
        assert _run(CallableAssertion(func=lambda *args: None), acl) is False


class TestCombinators:
    def test_all_of(self, acl: AclManager) -> None:
        assert _run(all_of(_Fixed(True), _Fixed(True)), acl) is True
        assert _run(all_of(_Fixed(True), _Fixed(False)), acl) is False

    def test_all_of_short_circuits(self, acl: AclManager) -> None:
        last = _Fixed(True)
        _run(all_of(_Fixed(False), last), acl)
        assert last.calls == 0

    def test_empty_all_of_passes(self, acl: AclManager) -> None:
        assert _run(AllOf(assertions=()), acl) is True

    def test_any_of(self, acl: AclManager) -> None:
        assert _run(any_of(_Fixed(False), _Fixed(True)), acl) is True
        assert _run(any_of(_Fixed(False), _Fixed(False)), acl) is False

    def test_empty_any_of_fails(self, acl: AclManager) -> None:
        assert _run(AnyOf(assertions=()), acl) is False

    def test_negate(self, acl: AclManager) -> None:
        assert _run(negate(_Fixed(True)), acl) is False
        assert _run(Negate(assertion=_Fixed(False)), acl) is True

    def test_combinators_accept_callables(self, acl: AclManager) -> None:
        combined = all_of(lambda *args: True, negate(lambda *args: False))
        assert _run(combined, acl) is True

    def test_combinators_reject_none(self) -> None:
        with pytest.raises(TypeError):
            all_of(None)  # type: ignore[arg-type]
