"""Pluggable assertions that gate when a rule applies.

An assertion is evaluated while a rule is being resolved.  It receives the
engine and the role, resource and privilege that were *queried* (not the
inherited role or ancestor resource currently being visited), so a rule
registered on a parent resource can still reason about the child resource
that was actually requested.

How a failed assertion is interpreted depends on the rule's scope:

- a rule with any specific scope (role, resource or privilege) becomes
  inapplicable and resolution falls through to broader rules;
- the fully wildcard default rule has its type inverted, so the global
  default always yields an answer.

Assertions compose: :class:`AllOf`, :class:`AnyOf` and :class:`Negate`
combine other assertions with AND / OR / NOT semantics.  Plain callables
with the same signature are accepted anywhere an assertion is and are
wrapped in :class:`CallableAssertion`.

Example
-------
::

    def during_office_hours(acl, role, resource, privilege):
        return 9 <= datetime.now().hour < 17

    acl.allow("contractor", "reports", "read", assertion=during_office_hours)
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aumos_acl.acl.types import Resource, Role

if TYPE_CHECKING:
    from aumos_acl.acl.manager import AclManager


AssertionCallable = Callable[
    ["AclManager", "Role | None", "Resource | None", "str | None"], bool
]


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------


class Assertion(ABC):
    """Abstract base for rule assertions."""

    @abstractmethod
    def evaluate(
        self,
        acl: AclManager,
        role: Role | None,
        resource: Resource | None,
        privilege: str | None,
    ) -> bool:
        """Return True if the rule carrying this assertion should apply.

        Parameters
        ----------
        acl:
            The engine performing the query.
        role:
            The queried role, or ``None`` for an all-roles query.
        resource:
            The queried resource, or ``None`` for an all-resources query.
        privilege:
            The queried privilege, or ``None`` for an all-privileges query.
        """


# ---------------------------------------------------------------------------
# Adapters and combinators
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CallableAssertion(Assertion):
    """Adapt a plain function to the :class:`Assertion` interface."""

    func: AssertionCallable

    def evaluate(
        self,
        acl: AclManager,
        role: Role | None,
        resource: Resource | None,
        privilege: str | None,
    ) -> bool:
        return bool(self.func(acl, role, resource, privilege))


@dataclass(frozen=True)
class AllOf(Assertion):
    """Passes only if every inner assertion passes (AND).

    An empty ``AllOf`` passes.
    """

    assertions: tuple[Assertion, ...]

    def evaluate(
        self,
        acl: AclManager,
        role: Role | None,
        resource: Resource | None,
        privilege: str | None,
    ) -> bool:
        return all(a.evaluate(acl, role, resource, privilege) for a in self.assertions)


@dataclass(frozen=True)
class AnyOf(Assertion):
    """Passes if at least one inner assertion passes (OR).

    An empty ``AnyOf`` fails.
    """

    assertions: tuple[Assertion, ...]

    def evaluate(
        self,
        acl: AclManager,
        role: Role | None,
        resource: Resource | None,
        privilege: str | None,
    ) -> bool:
        return any(a.evaluate(acl, role, resource, privilege) for a in self.assertions)


@dataclass(frozen=True)
class Negate(Assertion):
    """Inverts the inner assertion (NOT)."""

    assertion: Assertion

    def evaluate(
        self,
        acl: AclManager,
        role: Role | None,
        resource: Resource | None,
        privilege: str | None,
    ) -> bool:
        return not self.assertion.evaluate(acl, role, resource, privilege)


def as_assertion(value: Assertion | AssertionCallable | None) -> Assertion | None:
    """Normalise ``value`` to an :class:`Assertion` (or ``None``).

    Raises
    ------
    TypeError
        If ``value`` is neither an assertion, a callable, nor ``None``.
    """
    if value is None or isinstance(value, Assertion):
        return value
    if callable(value):
        return CallableAssertion(func=value)
    raise TypeError(
        f"Assertion must be an Assertion instance or a callable; got {type(value).__name__}."
    )


def all_of(*assertions: Assertion | AssertionCallable) -> AllOf:
    return AllOf(assertions=tuple(_require(a) for a in assertions))


def any_of(*assertions: Assertion | AssertionCallable) -> AnyOf:
    return AnyOf(assertions=tuple(_require(a) for a in assertions))


def negate(assertion: Assertion | AssertionCallable) -> Negate:
    return Negate(assertion=_require(assertion))


def _require(value: Assertion | AssertionCallable) -> Assertion:
    assertion = as_assertion(value)
    if assertion is None:
        raise TypeError("Assertion combinators do not accept None.")
    return assertion
