"""Sparse rule storage keyed by (resource scope, role scope).

Each key holds a :class:`RuleSet` with one optional "all privileges" rule
and a map of per-privilege rules.  At most one rule exists for any exact
(resource, role, privilege) triple: adding a rule for a triple that already
has one replaces it.

The fully wildcard pair ``(Scope.ALL, Scope.ALL)`` always exists and its
all-privileges rule defaults to DENY, which makes the engine deny-by-default.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aumos_acl.acl.assertions import Assertion
from aumos_acl.acl.types import (
    DEFAULT_RULE,
    Operation,
    Resource,
    Role,
    Rule,
    RuleType,
    Scope,
)
from aumos_acl.errors import InvalidRuleError

if TYPE_CHECKING:
    from aumos_acl.acl.manager import AclManager

logger = logging.getLogger(__name__)

_GLOBAL_KEY: tuple[Scope, Scope] = (Scope.ALL, Scope.ALL)


@dataclass
class RuleSet:
    """Rules stored for one (resource scope, role scope) pair."""

    all_privileges: Rule | None = None
    by_privilege: dict[str, Rule] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return self.all_privileges is None and not self.by_privilege


@dataclass(frozen=True)
class RuleEntry:
    """Flat, read-only view of one stored rule.

    ``privilege`` is ``None`` for an all-privileges rule.
    """

    resource: Scope
    role: Scope
    privilege: str | None
    rule: Rule

    @property
    def type(self) -> RuleType:
        return self.rule.type

    @property
    def assertion(self) -> Assertion | None:
        return self.rule.assertion


@dataclass(frozen=True)
class QueryContext:
    """The query being answered, handed to assertions during resolution."""

    acl: AclManager
    role: Role | None
    resource: Resource | None
    privilege: str | None


class RuleTable:
    """Stores allow/deny rules and resolves the rule type at a scope triple."""

    def __init__(self) -> None:
        self._rules: dict[tuple[Scope, Scope], RuleSet] = {
            _GLOBAL_KEY: RuleSet(all_privileges=DEFAULT_RULE),
        }

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_rule(
        self,
        operation: Operation,
        rule_type: RuleType,
        roles: Sequence[Scope],
        resources: Sequence[Scope] | None,
        privileges: Sequence[str] = (),
        assertion: Assertion | None = None,
        known_resources: Iterable[str] = (),
    ) -> None:
        """Add or remove rules for every (resource, role) pair given.

        Parameters
        ----------
        operation:
            :attr:`Operation.ADD` or :attr:`Operation.REMOVE`.
        rule_type:
            The rule type being added, or the type a removed rule must have.
        roles:
            Role scopes; :attr:`Scope.ALL` stands for every role.
        resources:
            Resource scopes, or ``None`` for the wildcard.  On removal,
            ``None`` additionally sweeps the same role/privilege slots of
            every id in ``known_resources``.
        privileges:
            Named privileges.  Empty means the all-privileges slot.
        assertion:
            Optional assertion attached to added rules.
        known_resources:
            Every registered resource id; only read when removing with a
            wildcard resource.

        Raises
        ------
        InvalidRuleError
            If ``operation`` or ``rule_type`` is not supported.
        """
        if not isinstance(rule_type, RuleType):
            raise InvalidRuleError(
                f"Unsupported rule type {rule_type!r}; must be one of "
                f"{[t.value for t in RuleType]}."
            )

        if operation is Operation.ADD:
            targets = list(resources) if resources is not None else [Scope.ALL]
            self._add(rule_type, targets, roles, privileges, assertion)
        elif operation is Operation.REMOVE:
            if resources is not None:
                targets = list(resources)
            else:
                targets = [Scope.ALL, *(Scope.of(r) for r in known_resources)]
            self._remove(rule_type, targets, roles, privileges)
        else:
            raise InvalidRuleError(
                f"Unsupported operation {operation!r}; must be one of "
                f"{[o.value for o in Operation]}."
            )

    def drop_role(self, role_id: str) -> None:
        """Delete every rule scoped exactly to ``role_id``."""
        scope = Scope.of(role_id)
        for key in [k for k in self._rules if k[1] == scope]:
            del self._rules[key]

    def drop_roles(self) -> None:
        """Delete every rule scoped to a specific role."""
        for key in [k for k in self._rules if not k[1].is_wildcard]:
            del self._rules[key]

    def drop_resources(self, resource_ids: Iterable[str]) -> None:
        """Delete every rule scoped exactly to one of ``resource_ids``."""
        scopes = {Scope.of(r) for r in resource_ids}
        for key in [k for k in self._rules if k[0] in scopes]:
            del self._rules[key]

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def rule_at(
        self,
        resource: Scope,
        role: Scope,
        privilege: str | None = None,
    ) -> Rule | None:
        """Return the stored rule at an exact triple without evaluating it."""
        rules = self._rules.get((resource, role))
        if rules is None:
            return None
        if privilege is None:
            return rules.all_privileges
        return rules.by_privilege.get(privilege)

    def rule_type_at(
        self,
        resource: Scope,
        role: Scope,
        privilege: str | None,
        context: QueryContext,
    ) -> RuleType | None:
        """Return the applicable rule type at an exact triple.

        Returns ``None`` when no rule is stored there, or when the rule's
        assertion fails and the triple is not fully wildcard.  At the fully
        wildcard triple a failing assertion inverts the rule type instead.
        """
        rule = self.rule_at(resource, role, privilege)
        if rule is None:
            return None
        if rule.assertion is None:
            return rule.type

        passed = rule.assertion.evaluate(
            context.acl, context.role, context.resource, context.privilege
        )
        if passed:
            return rule.type
        if resource.is_wildcard and role.is_wildcard and privilege is None:
            return rule.type.inverted()
        return None

    def has_denied_privilege(
        self,
        resource: Scope,
        role: Scope,
        context: QueryContext,
    ) -> bool:
        """Return True if any per-privilege rule at this level resolves to DENY."""
        rules = self._rules.get((resource, role))
        if rules is None:
            return False
        return any(
            self.rule_type_at(resource, role, privilege, context) is RuleType.DENY
            for privilege in list(rules.by_privilege)
        )

    def has_rules(self, resource: Scope, role: Scope) -> bool:
        return (resource, role) in self._rules

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def entries(self) -> list[RuleEntry]:
        """Return every stored rule, all-privileges rules before named ones."""
        result: list[RuleEntry] = []
        for (resource, role), rules in self._rules.items():
            if rules.all_privileges is not None:
                result.append(RuleEntry(resource, role, None, rules.all_privileges))
            for privilege, rule in rules.by_privilege.items():
                result.append(RuleEntry(resource, role, privilege, rule))
        return result

    def __iter__(self) -> Iterator[RuleEntry]:
        return iter(self.entries())

    def __len__(self) -> int:
        return sum(
            (rules.all_privileges is not None) + len(rules.by_privilege)
            for rules in self._rules.values()
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _add(
        self,
        rule_type: RuleType,
        resources: Sequence[Scope],
        roles: Sequence[Scope],
        privileges: Sequence[str],
        assertion: Assertion | None,
    ) -> None:
        rule = Rule(type=rule_type, assertion=assertion)
        for resource in resources:
            for role in roles:
                rules = self._rules.setdefault((resource, role), RuleSet())
                if not privileges:
                    rules.all_privileges = rule
                else:
                    for privilege in privileges:
                        rules.by_privilege[privilege] = rule
                logger.debug(
                    "Set %s rule: resource=%s role=%s privileges=%s assertion=%s",
                    rule_type.value,
                    resource,
                    role,
                    list(privileges) or "*",
                    type(assertion).__name__ if assertion is not None else None,
                )

    def _remove(
        self,
        rule_type: RuleType,
        resources: Sequence[Scope],
        roles: Sequence[Scope],
        privileges: Sequence[str],
    ) -> None:
        for resource in resources:
            for role in roles:
                key = (resource, role)
                rules = self._rules.get(key)
                if rules is None:
                    continue

                if not privileges:
                    if key == _GLOBAL_KEY:
                        # The global default is reset, never deleted.
                        if rules.all_privileges is not None and rules.all_privileges.type is rule_type:
                            self._rules[key] = RuleSet(all_privileges=DEFAULT_RULE)
                        continue
                    if rules.all_privileges is not None and rules.all_privileges.type is rule_type:
                        rules.all_privileges = None
                else:
                    for privilege in privileges:
                        existing = rules.by_privilege.get(privilege)
                        if existing is not None and existing.type is rule_type:
                            del rules.by_privilege[privilege]

                if key != _GLOBAL_KEY and rules.is_empty():
                    del self._rules[key]
                logger.debug(
                    "Removed %s rule: resource=%s role=%s privileges=%s",
                    rule_type.value,
                    resource,
                    role,
                    list(privileges) or "*",
                )
