"""ACL engine — registration facade and the access resolution algorithm.

:class:`AclManager` owns a :class:`RoleRegistry`, a :class:`ResourceTree`
and a :class:`RuleTable`, and answers ``is_allowed(role, resource,
privilege)`` queries.

Resolution
----------
Starting at the queried resource and walking up to the "all resources"
wildcard, each resource level is checked as follows:

1. Depth-first search over the role DAG from the queried role.  Parents are
   pushed in ascending priority, so the most recently added parent is popped
   and visited first.  At each visited role the privilege-specific rule is
   checked, then the role's all-privileges rule.
2. The "all roles" pseudo-role at the same resource level.
3. The parent resource.

The walk always ends at the fully wildcard rule, which defaults to DENY.

For an all-privileges query (``privilege=None``) a level that holds any
per-privilege DENY answers False immediately, even if an allow-all rule
exists at that same level.

Example
-------
::

    acl = AclManager()
    acl.add_role("user").add_role("admin", parents=["user"])
    acl.add_resource("profile").add_resource("profile.password", parent="profile")
    acl.allow("user", "profile")
    assert acl.is_allowed("admin", "profile.password")
    acl.deny("admin", "profile")
    assert not acl.is_allowed("admin", "profile")
    assert acl.is_allowed("user", "profile")

Concurrency
-----------
Queries carry their state in an immutable :class:`QueryContext` and never
mutate the engine, so a fully built engine may be read from many threads.
Mutating methods are not synchronised; build the engine once, then treat it
as read-only.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from aumos_acl.acl.assertions import Assertion, AssertionCallable, as_assertion
from aumos_acl.acl.resources import ResourceTree
from aumos_acl.acl.roles import RoleRegistry
from aumos_acl.acl.rules import QueryContext, RuleEntry, RuleTable
from aumos_acl.acl.types import (
    Operation,
    Resource,
    ResourceLike,
    Role,
    RoleLike,
    RuleType,
    Scope,
)
from aumos_acl.errors import AclInvariantError, InvalidRuleError

logger = logging.getLogger(__name__)

RolesArg = RoleLike | Iterable[RoleLike | None] | None
ResourcesArg = ResourceLike | Iterable[ResourceLike | None] | None
PrivilegesArg = str | Iterable[str] | None


class AclManager:
    """Role/resource access control list.

    Parameters
    ----------
    role_registry:
        Optional pre-populated registry.  A new empty one is created when
        omitted.
    """

    def __init__(self, role_registry: RoleRegistry | None = None) -> None:
        self._roles = role_registry if role_registry is not None else RoleRegistry()
        self._resources = ResourceTree()
        self._rules = RuleTable()

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def add_role(
        self,
        role: RoleLike,
        parents: RoleLike | Iterable[RoleLike] | None = None,
    ) -> AclManager:
        """Add a role inheriting from ``parents``.

        When inherited rules conflict, the most recently added parent wins:
        the first parent listed has the lowest priority and the last the
        highest.
        """
        self._roles.add(role, parents)
        return self

    def get_role(self, role: RoleLike) -> Role:
        return self._roles.get(role)

    def has_role(self, role: RoleLike) -> bool:
        return self._roles.has(role)

    def inherits_role(
        self,
        role: RoleLike,
        inherit: RoleLike,
        only_direct: bool = False,
    ) -> bool:
        """Return True if ``role`` inherits from ``inherit``.

        With ``only_direct`` the ancestor must be a direct parent; otherwise
        the whole inheritance DAG is searched.
        """
        return self._roles.inherits(role, inherit, only_direct)

    def remove_role(self, role: RoleLike) -> AclManager:
        """Remove a role and every rule scoped exactly to it."""
        role_id = self._roles.get(role).role_id
        self._roles.remove(role_id)
        self._rules.drop_role(role_id)
        logger.debug("Removed role %r and its rules", role_id)
        return self

    def remove_role_all(self) -> AclManager:
        """Remove every role and every role-scoped rule."""
        self._roles.remove_all()
        self._rules.drop_roles()
        return self

    def get_roles(self) -> list[str]:
        """Return registered role ids in registration order."""
        return self._roles.ids()

    @property
    def role_registry(self) -> RoleRegistry:
        return self._roles

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def add_resource(
        self,
        resource: ResourceLike,
        parent: ResourceLike | None = None,
    ) -> AclManager:
        """Add a resource, optionally below an existing ``parent``."""
        self._resources.add(resource, parent)
        return self

    def get_resource(self, resource: ResourceLike) -> Resource:
        return self._resources.get(resource)

    def has_resource(self, resource: ResourceLike) -> bool:
        return self._resources.has(resource)

    def inherits_resource(
        self,
        resource: ResourceLike,
        inherit: ResourceLike,
        only_direct: bool = False,
    ) -> bool:
        """Return True if ``resource`` descends from ``inherit``."""
        return self._resources.inherits(resource, inherit, only_direct)

    def remove_resource(self, resource: ResourceLike) -> AclManager:
        """Remove a resource, its descendants, and every rule scoped to them."""
        removed = self._resources.remove(resource)
        self._rules.drop_resources(removed)
        logger.debug("Removed resources %s and their rules", removed)
        return self

    def remove_resource_all(self) -> AclManager:
        """Remove every resource and every resource-scoped rule."""
        self._rules.drop_resources(self._resources.remove_all())
        return self

    def get_resources(self) -> list[str]:
        """Return registered resource ids in registration order."""
        return self._resources.ids()

    @property
    def resource_tree(self) -> ResourceTree:
        return self._resources

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def allow(
        self,
        roles: RolesArg = None,
        resources: ResourcesArg = None,
        privileges: PrivilegesArg = None,
        assertion: Assertion | AssertionCallable | None = None,
    ) -> AclManager:
        """Add an allow rule.

        ``None`` for ``roles`` or ``resources`` means all roles or all
        resources; ``None`` for ``privileges`` means all privileges.
        """
        return self.set_rule(Operation.ADD, RuleType.ALLOW, roles, resources, privileges, assertion)

    def deny(
        self,
        roles: RolesArg = None,
        resources: ResourcesArg = None,
        privileges: PrivilegesArg = None,
        assertion: Assertion | AssertionCallable | None = None,
    ) -> AclManager:
        """Add a deny rule."""
        return self.set_rule(Operation.ADD, RuleType.DENY, roles, resources, privileges, assertion)

    def remove_allow(
        self,
        roles: RolesArg = None,
        resources: ResourcesArg = None,
        privileges: PrivilegesArg = None,
    ) -> AclManager:
        """Remove allow rules in the given scope."""
        return self.set_rule(Operation.REMOVE, RuleType.ALLOW, roles, resources, privileges)

    def remove_deny(
        self,
        roles: RolesArg = None,
        resources: ResourcesArg = None,
        privileges: PrivilegesArg = None,
    ) -> AclManager:
        """Remove deny rules in the given scope."""
        return self.set_rule(Operation.REMOVE, RuleType.DENY, roles, resources, privileges)

    def set_rule(
        self,
        operation: Operation | str,
        rule_type: RuleType | str,
        roles: RolesArg = None,
        resources: ResourcesArg = None,
        privileges: PrivilegesArg = None,
        assertion: Assertion | AssertionCallable | None = None,
    ) -> AclManager:
        """Add or remove rules.

        ``roles`` and ``resources`` accept a single value, an iterable, or
        ``None``; an empty iterable or a ``None`` element stands for the
        wildcard.  If an assertion is attached to the fully wildcard rule
        and fails, that rule's type is inverted rather than ignored.

        Every identifier is validated before the rule table is touched, so
        a failing call leaves the table unchanged.

        Raises
        ------
        InvalidRuleError
            If ``operation`` or ``rule_type`` is unsupported.
        UnknownRoleError
            If a role is not registered.
        UnknownResourceError
            If a resource is not registered.
        """
        operation = self._coerce(Operation, operation, "operation")
        rule_type = self._coerce(RuleType, rule_type, "rule type")

        role_scopes = self._role_scopes(roles)
        resource_scopes = None if resources is None else self._resource_scopes(resources)
        privilege_list = self._privileges(privileges)

        self._rules.set_rule(
            operation,
            rule_type,
            role_scopes,
            resource_scopes,
            privilege_list,
            as_assertion(assertion),
            known_resources=self._resources.ids(),
        )
        return self

    @property
    def rules(self) -> list[RuleEntry]:
        """Every stored rule, as flat :class:`RuleEntry` records."""
        return self._rules.entries()

    @property
    def rule_count(self) -> int:
        return len(self._rules)

    @property
    def rule_table(self) -> RuleTable:
        return self._rules

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_allowed(
        self,
        role: RoleLike | None = None,
        resource: ResourceLike | None = None,
        privilege: str | None = None,
    ) -> bool:
        """Return True if ``role`` may exercise ``privilege`` on ``resource``.

        ``None`` for ``role`` or ``resource`` queries the all-roles or
        all-resources rules.  Without a ``privilege`` the answer is True only
        if the role is allowed every privilege on the resource: any named
        privilege explicitly denied makes it False.

        Raises
        ------
        UnknownRoleError
            If ``role`` is not registered.
        UnknownResourceError
            If ``resource`` is not registered.
        """
        role_obj = self._roles.get(role) if role is not None else None
        resource_obj = self._resources.get(resource) if resource is not None else None
        context = QueryContext(
            acl=self, role=role_obj, resource=resource_obj, privilege=privilege
        )

        resource_id = resource_obj.resource_id if resource_obj is not None else None
        while True:
            resource_scope = Scope.from_optional(resource_id)

            if role_obj is not None:
                result = self._role_dfs(role_obj.role_id, resource_scope, privilege, context)
                if result is not None:
                    return self._decided(context, result, resource_scope, "role")

            result = self._visit(Scope.ALL, resource_scope, privilege, context)
            if result is not None:
                return self._decided(context, result, resource_scope, "all roles")

            if resource_id is None:
                raise AclInvariantError(
                    "Resolution reached the all-resources level without a decision; "
                    "the global default rule is missing."
                )
            resource_id = self._resources.parent_of(resource_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _role_dfs(
        self,
        role_id: str,
        resource: Scope,
        privilege: str | None,
        context: QueryContext,
    ) -> bool | None:
        """Depth-first search of the role DAG at one resource level."""
        visited: set[str] = set()
        stack: list[str] = [role_id]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            result = self._visit(Scope.of(current), resource, privilege, context)
            if result is not None:
                return result
            visited.add(current)
            stack.extend(parent.role_id for parent in self._roles.get_parents(current))
        return None

    def _visit(
        self,
        role: Scope,
        resource: Scope,
        privilege: str | None,
        context: QueryContext,
    ) -> bool | None:
        """Look for a decision for one role scope at one resource scope."""
        if privilege is not None:
            rule_type = self._rules.rule_type_at(resource, role, privilege, context)
            if rule_type is None:
                rule_type = self._rules.rule_type_at(resource, role, None, context)
        else:
            if not self._rules.has_rules(resource, role):
                return None
            if self._rules.has_denied_privilege(resource, role, context):
                return False
            rule_type = self._rules.rule_type_at(resource, role, None, context)

        if rule_type is None:
            return None
        return rule_type is RuleType.ALLOW

    def _decided(
        self,
        context: QueryContext,
        allowed: bool,
        resource: Scope,
        matched_by: str,
    ) -> bool:
        logger.debug(
            "ACL %s: role=%s resource=%s privilege=%s (matched at resource=%s via %s)",
            "ALLOW" if allowed else "DENY",
            context.role,
            context.resource,
            context.privilege or "*",
            resource,
            matched_by,
        )
        return allowed

    def _role_scopes(self, roles: RolesArg) -> list[Scope]:
        items = self._as_list(roles)
        if not items:
            return [Scope.ALL]
        return [
            Scope.ALL if item is None else Scope.of(self._roles.get(item).role_id)
            for item in items
        ]

    def _resource_scopes(self, resources: ResourcesArg) -> list[Scope]:
        items = self._as_list(resources)
        if not items:
            return [Scope.ALL]
        return [
            Scope.ALL if item is None else Scope.of(self._resources.get(item).resource_id)
            for item in items
        ]

    @staticmethod
    def _as_list(value: object) -> list:
        if value is None:
            return []
        if isinstance(value, (str, Role, Resource)):
            return [value]
        return list(value)  # type: ignore[call-overload]

    @staticmethod
    def _privileges(privileges: PrivilegesArg) -> list[str]:
        if privileges is None:
            return []
        if isinstance(privileges, str):
            return [privileges]
        return list(privileges)

    @staticmethod
    def _coerce(enum_cls: type, value: object, label: str) -> Any:
        if isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(str(value).lower())
        except ValueError as exc:
            raise InvalidRuleError(
                f"Unsupported {label} {value!r}; must be one of "
                f"{[member.value for member in enum_cls]}."
            ) from exc
