"""Role registry — the role inheritance DAG.

Roles are stored as an id-keyed table of adjacency records.  Parents are
kept in insertion order, which encodes priority: the first parent added has
the lowest priority and the last parent added has the highest.  The engine's
depth-first search relies on that order to resolve conflicting inherited
rules.

Because every parent must already be registered when a child is added, and a
role may not name itself, the graph is acyclic by construction.

Example
-------
::

    registry = RoleRegistry()
    registry.add("guest")
    registry.add("member", parents=["guest"])
    registry.add("admin", parents=["member"])
    assert registry.inherits("admin", "guest")
    assert not registry.inherits("admin", "guest", only_direct=True)
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from aumos_acl.acl.types import Role, RoleLike, role_id_of
from aumos_acl.errors import (
    DuplicateRoleError,
    RoleCycleError,
    UnknownParentError,
    UnknownRoleError,
)

logger = logging.getLogger(__name__)


@dataclass
class _RoleNode:
    role: Role
    parents: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)


def _normalise_parents(parents: RoleLike | Iterable[RoleLike] | None) -> list[str]:
    if parents is None:
        return []
    if isinstance(parents, (Role, str)):
        return [role_id_of(parents)]
    return [role_id_of(parent) for parent in parents]


class RoleRegistry:
    """Owns role identifiers and their parent/child links."""

    def __init__(self) -> None:
        self._roles: dict[str, _RoleNode] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(
        self,
        role: RoleLike,
        parents: RoleLike | Iterable[RoleLike] | None = None,
    ) -> RoleRegistry:
        """Register ``role`` with the given parents.

        Parameters
        ----------
        role:
            A :class:`Role` or role id.
        parents:
            A single parent, an iterable of parents, or ``None``.  Later
            entries take precedence over earlier ones when inherited rules
            conflict.

        Returns
        -------
        RoleRegistry
            ``self``, for chaining.

        Raises
        ------
        DuplicateRoleError
            If the role is already registered.
        RoleCycleError
            If the role lists itself as a parent.
        UnknownParentError
            If any parent has not been registered yet.
        """
        role_id = role_id_of(role)
        if role_id in self._roles:
            raise DuplicateRoleError(role_id)

        parent_ids: list[str] = []
        for parent_id in _normalise_parents(parents):
            if parent_id == role_id:
                raise RoleCycleError(role_id)
            if parent_id not in self._roles:
                raise UnknownParentError("role", parent_id, role_id)
            if parent_id in parent_ids:
                logger.warning(
                    "Role %r lists parent %r more than once; keeping the first position",
                    role_id,
                    parent_id,
                )
                continue
            parent_ids.append(parent_id)

        for parent_id in parent_ids:
            self._roles[parent_id].children.append(role_id)
        self._roles[role_id] = _RoleNode(
            role=role if isinstance(role, Role) else Role(role_id),
            parents=parent_ids,
        )
        logger.debug("Registered role %r with parents %s", role_id, parent_ids)
        return self

    def remove(self, role: RoleLike) -> RoleRegistry:
        """Remove ``role`` and detach it from its parents and children.

        Raises
        ------
        UnknownRoleError
            If the role is not registered.
        """
        role_id = self._require(role)
        node = self._roles.pop(role_id)
        for child_id in node.children:
            self._roles[child_id].parents.remove(role_id)
        for parent_id in node.parents:
            self._roles[parent_id].children.remove(role_id)
        logger.debug("Removed role %r", role_id)
        return self

    def remove_all(self) -> RoleRegistry:
        """Remove every role."""
        self._roles.clear()
        return self

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, role: RoleLike) -> Role:
        """Return the registered :class:`Role` for a role or role id."""
        return self._roles[self._require(role)].role

    def has(self, role: RoleLike) -> bool:
        return role_id_of(role) in self._roles

    def get_parents(self, role: RoleLike) -> list[Role]:
        """Return the direct parents of ``role`` in ascending priority order.

        The last element is the most recently added, highest-priority parent.
        """
        node = self._roles[self._require(role)]
        return [self._roles[parent_id].role for parent_id in node.parents]

    def get_children(self, role: RoleLike) -> list[Role]:
        """Return the direct children of ``role`` in registration order."""
        node = self._roles[self._require(role)]
        return [self._roles[child_id].role for child_id in node.children]

    def inherits(
        self,
        role: RoleLike,
        ancestor: RoleLike,
        only_direct: bool = False,
    ) -> bool:
        """Return True if ``role`` inherits from ``ancestor``.

        Parameters
        ----------
        role:
            The descendant role.
        ancestor:
            The role to look for among ``role``'s ancestors.
        only_direct:
            When True only direct parents are considered.

        Raises
        ------
        UnknownRoleError
            If either role is not registered.
        """
        role_id = self._require(role)
        ancestor_id = self._require(ancestor)

        parents = self._roles[role_id].parents
        if ancestor_id in parents:
            return True
        if only_direct:
            return False

        visited: set[str] = set()
        stack: list[str] = list(parents)
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            current_parents = self._roles[current].parents
            if ancestor_id in current_parents:
                return True
            stack.extend(current_parents)
        return False

    def roles(self) -> list[Role]:
        """Return all registered roles in registration order."""
        return [node.role for node in self._roles.values()]

    def ids(self) -> list[str]:
        return list(self._roles)

    def __contains__(self, role: object) -> bool:
        return isinstance(role, (Role, str)) and self.has(role)

    def __iter__(self) -> Iterator[Role]:
        return iter(self.roles())

    def __len__(self) -> int:
        return len(self._roles)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require(self, role: RoleLike) -> str:
        role_id = role_id_of(role)
        if role_id not in self._roles:
            raise UnknownRoleError(role_id)
        return role_id
