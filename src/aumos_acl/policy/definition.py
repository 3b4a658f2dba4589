"""Policy definitions — static role/resource topology plus a rules hook.

An application declares its access policy by subclassing
:class:`PolicyDefinition`, filling the ``config`` class attribute with its
roles and resource tree, and implementing :meth:`PolicyDefinition.load_rules`
to register ``allow``/``deny`` rules.  The engine is built on first use,
exactly once, and then cached for the lifetime of the instance.

Example
-------
::

    class AppPolicy(PolicyDefinition):
        config = {
            "roles": {
                "ROLE_USER": {"name": "User", "inherits": []},
                "ROLE_ADMIN": {"name": "Admin", "inherits": ["ROLE_USER"]},
            },
            "resources": {
                "R_USER_PROFILE": {
                    "name": "User profile",
                    "children": {"R_USER_CHANGE_OWN_PASSWORD": {"name": "Change password"}},
                },
            },
        }

        def load_rules(self, acl: AclManager) -> None:
            acl.deny()
            acl.allow("ROLE_USER", "R_USER_PROFILE")

    policy = AppPolicy()
    assert policy.is_allowed("ROLE_ADMIN", "R_USER_CHANGE_OWN_PASSWORD")
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar

from aumos_acl.acl.manager import AclManager
from aumos_acl.acl.types import ResourceLike, RoleLike

logger = logging.getLogger(__name__)

PolicyConfig = Mapping[str, Mapping[str, Any]]


class PolicyDefinition(ABC):
    """Declares an access policy and caches the engine built from it.

    Subclasses set :attr:`config` and implement :meth:`load_rules`.  The
    ``config`` mapping may contain:

    ``roles``
        ``{role_id: {"name": str, "inherits": parent_id | [parent_id, ...]}}``.  Parents
        must be declared before the roles that inherit from them.
    ``resources``
        ``{resource_id: {"name": str, "children": {...}}}``, nested to any
        depth.
    """

    config: ClassVar[PolicyConfig] = {}

    def __init__(self) -> None:
        self._manager: AclManager | None = None
        self._lock = threading.Lock()

    @abstractmethod
    def load_rules(self, acl: AclManager) -> None:
        """Register the policy's rules on a freshly built engine."""

    def get_config(self) -> PolicyConfig:
        """Return the role/resource declaration; the class ``config`` by default."""
        return type(self).config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def manager(self) -> AclManager:
        """The engine for this policy, built on first access."""
        manager = self._manager
        if manager is not None:
            return manager
        with self._lock:
            if self._manager is None:
                self._manager = self._build()
            return self._manager

    def inherits_role(
        self,
        role: RoleLike,
        inherit: RoleLike,
        only_direct: bool = False,
    ) -> bool:
        return self.manager.inherits_role(role, inherit, only_direct)

    def is_allowed(
        self,
        role: RoleLike | None = None,
        resource: ResourceLike | None = None,
        privilege: str | None = None,
    ) -> bool:
        return self.manager.is_allowed(role, resource, privilege)

    def is_allowed_any(
        self,
        roles: Iterable[RoleLike],
        resource: ResourceLike | None = None,
        privilege: str | None = None,
    ) -> bool:
        """Return True if at least one of ``roles`` is allowed."""
        return any(self.manager.is_allowed(role, resource, privilege) for role in roles)

    def get_roles_list(self) -> dict[str, str]:
        """Return ``{role_id: display name}`` in declaration order.

        Roles without a ``name`` fall back to their id.
        """
        roles = self.get_config().get("roles", {})
        return {role_id: str((spec or {}).get("name", role_id)) for role_id, spec in roles.items()}

    def get_resources_list(self) -> dict[str, str]:
        """Return ``{resource_id: display name}`` for the whole tree, depth first."""
        result: dict[str, str] = {}
        stack = list(reversed(list(self.get_config().get("resources", {}).items())))
        while stack:
            resource_id, spec = stack.pop()
            spec = spec or {}
            result[resource_id] = str(spec.get("name", resource_id))
            stack.extend(reversed(list((spec.get("children") or {}).items())))
        return result

    def reset(self) -> None:
        """Drop the cached engine so the next access rebuilds it."""
        with self._lock:
            self._manager = None

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build(self) -> AclManager:
        manager = AclManager()
        self._load_roles(manager, self.get_config().get("roles", {}))
        self._load_resources(manager, self.get_config().get("resources", {}))
        self.load_rules(manager)
        logger.info(
            "Built ACL for %s: %d roles, %d resources, %d rules",
            type(self).__name__,
            len(manager.get_roles()),
            len(manager.get_resources()),
            manager.rule_count,
        )
        return manager

    @staticmethod
    def _load_roles(manager: AclManager, roles: Mapping[str, Mapping[str, Any]]) -> None:
        for role_id, spec in roles.items():
            manager.add_role(role_id, (spec or {}).get("inherits"))

    @staticmethod
    def _load_resources(
        manager: AclManager,
        resources: Mapping[str, Mapping[str, Any]],
        parent: str | None = None,
    ) -> None:
        stack = [(resource_id, spec, parent) for resource_id, spec in reversed(list(resources.items()))]
        while stack:
            resource_id, spec, parent_id = stack.pop()
            manager.add_resource(resource_id, parent_id)
            children = (spec or {}).get("children") or {}
            stack.extend(
                (child_id, child_spec, resource_id)
                for child_id, child_spec in reversed(list(children.items()))
            )
