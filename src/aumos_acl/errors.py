"""Exception taxonomy for the ACL engine.

Three families are distinguished:

- :class:`AclConfigurationError` — the caller built an inconsistent policy
  (duplicate ids, unknown parents, self-inheritance, bad rule type).
- :class:`AclLookupError` — a rule or query referenced an identifier that is
  not registered.
- :class:`AclInvariantError` — the engine reached a state its algorithm
  assumes impossible.  This signals a bug, not bad input.

``is_allowed`` never produces a soft "unknown" answer; only identifier
lookups fail.
"""
from __future__ import annotations


class AclError(Exception):
    """Base class for every error raised by aumos-acl."""


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class AclConfigurationError(AclError, ValueError):
    """Raised when roles, resources or rules are declared inconsistently."""


class DuplicateRoleError(AclConfigurationError):
    """Raised when a role id is registered twice.

    Attributes
    ----------
    role_id:
        The identifier that already exists.
    """

    def __init__(self, role_id: str) -> None:
        self.role_id = role_id
        super().__init__(f"Role id '{role_id}' already exists in the registry")


class DuplicateResourceError(AclConfigurationError):
    """Raised when a resource id is registered twice."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(f"Resource id '{resource_id}' already exists in the ACL")


class UnknownParentError(AclConfigurationError):
    """Raised when a declared parent role or resource has not been registered.

    Attributes
    ----------
    kind:
        ``"role"`` or ``"resource"``.
    parent_id:
        The missing parent identifier.
    child_id:
        The identifier that was being registered.
    """

    def __init__(self, kind: str, parent_id: str, child_id: str) -> None:
        self.kind = kind
        self.parent_id = parent_id
        self.child_id = child_id
        super().__init__(
            f"Parent {kind} id '{parent_id}' of '{child_id}' does not exist"
        )


class RoleCycleError(AclConfigurationError):
    """Raised when a role would inherit from itself."""

    def __init__(self, role_id: str) -> None:
        self.role_id = role_id
        super().__init__(f"Role '{role_id}' cannot inherit from itself")


class InvalidRuleError(AclConfigurationError):
    """Raised for an unsupported rule type or rule operation."""


# ---------------------------------------------------------------------------
# Lookup errors
# ---------------------------------------------------------------------------


class AclLookupError(AclError, LookupError):
    """Raised when an identifier is not registered."""


class UnknownRoleError(AclLookupError):
    """Raised when a role id is not present in the registry."""

    def __init__(self, role_id: str) -> None:
        self.role_id = role_id
        super().__init__(f"Role '{role_id}' not found")


class UnknownResourceError(AclLookupError):
    """Raised when a resource id is not present in the tree."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(f"Resource '{resource_id}' not found")


class ResourceNotFoundError(UnknownResourceError):
    """Raised when removing a resource that does not exist."""


# ---------------------------------------------------------------------------
# Invariant violations
# ---------------------------------------------------------------------------


class AclInvariantError(AclError, RuntimeError):
    """Raised when the engine's own bookkeeping is inconsistent."""
