"""aumos-acl — role/resource access control lists with inheritance and assertions.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import aumos_acl as acl
>>> manager = acl.AclManager()
>>> _ = manager.add_role("user").add_role("admin", parents=["user"])
>>> _ = manager.add_resource("profile").allow("user", "profile")
>>> manager.is_allowed("admin", "profile")
True
>>> manager.is_allowed("admin")
False
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
from aumos_acl.acl.manager import AclManager
from aumos_acl.acl.resources import ResourceTree
from aumos_acl.acl.roles import RoleRegistry
from aumos_acl.acl.rules import RuleEntry, RuleTable
from aumos_acl.acl.types import Operation, Resource, Role, Rule, RuleType, Scope

# ---------------------------------------------------------------------------
# Assertions
# ---------------------------------------------------------------------------
from aumos_acl.acl.assertions import (
    AllOf,
    AnyOf,
    Assertion,
    CallableAssertion,
    Negate,
    all_of,
    any_of,
    negate,
)

# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------
from aumos_acl.policy.definition import PolicyDefinition
from aumos_acl.policy.loader import DocumentPolicy, PolicyConfigError, PolicyLoader
from aumos_acl.policy.schema import PolicyDocument
from aumos_acl.policy.voter import AccessSubject, AccessVoter, Vote

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from aumos_acl.errors import (
    AclConfigurationError,
    AclError,
    AclInvariantError,
    AclLookupError,
    DuplicateResourceError,
    DuplicateRoleError,
    InvalidRuleError,
    ResourceNotFoundError,
    RoleCycleError,
    UnknownParentError,
    UnknownResourceError,
    UnknownRoleError,
)

__all__ = [
    "__version__",
    # Engine
    "AclManager",
    "ResourceTree",
    "RoleRegistry",
    "RuleEntry",
    "RuleTable",
    "Operation",
    "Resource",
    "Role",
    "Rule",
    "RuleType",
    "Scope",
    # Assertions
    "AllOf",
    "AnyOf",
    "Assertion",
    "CallableAssertion",
    "Negate",
    "all_of",
    "any_of",
    "negate",
    # Policies
    "AccessSubject",
    "AccessVoter",
    "DocumentPolicy",
    "PolicyConfigError",
    "PolicyDefinition",
    "PolicyDocument",
    "PolicyLoader",
    "Vote",
    # Errors
    "AclConfigurationError",
    "AclError",
    "AclInvariantError",
    "AclLookupError",
    "DuplicateResourceError",
    "DuplicateRoleError",
    "InvalidRuleError",
    "ResourceNotFoundError",
    "RoleCycleError",
    "UnknownParentError",
    "UnknownResourceError",
    "UnknownRoleError",
]
