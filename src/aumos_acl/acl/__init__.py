"""Role/resource ACL engine.

Provides :class:`AclManager`, which combines a role inheritance DAG, a
resource tree and a rule table to answer ``is_allowed`` queries.

Example
-------
::

    from aumos_acl.acl import AclManager

    acl = AclManager()
    acl.add_role("user")
    acl.add_resource("profile")
    acl.allow("user", "profile")
    assert acl.is_allowed("user", "profile")
"""
from __future__ import annotations

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
from aumos_acl.acl.resources import ResourceTree
from aumos_acl.acl.roles import RoleRegistry
from aumos_acl.acl.rules import QueryContext, RuleEntry, RuleSet, RuleTable
from aumos_acl.acl.types import (
    Operation,
    Resource,
    Role,
    Rule,
    RuleType,
    Scope,
    ScopeKind,
)

__all__ = [
    # Engine
    "AclManager",
    "ResourceTree",
    "RoleRegistry",
    "RuleTable",
    "RuleSet",
    "RuleEntry",
    "QueryContext",
    # Value types
    "Operation",
    "Resource",
    "Role",
    "Rule",
    "RuleType",
    "Scope",
    "ScopeKind",
    # Assertions
    "Assertion",
    "CallableAssertion",
    "AllOf",
    "AnyOf",
    "Negate",
    "all_of",
    "any_of",
    "as_assertion",
    "negate",
]
