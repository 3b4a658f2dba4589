"""Access policies built on top of the ACL engine.

A policy pairs a static role/resource topology with the rules that populate
an :class:`~aumos_acl.acl.manager.AclManager`, and caches the engine it
builds.  Policies are either Python subclasses of :class:`PolicyDefinition`
or YAML documents loaded with :class:`PolicyLoader`.
"""
from __future__ import annotations

from aumos_acl.policy.definition import PolicyDefinition
from aumos_acl.policy.loader import DocumentPolicy, PolicyConfigError, PolicyLoader
from aumos_acl.policy.schema import PolicyDocument, ResourceSpec, RoleSpec, RuleSpec
from aumos_acl.policy.voter import AccessSubject, AccessVoter, Subject, Vote

__all__ = [
    "PolicyDefinition",
    # YAML documents
    "DocumentPolicy",
    "PolicyConfigError",
    "PolicyDocument",
    "PolicyLoader",
    "ResourceSpec",
    "RoleSpec",
    "RuleSpec",
    # Voting
    "AccessSubject",
    "AccessVoter",
    "Subject",
    "Vote",
]
