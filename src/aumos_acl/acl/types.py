"""Value types shared by the ACL registries, rule table and engine.

Roles and resources are plain immutable identifiers; their graph structure
lives in :class:`~aumos_acl.acl.roles.RoleRegistry` and
:class:`~aumos_acl.acl.resources.ResourceTree`, which cross-reference nodes
by id only.

Rule storage is keyed by :class:`Scope` rather than by ``None`` so that the
wildcard is an explicit, hashable tag:

>>> Scope.of("R_PROFILE").is_wildcard
False
>>> Scope.ALL.is_wildcard
True
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from aumos_acl.acl.assertions import Assertion


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Role:
    """A role participating in inheritance; the subject of a query."""

    role_id: str

    def __str__(self) -> str:
        return self.role_id


@dataclass(frozen=True)
class Resource:
    """A protected object or category, organised in a tree."""

    resource_id: str

    def __str__(self) -> str:
        return self.resource_id


RoleLike = Role | str
ResourceLike = Resource | str


def role_id_of(role: RoleLike) -> str:
    """Return the string identifier of a role or role id."""
    if isinstance(role, Role):
        return role.role_id
    return str(role)


def resource_id_of(resource: ResourceLike) -> str:
    """Return the string identifier of a resource or resource id."""
    if isinstance(resource, Resource):
        return resource.resource_id
    return str(resource)


# ---------------------------------------------------------------------------
# Rule enums
# ---------------------------------------------------------------------------


class RuleType(str, Enum):
    """Decision carried by a rule."""

    ALLOW = "allow"
    DENY = "deny"

    def inverted(self) -> RuleType:
        """Return the opposite rule type."""
        return RuleType.DENY if self is RuleType.ALLOW else RuleType.ALLOW


class Operation(str, Enum):
    """Mutation applied by :meth:`RuleTable.set_rule`."""

    ADD = "add"
    REMOVE = "remove"


# ---------------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------------


class ScopeKind(str, Enum):
    ALL = "all"
    SPECIFIC = "specific"


@dataclass(frozen=True)
class Scope:
    """A rule scope: either one specific identifier or the wildcard.

    Attributes
    ----------
    kind:
        :attr:`ScopeKind.ALL` for the wildcard, :attr:`ScopeKind.SPECIFIC`
        otherwise.
    identifier:
        The role or resource id for specific scopes; empty for the wildcard.
    """

    kind: ScopeKind
    identifier: str = ""

    ALL: ClassVar[Scope]

    @classmethod
    def of(cls, identifier: str) -> Scope:
        return cls(kind=ScopeKind.SPECIFIC, identifier=identifier)

    @classmethod
    def from_optional(cls, identifier: str | None) -> Scope:
        """Map ``None`` to the wildcard and any id to a specific scope."""
        if identifier is None:
            return cls.ALL
        return cls.of(identifier)

    @property
    def is_wildcard(self) -> bool:
        return self.kind is ScopeKind.ALL

    def __str__(self) -> str:
        return "*" if self.is_wildcard else self.identifier


Scope.ALL = Scope(kind=ScopeKind.ALL)


# ---------------------------------------------------------------------------
# Rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    """An allow/deny decision, optionally gated by an assertion."""

    type: RuleType
    assertion: Assertion | None = None


DEFAULT_RULE = Rule(type=RuleType.DENY)
