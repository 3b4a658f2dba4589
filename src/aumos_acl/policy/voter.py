"""Access voter — decides for a subject holding several roles.

An application user usually carries a set of role ids rather than a single
role.  :class:`AccessVoter` turns an ``(attribute, target)`` authorization
request for such a subject into ``is_allowed`` calls against a
:class:`PolicyDefinition`:

- attributes listed in ``ignored_attributes`` are not handled (abstain);
- subjects holding a super role are always granted;
- inactive subjects are denied;
- with a string ``target`` the target is the resource and the attribute is
  the privilege; otherwise the attribute is the resource and every privilege
  is required;
- a resource id starting with ``role_prefix`` names a role: the subject must
  hold or inherit that role, and if a privilege was asked for, one of the
  subject's roles must also be allowed it on that resource.

Access is granted when *any* of the subject's roles is allowed.  Roles that
the policy does not declare are skipped.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from aumos_acl.policy.definition import PolicyDefinition

logger = logging.getLogger(__name__)


class Vote(int, Enum):
    """Outcome of a vote."""

    GRANTED = 1
    ABSTAIN = 0
    DENIED = -1


class Subject(Protocol):
    """Anything exposing role ids and an active flag."""

    @property
    def roles(self) -> Sequence[str]: ...

    @property
    def active(self) -> bool: ...


@dataclass(frozen=True)
class AccessSubject:
    """Minimal concrete :class:`Subject`."""

    roles: tuple[str, ...] = field(default_factory=tuple)
    active: bool = True


class AccessVoter:
    """Votes on authorization requests using a :class:`PolicyDefinition`.

    Parameters
    ----------
    policy:
        The policy that answers ``is_allowed`` / ``inherits_role``.
    super_roles:
        Role ids that bypass every check.
    ignored_attributes:
        Attributes this voter abstains on (e.g. authentication markers that
        another component handles).
    role_prefix:
        Prefix that marks a resource id as a role id.
    """

    def __init__(
        self,
        policy: PolicyDefinition,
        super_roles: Iterable[str] = (),
        ignored_attributes: Iterable[str] = (),
        role_prefix: str = "ROLE_",
    ) -> None:
        self._policy = policy
        self._super_roles = frozenset(super_roles)
        self._ignored = frozenset(ignored_attributes)
        self._role_prefix = role_prefix

    def supports(self, attribute: str) -> bool:
        return attribute not in self._ignored

    def vote(self, subject: Subject | None, attribute: str, target: object = None) -> Vote:
        """Return GRANTED, DENIED, or ABSTAIN for ``attribute`` on ``target``."""
        if not self.supports(attribute):
            return Vote.ABSTAIN
        return Vote.GRANTED if self._decide(subject, attribute, target) else Vote.DENIED

    def is_granted(self, subject: Subject | None, attribute: str, target: object = None) -> bool:
        """Boolean form of :meth:`vote`; abstaining counts as not granted."""
        return self.vote(subject, attribute, target) is Vote.GRANTED

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _decide(self, subject: Subject | None, attribute: str, target: object) -> bool:
        if subject is None:
            return False

        subject_roles = list(subject.roles)
        if self._super_roles.intersection(subject_roles):
            logger.debug("Granted %r: subject holds a super role", attribute)
            return True

        if not subject.active:
            logger.debug("Denied %r: subject is inactive", attribute)
            return False

        if isinstance(target, str):
            resource: str = target
            privilege: str | None = attribute
        else:
            resource = attribute
            privilege = None

        roles = self._known_roles(subject_roles)

        if self._role_prefix and resource.startswith(self._role_prefix):
            if not any(
                role == resource or self._inherits(role, resource) for role in roles
            ):
                return False
            if privilege is not None:
                return self._policy.is_allowed_any(roles, resource, privilege)
            return True

        return self._policy.is_allowed_any(roles, resource, privilege)

    def _known_roles(self, roles: Iterable[str]) -> list[str]:
        manager = self._policy.manager
        known: list[str] = []
        for role in roles:
            if manager.has_role(role):
                known.append(role)
            else:
                logger.debug("Skipping role %r unknown to the policy", role)
        return known

    def _inherits(self, role: str, ancestor: str) -> bool:
        if not self._policy.manager.has_role(ancestor):
            return False
        return self._policy.inherits_role(role, ancestor)
