"""Policy document schema — Pydantic v2 models for YAML access policies.

A policy document declares roles, the resource tree, and an ordered list of
rules.  Rules are replayed in order, so a later rule for the same scope
replaces an earlier one.

Example
-------
::

    version: "1"
    name: app
    roles:
      ROLE_USER: {name: User}
      ROLE_ADMIN: {name: Admin, inherits: [ROLE_USER]}
    resources:
      R_USER_PROFILE:
        name: User profile
        children:
          R_USER_CHANGE_OWN_PASSWORD: {name: Change password}
    rules:
      - type: deny
      - type: allow
        roles: ROLE_USER
        resources: R_USER_PROFILE

``roles`` and ``resources`` on a rule accept a single id or a list; omitting
them, or using ``"*"``, means all roles / all resources; the same holds for
``privileges``.
"""
from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from aumos_acl.acl.types import RuleType

WILDCARD = "*"


def _as_list(value: object) -> object:
    if isinstance(value, str):
        return [value]
    return value


# ---------------------------------------------------------------------------
# Topology
# ---------------------------------------------------------------------------


class RoleSpec(BaseModel):
    """Declaration of one role.

    Attributes
    ----------
    name:
        Human-readable label; defaults to the role id when omitted.
    inherits:
        Parent role ids, lowest priority first.
    """

    model_config = {"extra": "allow"}

    name: str | None = None
    inherits: list[str] = Field(default_factory=list)

    @field_validator("inherits", mode="before")
    @classmethod
    def coerce_inherits(cls, value: object) -> object:
        if value is None:
            return []
        return _as_list(value)


class ResourceSpec(BaseModel):
    """Declaration of one resource and its children."""

    model_config = {"extra": "allow"}

    name: str | None = None
    children: dict[str, ResourceSpec] = Field(default_factory=dict)

    @field_validator("children", mode="before")
    @classmethod
    def coerce_children(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {key: (spec if spec is not None else {}) for key, spec in value.items()}
        return value


ResourceSpec.model_rebuild()


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class RuleSpec(BaseModel):
    """One ``allow``/``deny`` statement.

    Attributes
    ----------
    type:
        ``allow`` or ``deny`` (case-insensitive).
    roles:
        Role ids; ``None`` or ``"*"`` means all roles.
    resources:
        Resource ids; ``None`` or ``"*"`` means all resources.
    privileges:
        Privilege names; ``None`` or ``"*"`` means all privileges.
    assertion:
        Name of an assertion registered with the loader.
    """

    model_config = {"extra": "forbid"}

    type: RuleType
    roles: list[str] | None = None
    resources: list[str] | None = None
    privileges: list[str] | None = None
    assertion: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("roles", "resources", "privileges", mode="before")
    @classmethod
    def coerce_lists(cls, value: object) -> object:
        return _as_list(value)

    @field_validator("privileges")
    @classmethod
    def expand_privilege_wildcard(cls, value: list[str] | None) -> list[str] | None:
        if value is None or WILDCARD not in value:
            return value
        if len(value) > 1:
            raise ValueError("'*' cannot be combined with named privileges")
        return None

    def role_args(self) -> list[str | None] | None:
        """Role arguments for :meth:`AclManager.set_rule`, ``"*"`` mapped to ``None``."""
        if self.roles is None:
            return None
        return [None if r == WILDCARD else r for r in self.roles]

    def resource_args(self) -> list[str | None] | None:
        """Resource arguments for :meth:`AclManager.set_rule`."""
        if self.resources is None:
            return None
        return [None if r == WILDCARD else r for r in self.resources]


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class PolicyDocument(BaseModel):
    """Top-level access policy document.

    Validation guarantees that the document can be loaded into an engine:
    parents are declared before their children, resource ids are unique across
    the whole tree, and every rule references declared roles and resources.
    """

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    name: str = Field(default="policy")
    description: str | None = None
    roles: dict[str, RoleSpec] = Field(default_factory=dict)
    resources: dict[str, ResourceSpec] = Field(default_factory=dict)
    rules: list[RuleSpec] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: object) -> object:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("roles", "resources", mode="before")
    @classmethod
    def coerce_empty_specs(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {key: (spec if spec is not None else {}) for key, spec in value.items()}
        return value

    @model_validator(mode="after")
    def check_references(self) -> PolicyDocument:
        declared: set[str] = set()
        for role_id, spec in self.roles.items():
            for parent_id in spec.inherits:
                if parent_id == role_id:
                    raise ValueError(f"Role '{role_id}' cannot inherit from itself")
                if parent_id not in declared:
                    raise ValueError(
                        f"Role '{role_id}' inherits from '{parent_id}', which is not "
                        "declared before it"
                    )
            declared.add(role_id)

        resource_ids: set[str] = set()
        for resource_id, _ in self.iter_resources():
            if resource_id in resource_ids:
                raise ValueError(f"Resource id '{resource_id}' is declared more than once")
            resource_ids.add(resource_id)

        for index, rule in enumerate(self.rules):
            for role_id in rule.roles or []:
                if role_id != WILDCARD and role_id not in declared:
                    raise ValueError(f"Rule {index} references unknown role '{role_id}'")
            for resource_id in rule.resources or []:
                if resource_id != WILDCARD and resource_id not in resource_ids:
                    raise ValueError(
                        f"Rule {index} references unknown resource '{resource_id}'"
                    )
        return self

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def iter_resources(self) -> Iterator[tuple[str, str | None]]:
        """Yield ``(resource_id, parent_id)`` pairs, parents before children."""
        stack: list[tuple[str, ResourceSpec, str | None]] = [
            (resource_id, spec, None)
            for resource_id, spec in reversed(list(self.resources.items()))
        ]
        while stack:
            resource_id, spec, parent_id = stack.pop()
            yield resource_id, parent_id
            stack.extend(
                (child_id, child_spec, resource_id)
                for child_id, child_spec in reversed(list(spec.children.items()))
            )

    def to_config(self) -> dict[str, Any]:
        """Return the ``roles``/``resources`` mapping used by :class:`PolicyDefinition`."""
        return {
            "roles": {
                role_id: {"name": spec.name or role_id, "inherits": list(spec.inherits)}
                for role_id, spec in self.roles.items()
            },
            "resources": {
                resource_id: _resource_config(resource_id, spec)
                for resource_id, spec in self.resources.items()
            },
        }

    @classmethod
    def from_yaml(cls, yaml_text: str) -> PolicyDocument:
        """Parse and validate a YAML policy document."""
        raw: dict[str, object] = yaml.safe_load(yaml_text) or {}
        return cls.model_validate(raw)

    def to_yaml(self) -> str:
        """Serialise the document back to YAML."""
        data = self.model_dump(mode="json", exclude_none=True)
        return yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


def _resource_config(resource_id: str, spec: ResourceSpec) -> dict[str, Any]:
    return {
        "name": spec.name or resource_id,
        "children": {
            child_id: _resource_config(child_id, child_spec)
            for child_id, child_spec in spec.children.items()
        },
    }
