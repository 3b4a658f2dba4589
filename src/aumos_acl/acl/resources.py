"""Resource tree — single-parent hierarchy of protected resources.

Rules attached to a resource are inherited by its descendants unless a more
specific rule exists lower in the tree.  Nodes reference each other by id.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from aumos_acl.acl.types import Resource, ResourceLike, resource_id_of
from aumos_acl.errors import (
    DuplicateResourceError,
    ResourceNotFoundError,
    UnknownParentError,
    UnknownResourceError,
)

logger = logging.getLogger(__name__)


@dataclass
class _ResourceNode:
    resource: Resource
    parent: str | None = None
    children: list[str] = field(default_factory=list)


class ResourceTree:
    """Owns resource identifiers and their parent/child links."""

    def __init__(self) -> None:
        self._resources: dict[str, _ResourceNode] = {}

    def add(
        self,
        resource: ResourceLike,
        parent: ResourceLike | None = None,
    ) -> ResourceTree:
        """Register ``resource`` under ``parent`` (or as a root).

        Raises
        ------
        DuplicateResourceError
            If the resource is already registered.
        UnknownParentError
            If ``parent`` is given but not registered.
        """
        resource_id = resource_id_of(resource)
        if resource_id in self._resources:
            raise DuplicateResourceError(resource_id)

        parent_id: str | None = None
        if parent is not None:
            parent_id = resource_id_of(parent)
            if parent_id not in self._resources:
                raise UnknownParentError("resource", parent_id, resource_id)
            self._resources[parent_id].children.append(resource_id)

        self._resources[resource_id] = _ResourceNode(
            resource=resource if isinstance(resource, Resource) else Resource(resource_id),
            parent=parent_id,
        )
        logger.debug("Registered resource %r under %r", resource_id, parent_id)
        return self

    def remove(self, resource: ResourceLike) -> list[str]:
        """Remove ``resource`` and its whole subtree.

        Returns
        -------
        list[str]
            Ids of every removed resource, the requested one first.

        Raises
        ------
        ResourceNotFoundError
            If the resource is not registered.
        """
        resource_id = resource_id_of(resource)
        if resource_id not in self._resources:
            raise ResourceNotFoundError(resource_id)

        parent_id = self._resources[resource_id].parent
        if parent_id is not None:
            self._resources[parent_id].children.remove(resource_id)

        removed: list[str] = []
        stack = [resource_id]
        while stack:
            current = stack.pop()
            node = self._resources.pop(current)
            removed.append(current)
            stack.extend(reversed(node.children))
        logger.debug("Removed resource subtree %s", removed)
        return removed

    def remove_all(self) -> list[str]:
        """Remove every resource, returning the removed ids."""
        removed = list(self._resources)
        self._resources.clear()
        return removed

    def get(self, resource: ResourceLike) -> Resource:
        return self._resources[self._require(resource)].resource

    def has(self, resource: ResourceLike) -> bool:
        return resource_id_of(resource) in self._resources

    def parent_of(self, resource: ResourceLike) -> str | None:
        """Return the parent id of ``resource``, or ``None`` for a root."""
        return self._resources[self._require(resource)].parent

    def children_of(self, resource: ResourceLike) -> list[str]:
        return list(self._resources[self._require(resource)].children)

    def ancestors(self, resource: ResourceLike) -> list[str]:
        """Return the ancestor ids of ``resource``, nearest first."""
        chain: list[str] = []
        parent_id = self.parent_of(resource)
        while parent_id is not None:
            chain.append(parent_id)
            parent_id = self._resources[parent_id].parent
        return chain

    def inherits(
        self,
        resource: ResourceLike,
        ancestor: ResourceLike,
        only_direct: bool = False,
    ) -> bool:
        """Return True if ``resource`` descends from ``ancestor``.

        With ``only_direct`` the ancestor must be the immediate parent.
        """
        resource_id = self._require(resource)
        ancestor_id = self._require(ancestor)

        parent_id = self._resources[resource_id].parent
        if parent_id is None:
            return False
        if parent_id == ancestor_id:
            return True
        if only_direct:
            return False

        while parent_id is not None:
            if parent_id == ancestor_id:
                return True
            parent_id = self._resources[parent_id].parent
        return False

    def ids(self) -> list[str]:
        return list(self._resources)

    def __contains__(self, resource: object) -> bool:
        return isinstance(resource, (Resource, str)) and self.has(resource)

    def __iter__(self) -> Iterator[Resource]:
        return iter([node.resource for node in self._resources.values()])

    def __len__(self) -> int:
        return len(self._resources)

    def _require(self, resource: ResourceLike) -> str:
        resource_id = resource_id_of(resource)
        if resource_id not in self._resources:
            raise UnknownResourceError(resource_id)
        return resource_id
