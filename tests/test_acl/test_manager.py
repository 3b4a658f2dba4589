"""Tests for AclManager — registration facade and access resolution."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from aumos_acl.acl.manager import AclManager
from aumos_acl.acl.types import Operation, Resource, Role, RuleType, Scope
from aumos_acl.errors import (
    InvalidRuleError,
    ResourceNotFoundError,
    UnknownResourceError,
    UnknownRoleError,
)


def _passes(acl, role, resource, privilege) -> bool:  # type: ignore[no-untyped-def]
    return True


def _fails(acl, role, resource, privilege) -> bool:  # type: ignore[no-untyped-def]
    return False


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def acl() -> AclManager:
    """guest <- user <- admin; profile -> password; reports."""
    manager = AclManager()
    manager.add_role("guest").add_role("user", ["guest"]).add_role("admin", ["user"])
    manager.add_resource("profile").add_resource("password", "profile")
    manager.add_resource("reports")
    return manager


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestAclManagerRegistration:
    def test_roles_in_registration_order(self, acl: AclManager) -> None:
        assert acl.get_roles() == ["guest", "user", "admin"]

    def test_resources_in_registration_order(self, acl: AclManager) -> None:
        assert acl.get_resources() == ["profile", "password", "reports"]

    def test_get_role_and_resource(self, acl: AclManager) -> None:
        assert acl.get_role("user") == Role("user")
        assert acl.get_resource(Resource("password")) == Resource("password")

    def test_has_role_and_resource(self, acl: AclManager) -> None:
        assert acl.has_role("admin") is True
        assert acl.has_role("ghost") is False
        assert acl.has_resource("reports") is True
        assert acl.has_resource("ghost") is False

    def test_inherits_role(self, acl: AclManager) -> None:
        assert acl.inherits_role("admin", "guest") is True
        assert acl.inherits_role("admin", "guest", only_direct=True) is False

    def test_inherits_resource(self, acl: AclManager) -> None:
        assert acl.inherits_resource("password", "profile") is True
        assert acl.inherits_resource("reports", "profile") is False

    def test_accepts_external_registry(self) -> None:
        from aumos_acl.acl.roles import RoleRegistry

        registry = RoleRegistry().add("guest")
        manager = AclManager(role_registry=registry)
        assert manager.role_registry is registry
        assert manager.has_role("guest") is True


# ---------------------------------------------------------------------------
# Core decisions
# ---------------------------------------------------------------------------


class TestAclManagerDecisions:
    def test_default_deny(self, acl: AclManager) -> None:
        assert acl.is_allowed("user", "profile") is False
        assert acl.is_allowed("user", "profile", "read") is False
        assert acl.is_allowed() is False

    def test_direct_allow(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        assert acl.is_allowed("user", "profile") is True
        assert acl.is_allowed("user", "profile", "edit") is True
        assert acl.is_allowed("user", "reports") is False

    def test_role_inheritance(self, acl: AclManager) -> None:
        acl.allow("guest", "reports", "read")
        assert acl.is_allowed("admin", "reports", "read") is True
        assert acl.is_allowed("admin", "reports", "write") is False

    def test_inheritance_does_not_flow_upwards(self, acl: AclManager) -> None:
        acl.allow("admin", "reports")
        assert acl.is_allowed("guest", "reports") is False

    def test_resource_fallback_to_parent(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        assert acl.is_allowed("user", "password") is True

    def test_specific_resource_beats_parent(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.deny("user", "password")
        assert acl.is_allowed("user", "password") is False
        assert acl.is_allowed("user", "profile") is True

    def test_specific_role_beats_all_roles(self, acl: AclManager) -> None:
        acl.allow(None, "profile")
        acl.deny("user", "profile")
        assert acl.is_allowed("user", "profile") is False
        assert acl.is_allowed("guest", "profile") is True

    def test_specific_privilege_beats_all_privileges(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.deny("user", "profile", "delete")
        assert acl.is_allowed("user", "profile", "read") is True
        assert acl.is_allowed("user", "profile", "delete") is False

    def test_nearer_resource_beats_specific_role(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.deny(None, "password")
        assert acl.is_allowed("user", "password") is False

    def test_all_roles_query(self, acl: AclManager) -> None:
        acl.allow(None, "reports", "read")
        assert acl.is_allowed(None, "reports", "read") is True
        assert acl.is_allowed(resource="reports", privilege="write") is False

    def test_global_allow(self, acl: AclManager) -> None:
        acl.allow()
        assert acl.is_allowed("guest", "password", "anything") is True
        assert acl.is_allowed() is True

    def test_accepts_role_and_resource_objects(self, acl: AclManager) -> None:
        acl.allow(Role("user"), Resource("profile"))
        assert acl.is_allowed(Role("admin"), Resource("password")) is True

    def test_lists_of_roles_resources_and_privileges(self, acl: AclManager) -> None:
        acl.allow(["guest", "user"], ["profile", "reports"], ["read", "list"])
        assert acl.is_allowed("guest", "reports", "list") is True
        assert acl.is_allowed("user", "profile", "read") is True
        assert acl.rule_count == 1 + 2 * 2 * 2

    def test_empty_role_list_means_all_roles(self, acl: AclManager) -> None:
        acl.allow([], "reports")
        assert acl.rule_table.has_rules(Scope.of("reports"), Scope.ALL) is True
        assert acl.is_allowed("guest", "reports") is True


# ---------------------------------------------------------------------------
# Multiple inheritance
# ---------------------------------------------------------------------------


class TestAclManagerPriority:
    @pytest.fixture()
    def diamond(self) -> AclManager:
        manager = AclManager()
        manager.add_role("left").add_role("right")
        manager.add_resource("doc")
        return manager

    def test_last_parent_wins(self, diamond: AclManager) -> None:
        diamond.add_role("child", ["left", "right"])
        diamond.allow("left", "doc")
        diamond.deny("right", "doc")
        assert diamond.is_allowed("child", "doc") is False

    def test_parent_order_reversed(self, diamond: AclManager) -> None:
        diamond.add_role("child", ["right", "left"])
        diamond.allow("left", "doc")
        diamond.deny("right", "doc")
        assert diamond.is_allowed("child", "doc") is True

    def test_depth_first_through_highest_priority_parent(self, diamond: AclManager) -> None:
        diamond.add_role("grand", ["right"])
        diamond.add_role("child", ["left", "grand"])
        diamond.allow("left", "doc")
        diamond.deny("right", "doc")
        assert diamond.is_allowed("child", "doc") is False

    def test_shared_ancestor(self) -> None:
        manager = AclManager()
        manager.add_role("base").add_role("a", ["base"]).add_role("b", ["base"])
        manager.add_role("top", ["a", "b"])
        manager.add_resource("doc")
        manager.allow("base", "doc", "read")
        assert manager.is_allowed("top", "doc", "read") is True
        assert manager.is_allowed("top", "doc", "write") is False

    def test_own_rule_beats_inherited(self, diamond: AclManager) -> None:
        diamond.add_role("child", ["left"])
        diamond.allow("left", "doc")
        diamond.deny("child", "doc")
        assert diamond.is_allowed("child", "doc") is False


# ---------------------------------------------------------------------------
# All-privileges queries
# ---------------------------------------------------------------------------


class TestAclManagerAllPrivileges:
    def test_named_deny_blocks_all_privileges_query(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.deny("user", "profile", "delete")
        assert acl.is_allowed("user", "profile") is False

    def test_named_allow_only_falls_through(self, acl: AclManager) -> None:
        acl.allow("user", "profile", "read")
        assert acl.is_allowed("user", "profile") is False

    def test_named_allow_with_allow_all(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.allow("user", "profile", "read")
        assert acl.is_allowed("user", "profile") is True

    def test_named_deny_with_failing_assertion_is_ignored(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.deny("user", "profile", "delete", assertion=_fails)
        assert acl.is_allowed("user", "profile") is True


# ---------------------------------------------------------------------------
# Assertions
# ---------------------------------------------------------------------------


class TestAclManagerAssertions:
    def test_failing_assertion_on_global_rule_inverts(self, acl: AclManager) -> None:
        acl.allow(assertion=_fails)
        assert acl.is_allowed("user", "profile") is False

    def test_failing_assertion_on_global_deny_allows(self, acl: AclManager) -> None:
        acl.deny(assertion=_fails)
        assert acl.is_allowed("user", "profile") is True

    def test_passing_assertion_on_global_rule(self, acl: AclManager) -> None:
        acl.allow(assertion=_passes)
        assert acl.is_allowed("user", "profile") is True

    def test_failing_assertion_on_specific_rule_falls_through(self, acl: AclManager) -> None:
        acl.allow()
        acl.deny("user", "profile", assertion=_fails)
        assert acl.is_allowed("user", "profile") is True

    def test_failing_privilege_assertion_falls_back_to_all_privileges(
        self, acl: AclManager
    ) -> None:
        acl.allow("user", "profile")
        acl.deny("user", "profile", "edit", assertion=_fails)
        assert acl.is_allowed("user", "profile", "edit") is True

    def test_assertion_sees_queried_role_and_resource(self, acl: AclManager) -> None:
        seen: list[tuple[object, object, object]] = []

        def record(manager, role, resource, privilege):  # type: ignore[no-untyped-def]
            seen.append((role, resource, privilege))
            return True

        acl.allow("guest", "profile", "view", assertion=record)
        assert acl.is_allowed("admin", "password", "view") is True
        assert seen == [(Role("admin"), Resource("password"), "view")]

    def test_assertion_receives_engine(self, acl: AclManager) -> None:
        engines: list[AclManager] = []

        def record(manager, role, resource, privilege):  # type: ignore[no-untyped-def]
            engines.append(manager)
            return True

        acl.allow("user", "profile", assertion=record)
        acl.is_allowed("user", "profile")
        assert engines == [acl]

    def test_non_callable_assertion_raises(self, acl: AclManager) -> None:
        with pytest.raises(TypeError):
            acl.allow("user", "profile", assertion="nope")  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Rule maintenance
# ---------------------------------------------------------------------------


class TestAclManagerRuleMaintenance:
    def test_overwrite_keeps_rule_count(self, acl: AclManager) -> None:
        acl.allow("user", "profile", "read")
        count = acl.rule_count
        acl.deny("user", "profile", "read")
        assert acl.rule_count == count
        assert acl.is_allowed("user", "profile", "read") is False

    def test_scoped_removal(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.allow("user", "reports")
        acl.remove_allow("user", "profile")
        assert acl.is_allowed("user", "profile") is False
        assert acl.is_allowed("user", "reports") is True

    def test_remove_deny(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.deny("user", "password")
        acl.remove_deny("user", "password")
        assert acl.is_allowed("user", "password") is True

    def test_remove_allow_with_wildcard_resources(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.allow("user", "reports")
        acl.remove_allow("user")
        assert acl.is_allowed("user", "profile") is False
        assert acl.is_allowed("user", "reports") is False

    def test_remove_global_allow_restores_default(self, acl: AclManager) -> None:
        acl.allow()
        acl.remove_allow()
        assert acl.is_allowed("user", "profile") is False
        assert acl.rule_count == 1

    def test_fully_wildcard_remove_sweeps_every_resource(self, acl: AclManager) -> None:
        acl.allow(None, "profile")
        acl.allow(None, "reports", "read")
        acl.allow()
        acl.remove_allow()
        assert acl.is_allowed("user", "profile") is False
        assert acl.rule_table.has_rules(Scope.of("profile"), Scope.ALL) is False
        assert acl.is_allowed("user", "reports", "read") is True
        assert acl.rule_count == 2

    def test_set_rule_accepts_strings(self, acl: AclManager) -> None:
        acl.set_rule("ADD", "Allow", "user", "profile")
        assert acl.is_allowed("user", "profile") is True
        acl.set_rule(Operation.REMOVE, RuleType.ALLOW, "user", "profile")
        assert acl.is_allowed("user", "profile") is False

    def test_invalid_rule_type_raises(self, acl: AclManager) -> None:
        with pytest.raises(InvalidRuleError):
            acl.set_rule("add", "maybe", "user", "profile")

    def test_invalid_operation_raises(self, acl: AclManager) -> None:
        with pytest.raises(InvalidRuleError):
            acl.set_rule("replace", "allow", "user", "profile")

    def test_rules_listing(self, acl: AclManager) -> None:
        acl.deny("user", "profile", "delete")
        entries = acl.rules
        assert len(entries) == 2
        assert entries[-1].privilege == "delete"
        assert entries[-1].role == Scope.of("user")


# ---------------------------------------------------------------------------
# Unknown identifiers
# ---------------------------------------------------------------------------


class TestAclManagerUnknownIdentifiers:
    def test_query_unknown_role(self, acl: AclManager) -> None:
        with pytest.raises(UnknownRoleError):
            acl.is_allowed("ghost", "profile")

    def test_query_unknown_resource(self, acl: AclManager) -> None:
        with pytest.raises(UnknownResourceError):
            acl.is_allowed("user", "ghost")

    def test_rule_with_unknown_role_changes_nothing(self, acl: AclManager) -> None:
        with pytest.raises(UnknownRoleError):
            acl.allow(["user", "ghost"], "profile")
        assert acl.rule_count == 1

    def test_rule_with_unknown_resource_changes_nothing(self, acl: AclManager) -> None:
        with pytest.raises(UnknownResourceError):
            acl.allow("user", ["profile", "ghost"])
        assert acl.rule_count == 1

    def test_remove_unknown_resource(self, acl: AclManager) -> None:
        with pytest.raises(ResourceNotFoundError):
            acl.remove_resource("ghost")

    def test_remove_unknown_role(self, acl: AclManager) -> None:
        with pytest.raises(UnknownRoleError):
            acl.remove_role("ghost")


# ---------------------------------------------------------------------------
# Cascading removal
# ---------------------------------------------------------------------------


class TestAclManagerCascade:
    def test_remove_role_drops_its_rules(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.remove_role("user")
        assert acl.rule_count == 1
        acl.add_role("user")
        assert acl.is_allowed("user", "profile") is False

    def test_remove_role_breaks_inheritance(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.remove_role("user")
        assert acl.is_allowed("admin", "profile") is False

    def test_remove_resource_drops_subtree_rules(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.deny("user", "password")
        acl.allow("user", "reports")
        acl.remove_resource("profile")
        assert acl.get_resources() == ["reports"]
        assert acl.rule_count == 2

    def test_remove_resource_all(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.allow("user")
        acl.remove_resource_all()
        assert acl.get_resources() == []
        assert acl.is_allowed("user") is True

    def test_remove_role_all_keeps_all_roles_rules(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.allow(None, "reports")
        acl.remove_role_all()
        assert acl.get_roles() == []
        assert acl.rule_count == 2
        assert acl.is_allowed(None, "reports") is True


# ---------------------------------------------------------------------------
# Concurrent reads
# ---------------------------------------------------------------------------


class TestAclManagerConcurrentReads:
    def test_parallel_queries_agree(self, acl: AclManager) -> None:
        acl.allow("user", "profile")
        acl.deny("user", "password", "change")

        def query(i: int) -> tuple[bool, bool]:
            return (
                acl.is_allowed("admin", "password", "view"),
                acl.is_allowed("admin", "password", "change"),
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(query, range(200)))
        assert set(results) == {(True, False)}
