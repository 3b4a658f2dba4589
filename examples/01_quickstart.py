#!/usr/bin/env python3
"""Example: Quickstart — aumos-acl

Minimal working example: declare roles and resources, add rules,
and ask the engine for decisions.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install aumos-acl
"""
from __future__ import annotations

import aumos_acl as acl_pkg


def main() -> None:
    print(f"aumos-acl version: {acl_pkg.__version__}")

    # Step 1: Declare roles (last parent listed has the highest priority)
    acl = acl_pkg.AclManager()
    acl.add_role("guest")
    acl.add_role("member", parents=["guest"])
    acl.add_role("moderator", parents=["member"])

    # Step 2: Declare the resource tree
    acl.add_resource("forum")
    acl.add_resource("forum.post", parent="forum")
    acl.add_resource("forum.settings", parent="forum")

    # Step 3: Rules
    acl.allow("guest", "forum", "read")
    acl.allow("member", "forum.post", ["create", "reply"])
    acl.allow("moderator", "forum")
    acl.deny("moderator", "forum.settings", "delete")
    print(f"Engine ready: {acl.rule_count} rules")

    # Step 4: Decisions
    queries = [
        ("guest", "forum.post", "read"),
        ("guest", "forum.post", "reply"),
        ("member", "forum.post", "reply"),
        ("moderator", "forum.settings", "edit"),
        ("moderator", "forum.settings", "delete"),
        ("moderator", "forum.settings", None),
    ]
    print("\nDecisions:")
    for role, resource, privilege in queries:
        allowed = acl.is_allowed(role, resource, privilege)
        icon = "ALLOW" if allowed else "DENY"
        print(f"  [{icon}] {role} -> {resource} ({privilege or 'all privileges'})")

    # Step 5: Conditional rules
    def thread_is_open(manager, role, resource, privilege):  # type: ignore[no-untyped-def]
        return resource is not None and resource.resource_id == "forum.post"

    acl.allow("member", "forum.post", "pin", assertion=thread_is_open)
    print(f"\nmember may pin: {acl.is_allowed('member', 'forum.post', 'pin')}")


if __name__ == "__main__":
    main()
