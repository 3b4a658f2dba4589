"""Test that the quickstart API works for aumos-acl."""
from __future__ import annotations


def test_quickstart_import() -> None:
    from aumos_acl import AclManager

    acl = AclManager()
    assert acl is not None


def test_quickstart_default_deny() -> None:
    from aumos_acl import AclManager

    acl = AclManager()
    assert acl.is_allowed() is False


def test_quickstart_allow() -> None:
    import aumos_acl as acl_pkg

    acl = acl_pkg.AclManager()
    acl.add_role("user").add_resource("profile").allow("user", "profile")
    assert acl.is_allowed("user", "profile") is True


def test_quickstart_yaml_policy() -> None:
    from aumos_acl import PolicyLoader

    policy = PolicyLoader().load_from_yaml_string(
        "roles: {ROLE_USER: {}}\nresources: {R_HOME: {}}\n"
        "rules: [{type: allow, roles: ROLE_USER, resources: R_HOME}]\n"
    )
    assert policy.is_allowed("ROLE_USER", "R_HOME") is True


def test_version_exposed() -> None:
    import aumos_acl

    assert aumos_acl.__version__ == "0.1.0"
