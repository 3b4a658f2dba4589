#!/usr/bin/env python3
"""Example: YAML policies and the access voter — aumos-acl

Loads an access policy from YAML, resolves a named assertion, and votes on
requests for users holding several roles.

Usage:
    python examples/02_yaml_policy.py

Requirements:
    pip install aumos-acl
"""
from __future__ import annotations

from aumos_acl import AccessSubject, AccessVoter, PolicyLoader

_POLICY_YAML = """
version: "1"
name: billing
roles:
  ROLE_USER: {name: User}
  ROLE_ACCOUNTANT: {name: Accountant, inherits: [ROLE_USER]}
  ROLE_ADMIN: {name: Administrator, inherits: [ROLE_ACCOUNTANT]}
resources:
  R_INVOICE:
    name: Invoices
    children:
      R_INVOICE_EXPORT: {name: Export invoices}
rules:
  - type: deny
  - type: allow
    roles: ROLE_USER
    resources: R_INVOICE
    privileges: view
    assertion: own_invoice
  - type: allow
    roles: ROLE_ACCOUNTANT
    resources: R_INVOICE
  - type: deny
    roles: ROLE_ACCOUNTANT
    resources: R_INVOICE_EXPORT
    privileges: delete
"""

_CURRENT_USER_OWNS_INVOICE = True


def own_invoice(acl, role, resource, privilege):  # type: ignore[no-untyped-def]
    return _CURRENT_USER_OWNS_INVOICE


def main() -> None:
    loader = PolicyLoader(assertions={"own_invoice": own_invoice})
    policy = loader.load_from_yaml_string(_POLICY_YAML)
    print(f"Loaded policy '{policy.document.name}' with roles {list(policy.get_roles_list())}")

    voter = AccessVoter(policy, super_roles=["ROLE_ROOT"])
    subjects = {
        "alice": AccessSubject(roles=("ROLE_USER",)),
        "bob": AccessSubject(roles=("ROLE_USER", "ROLE_ACCOUNTANT")),
        "carol": AccessSubject(roles=("ROLE_ADMIN",), active=False),
    }
    requests = [
        ("view", "R_INVOICE"),
        ("edit", "R_INVOICE"),
        ("delete", "R_INVOICE_EXPORT"),
    ]

    for name, subject in subjects.items():
        print(f"\n{name} {list(subject.roles)}:")
        for privilege, resource in requests:
            vote = voter.vote(subject, privilege, resource)
            print(f"  {privilege:<7} {resource:<17} {vote.name}")


if __name__ == "__main__":
    main()
