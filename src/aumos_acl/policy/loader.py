"""YAML policy loader.

PolicyLoader reads YAML (or already-parsed dict) policy documents, validates
them against :class:`~aumos_acl.policy.schema.PolicyDocument`, and returns a
:class:`DocumentPolicy` — a :class:`PolicyDefinition` whose ``load_rules``
replays the document's rules in declaration order.

Assertions cannot be expressed in YAML, so rules refer to them by name and
the loader resolves those names from the ``assertions`` mapping it was
constructed with.

Example
-------
::

    def is_owner(acl, role, resource, privilege):
        return current_user_owns(resource)

    loader = PolicyLoader(assertions={"is_owner": is_owner})
    policy = loader.load("access_policy.yaml")
    policy.is_allowed("ROLE_USER", "R_USER_PROFILE", "edit")
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from aumos_acl.acl.assertions import Assertion, AssertionCallable, as_assertion
from aumos_acl.acl.manager import AclManager
from aumos_acl.acl.types import Operation
from aumos_acl.errors import AclConfigurationError
from aumos_acl.policy.definition import PolicyConfig, PolicyDefinition
from aumos_acl.policy.schema import PolicyDocument

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1", "1.0"])


class PolicyConfigError(AclConfigurationError):
    """Raised when a policy document is malformed or invalid.

    Attributes
    ----------
    config_path:
        The path to the policy file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class DocumentPolicy(PolicyDefinition):
    """A :class:`PolicyDefinition` backed by a validated :class:`PolicyDocument`.

    Parameters
    ----------
    document:
        The validated policy document.
    assertions:
        Resolved assertions, keyed by the names used in the document.
    source:
        Where the document came from, for logging.
    """

    def __init__(
        self,
        document: PolicyDocument,
        assertions: Mapping[str, Assertion] | None = None,
        source: str | None = None,
    ) -> None:
        super().__init__()
        self._document = document
        self._assertions = dict(assertions or {})
        self._config = document.to_config()
        self._source = source or "<dict>"

    @property
    def document(self) -> PolicyDocument:
        return self._document

    @property
    def source(self) -> str:
        return self._source

    def get_config(self) -> PolicyConfig:
        return self._config

    def load_rules(self, acl: AclManager) -> None:
        for rule in self._document.rules:
            assertion = self._assertions[rule.assertion] if rule.assertion else None
            acl.set_rule(
                Operation.ADD,
                rule.type,
                rule.role_args(),
                rule.resource_args(),
                rule.privileges,
                assertion,
            )
        logger.debug(
            "Replayed %d rules from policy %r (%s)",
            len(self._document.rules),
            self._document.name,
            self._source,
        )


class PolicyLoader:
    """Loads :class:`DocumentPolicy` instances from YAML files, strings or dicts.

    Parameters
    ----------
    assertions:
        Named assertions (or plain callables) that rules may reference.
    strict:
        When ``True``, unknown top-level keys are an error.  Default
        ``False`` (unknown keys are ignored).
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "name", "description", "roles", "resources", "rules", "metadata"]
    )

    def __init__(
        self,
        assertions: Mapping[str, Assertion | AssertionCallable] | None = None,
        strict: bool = False,
    ) -> None:
        self._assertions: dict[str, Assertion] = {}
        for name, value in (assertions or {}).items():
            assertion = as_assertion(value)
            if assertion is not None:
                self._assertions[name] = assertion
        self._strict = strict

    def register_assertion(self, name: str, assertion: Assertion | AssertionCallable) -> None:
        """Make ``assertion`` available to documents under ``name``."""
        resolved = as_assertion(assertion)
        if resolved is None:
            raise TypeError("Cannot register None as an assertion.")
        self._assertions[name] = resolved

    def load(self, config_path: str | Path) -> DocumentPolicy:
        """Load a policy from a YAML file on disk.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        PolicyConfigError
            If the file cannot be parsed or is structurally invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Policy file not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise PolicyConfigError(f"Failed to parse YAML: {exc}", str(config_path)) from exc

        return self._build_policy(raw, config_path=str(config_path))

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
    ) -> DocumentPolicy:
        """Load a policy from a YAML string."""
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise PolicyConfigError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self._build_policy(raw, config_path=config_path)

    def load_from_dict(
        self,
        config: Mapping[str, object],
        config_path: str | None = None,
    ) -> DocumentPolicy:
        """Load a policy from an already-parsed mapping."""
        return self._build_policy(config, config_path=config_path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_policy(self, raw: object, config_path: str | None) -> DocumentPolicy:
        if not isinstance(raw, Mapping):
            raise PolicyConfigError("Policy document must be a YAML mapping (dict).", config_path)

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise PolicyConfigError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    config_path,
                )

        try:
            document = PolicyDocument.model_validate(dict(raw))
        except ValidationError as exc:
            raise PolicyConfigError(f"Invalid policy document: {exc}", config_path) from exc

        if document.version not in _SUPPORTED_VERSIONS:
            raise PolicyConfigError(
                f"Unsupported policy version {document.version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        missing = sorted(
            {rule.assertion for rule in document.rules if rule.assertion}
            - set(self._assertions)
        )
        if missing:
            raise PolicyConfigError(
                f"Rules reference unregistered assertions: {missing}.", config_path
            )

        logger.info(
            "Loaded policy %r from %s: %d roles, %d rules",
            document.name,
            config_path or "<dict>",
            len(document.roles),
            len(document.rules),
        )
        return DocumentPolicy(document, self._assertions, source=config_path)
