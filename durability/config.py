# SPDX-License-Identifier: Apache-2.0
"""
Gate configuration.

Values come from an optional JSON policy document (validated against
``schemas/durability_policy.v1.json``) and are then overridden by
``DURABILITY_*`` environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from jsonschema import Draft202012Validator

from durability.errors import ConfigError
from durability.logger import DEFAULT_LOG_DIR

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "durability_policy.v1.json"
POLICY_SCHEMA_VERSION = "1.0"
REREGISTRATION_KINDS = ("edit", "extend")
MANDATE_SCOPE = "mandate:grant"

ENV_POLICY_PATH = "DURABILITY_POLICY_PATH"
ENV_REREGISTRATION_KIND = "DURABILITY_REREGISTRATION_KIND"
ENV_JOURNAL_PATH = "DURABILITY_JOURNAL_PATH"
ENV_LOG_DIR = "DURABILITY_LOG_DIR"
ENV_PATH_LISTING = "DURABILITY_PATH_LISTING"
ENV_MANDATE_TOKENS = "DURABILITY_MANDATE_TOKENS"


@dataclass(frozen=True)
class GateConfig:
    reregistration_kind: str = "edit"
    journal_path: Path | None = None
    log_dir: Path = DEFAULT_LOG_DIR
    path_listing: Path | None = None
    mandate_tokens: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def grants_mandate(self, token: str | None) -> bool:
        if not token:
            return False
        return MANDATE_SCOPE in self.mandate_tokens.get(token, ())


def _policy_validator() -> Draft202012Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def validate_policy_document(document: Any) -> list[str]:
    errors = sorted(_policy_validator().iter_errors(document), key=lambda err: list(err.path))
    return [f"{'/'.join(str(p) for p in err.path) or '<root>'}:{err.message}" for err in errors]


def load_policy_document(path: Path) -> Dict[str, Any]:
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"policy_unreadable:{path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"policy_invalid_json:{exc.msg}") from exc
    errors = validate_policy_document(document)
    if errors:
        raise ConfigError("policy_schema_invalid:" + ";".join(errors))
    return document


def _parse_mandate_tokens(raw: str) -> Dict[str, tuple[str, ...]]:
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{ENV_MANDATE_TOKENS}_invalid_json") from exc
    if not isinstance(decoded, dict):
        raise ConfigError(f"{ENV_MANDATE_TOKENS}_must_be_object")
    tokens: Dict[str, tuple[str, ...]] = {}
    for token, scopes in decoded.items():
        if isinstance(scopes, str):
            scopes = [scopes]
        if not isinstance(scopes, list):
            raise ConfigError(f"{ENV_MANDATE_TOKENS}_scopes_must_be_list")
        tokens[str(token)] = tuple(str(scope) for scope in scopes)
    return tokens


def _require_kind(value: str) -> str:
    kind = value.strip().lower()
    if kind not in REREGISTRATION_KINDS:
        raise ConfigError(f"reregistration_kind_invalid:{value}")
    return kind


def load_config(path: Path | None = None, env: Mapping[str, str] | None = None) -> GateConfig:
    environ = os.environ if env is None else env
    config = GateConfig()

    policy_path = path or (Path(environ[ENV_POLICY_PATH]) if environ.get(ENV_POLICY_PATH, "").strip() else None)
    if policy_path is not None:
        document = load_policy_document(policy_path)
        config = replace(
            config,
            reregistration_kind=document.get("reregistration_kind", config.reregistration_kind),
            journal_path=Path(document["journal_path"]) if document.get("journal_path") else None,
            log_dir=Path(document.get("log_dir") or config.log_dir),
            path_listing=Path(document["path_listing"]) if document.get("path_listing") else None,
        )

    if environ.get(ENV_REREGISTRATION_KIND, "").strip():
        config = replace(config, reregistration_kind=_require_kind(environ[ENV_REREGISTRATION_KIND]))
    if environ.get(ENV_JOURNAL_PATH, "").strip():
        config = replace(config, journal_path=Path(environ[ENV_JOURNAL_PATH].strip()))
    if environ.get(ENV_LOG_DIR, "").strip():
        config = replace(config, log_dir=Path(environ[ENV_LOG_DIR].strip()))
    if environ.get(ENV_PATH_LISTING, "").strip():
        config = replace(config, path_listing=Path(environ[ENV_PATH_LISTING].strip()))
    if environ.get(ENV_MANDATE_TOKENS, "").strip():
        config = replace(config, mandate_tokens=_parse_mandate_tokens(environ[ENV_MANDATE_TOKENS]))
    return config


__all__ = [
    "GateConfig",
    "MANDATE_SCOPE",
    "REREGISTRATION_KINDS",
    "load_config",
    "load_policy_document",
    "validate_policy_document",
]
