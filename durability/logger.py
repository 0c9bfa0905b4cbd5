# SPDX-License-Identifier: Apache-2.0
"""
JSON-lines decision log for the gate and the registry.

Each line is one object with the fixed keys ``ts``, ``level``, ``component``
and ``event``. The decision fields emitted by the gate and the registry
(``path``, ``target``, ``tier``, ``outcome``, ``reason``, ``generation``) sit at
the top level next to them; every other keyword goes under ``fields``. Keys
naming a secret are masked before the line is written.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from durability.interfaces import ILogger

AUDIT_LEVEL = 25
logging.addLevelName(AUDIT_LEVEL, "AUDIT")

DEFAULT_LOG_DIR = Path("data/logs")
MAX_LOG_BYTES = 5 * 1024 * 1024
KEPT_ROTATIONS = 3

DECISION_FIELDS = ("path", "target", "tier", "outcome", "reason", "generation")
SECRET_MARKERS = ("token", "secret", "password", "credential")
MASK = "<masked>"

_LOGGERS: Dict[tuple[str, Path], "DecisionLogger"] = {}


def mask_secrets(fields: Mapping[str, Any]) -> Dict[str, Any]:
    masked: Dict[str, Any] = {}
    for key, value in fields.items():
        lowered = key.lower()
        masked[key] = MASK if any(marker in lowered for marker in SECRET_MARKERS) else value
    return masked


def default_log_dir() -> Path:
    raw = os.getenv("DURABILITY_LOG_DIR", "").strip()
    return Path(raw) if raw else DEFAULT_LOG_DIR


class DecisionRecordFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        fields = dict(getattr(record, "fields", {}))
        line: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", record.name),
            "event": record.getMessage(),
        }
        for key in DECISION_FIELDS:
            if key in fields:
                line[key] = fields.pop(key)
        line["fields"] = fields
        return json.dumps(line, ensure_ascii=False, default=str)


class DecisionLogger(ILogger):
    """Writes one component's events to a rotating JSONL file."""

    def __init__(self, component: str, log_file: Path) -> None:
        self.component = component
        self.log_path = Path(log_file).absolute()
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

        # One stdlib logger per destination file, detached from the root logger.
        self._logger = logging.getLogger(f"durability.{component}.{self.log_path.as_posix().replace('.', '_')}")
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        if not self._logger.handlers:
            handler = RotatingFileHandler(
                self.log_path, maxBytes=MAX_LOG_BYTES, backupCount=KEPT_ROTATIONS, encoding="utf-8"
            )
            handler.setFormatter(DecisionRecordFormatter())
            self._logger.addHandler(handler)

    def _emit(self, level: int, event: str, fields: Mapping[str, Any]) -> None:
        self._logger.log(level, event, extra={"component": self.component, "fields": mask_secrets(fields)})

    def info(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.INFO, msg, kwargs)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, msg, kwargs)

    def audit(self, action: str, actor: str, outcome: str, **details: Any) -> None:
        self._emit(AUDIT_LEVEL, action, {"actor": actor, "outcome": outcome, **details})

    def flush(self) -> None:
        for handler in self._logger.handlers:
            handler.flush()


def get_logger(component: str = "durability", log_file: Optional[Path] = None) -> DecisionLogger:
    """Return the shared logger for ``component`` writing to ``log_file``.

    Without ``log_file`` the file is ``<component>.jsonl`` under
    ``DURABILITY_LOG_DIR`` (``data/logs`` when unset).
    """
    destination = Path(log_file if log_file is not None else default_log_dir() / f"{component}.jsonl").absolute()
    key = (component, destination)
    if key not in _LOGGERS:
        _LOGGERS[key] = DecisionLogger(component, destination)
    return _LOGGERS[key]


__all__ = [
    "AUDIT_LEVEL",
    "DECISION_FIELDS",
    "DecisionLogger",
    "default_log_dir",
    "get_logger",
    "mask_secrets",
]
