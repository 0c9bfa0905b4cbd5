# SPDX-License-Identifier: Apache-2.0

import sys
from pathlib import Path
from typing import Any

import pytest
from hypothesis import HealthCheck, settings

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from durability.config import GateConfig  # noqa: E402
from durability.gate import MutationGate  # noqa: E402
from durability.interfaces import ILogger  # noqa: E402
from durability.registry import ConstraintRegistry  # noqa: E402

settings.register_profile("durability", suppress_health_check=[HealthCheck.function_scoped_fixture])
settings.load_profile("durability")


class RecordingLogger(ILogger):
    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []

    def info(self, msg: str, **kwargs: Any) -> None:
        self.records.append({"level": "info", "msg": msg, **kwargs})

    def debug(self, msg: str, **kwargs: Any) -> None:
        self.records.append({"level": "debug", "msg": msg, **kwargs})

    def audit(self, action: str, actor: str, outcome: str, **details: Any) -> None:
        self.records.append({"level": "audit", "msg": action, "actor": actor, "outcome": outcome, **details})

    def audits(self) -> list[dict[str, Any]]:
        return [record for record in self.records if record["level"] == "audit"]


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    for name in (
        "DURABILITY_POLICY_PATH",
        "DURABILITY_REREGISTRATION_KIND",
        "DURABILITY_JOURNAL_PATH",
        "DURABILITY_PATH_LISTING",
        "DURABILITY_MANDATE_TOKENS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DURABILITY_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def registry(recording_logger) -> ConstraintRegistry:
    return ConstraintRegistry(logger=recording_logger)


@pytest.fixture
def gate(registry, recording_logger, tmp_path) -> MutationGate:
    return MutationGate(registry, config=GateConfig(log_dir=tmp_path / "logs"), logger=recording_logger)
