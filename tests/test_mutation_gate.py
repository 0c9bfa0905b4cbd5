# SPDX-License-Identifier: Apache-2.0

import threading
import time

import pytest

from durability.config import GateConfig
from durability.constraint import Constraint
from durability.errors import DenyReason
from durability.gate import MutationGate, MutationKind, MutationRequest, evaluate_mutation
from durability.journal import VerdictJournal
from durability.registry import ConstraintRegistry
from durability.tiers import DurabilityTier


class ContradictingReviewer:
    """Flags every LAW constraint whose content_ref is listed as violated."""

    def __init__(self, violated: set[str]) -> None:
        self.violated = violated
        self.consulted: list[str] = []

    def contradicts(self, candidate_ref, law) -> bool:
        self.consulted.append(law.path.as_posix())
        return law.content_ref in self.violated


@pytest.mark.parametrize("kind", list(MutationKind))
@pytest.mark.parametrize("mandate", [False, True])
@pytest.mark.parametrize("target", ["POLICY/style.md", "docs/AGENT.md", "src/POLICY/rules.md"])
def test_law_paths_are_always_immutable(gate, kind, mandate, target) -> None:
    verdict = gate.evaluate_mutation(target, kind, mandate, content_ref="new")
    assert not verdict.permitted
    assert verdict.reason is DenyReason.IMMUTABLE_LAW
    assert verdict.tier is DurabilityTier.LAW


@pytest.mark.parametrize("kind", [MutationKind.EDIT, MutationKind.DELETE])
def test_contract_edit_and_delete_require_mandate(gate, kind) -> None:
    denied = gate.evaluate_mutation("Architecture/helpers.md", kind, mandate_present=False)
    assert denied.reason is DenyReason.REQUIRES_MANDATE

    permitted = gate.evaluate_mutation("Architecture/helpers.md", kind, mandate_present=True)
    assert permitted.permitted
    assert permitted.reason is None


@pytest.mark.parametrize("kind", [MutationKind.CREATE, MutationKind.EXTEND])
def test_contract_create_and_extend_do_not_need_mandate(gate, kind) -> None:
    assert gate.evaluate_mutation("src/StyleGuide.md", kind).permitted


def test_contract_create_contradicting_ancestor_law_is_denied(registry, recording_logger, tmp_path) -> None:
    registry.bootstrap(
        [
            Constraint.at("AGENT.md", "root-law"),
            Constraint.at("docs/RULES.md", "docs-law"),
            Constraint.at("src/RULES.md", "src-law"),
        ]
    )
    reviewer = ContradictingReviewer(violated={"docs-law", "src-law"})
    gate = MutationGate(
        registry, reviewer=reviewer, config=GateConfig(log_dir=tmp_path), logger=recording_logger
    )

    verdict = gate.evaluate_mutation("docs/Guide.md", "create", content_ref="draft")

    assert verdict.reason is DenyReason.CONTRADICTS_LAW
    assert verdict.detail == "contradicts_law:docs/RULES.md"
    assert "src/RULES.md" not in reviewer.consulted
    assert sorted(reviewer.consulted) == ["AGENT.md", "docs/RULES.md"]
    assert registry.get("docs/Guide.md") is None


def test_mandated_contract_edit_still_checks_law(registry, recording_logger, tmp_path) -> None:
    registry.bootstrap([Constraint.at("POLICY/naming.md", "naming-law")])
    gate = MutationGate(
        registry,
        reviewer=ContradictingReviewer(violated={"naming-law"}),
        config=GateConfig(log_dir=tmp_path),
        logger=recording_logger,
    )
    verdict = gate.evaluate_mutation("POLICY/sub/Guide.md", "edit", True)
    # The target itself contains a LAW segment, so it never reaches the law lookup.
    assert verdict.reason is DenyReason.IMMUTABLE_LAW

    registry.bootstrap([Constraint.at("NAMING.md", "naming-law")])
    verdict = gate.evaluate_mutation("docs/Guide.md", "edit", True, content_ref="rewrite")
    assert verdict.reason is DenyReason.CONTRADICTS_LAW


def test_mandated_contract_delete_skips_law_review(registry, recording_logger, tmp_path) -> None:
    registry.bootstrap([Constraint.at("NAMING.md", "naming-law")])
    reviewer = ContradictingReviewer(violated={"naming-law"})
    gate = MutationGate(registry, reviewer=reviewer, config=GateConfig(log_dir=tmp_path), logger=recording_logger)
    assert gate.evaluate_mutation("docs/Guide.md", "delete", True).permitted
    assert reviewer.consulted == []


@pytest.mark.parametrize("kind", list(MutationKind))
def test_implementation_paths_are_open(gate, kind) -> None:
    verdict = gate.evaluate_mutation("src/lib/config.yaml", kind)
    assert verdict.permitted
    assert verdict.tier is DurabilityTier.IMPLEMENTATION


def test_rename_into_claimed_contract_path_is_irreconcilable(gate, registry) -> None:
    registry.bootstrap([Constraint.at("docs/Guide.md", "guide", subject="style")])

    verdict = gate.evaluate_mutation("docs/notes.md", "edit", destination="docs/Guide.md", subject="testing")
    assert verdict.reason is DenyReason.IRRECONCILABLE

    same_subject = gate.evaluate_mutation("docs/notes.md", "edit", destination="docs/Guide.md", subject="style")
    assert same_subject.permitted


def test_rename_into_claimed_law_path_is_immutable(gate, registry) -> None:
    registry.bootstrap([Constraint.at("AGENT.md", "law")])
    verdict = gate.evaluate_mutation("notes.md", "edit", destination="AGENT.md", subject="scratch")
    assert verdict.reason is DenyReason.IMMUTABLE_LAW


def test_rename_without_subject_cannot_take_over_a_contract(gate, registry) -> None:
    registry.bootstrap([Constraint.at("src/StyleGuide.md", "style-v1")])
    generation = registry.generation

    verdict = gate.evaluate_mutation("src/notes.md", "edit", destination="src/StyleGuide.md", content_ref="hijack")
    assert verdict.reason is DenyReason.IRRECONCILABLE
    assert registry.generation == generation
    assert registry.get("src/StyleGuide.md").content_ref == "style-v1"


def test_rename_without_subject_onto_registered_law_is_immutable(gate, registry) -> None:
    registry.bootstrap([Constraint.at("docs/AGENT.md", "law")])
    verdict = gate.evaluate_mutation("docs/notes.md", "edit", destination="docs/AGENT.md", content_ref="hijack")
    assert verdict.reason is DenyReason.IMMUTABLE_LAW
    assert registry.get("docs/AGENT.md").content_ref == "law"


def test_move_keeps_origin_subject_and_releases_origin_path(gate, registry) -> None:
    registry.bootstrap([Constraint.at("drafts/Guide.md", "v1", subject="style")])

    verdict = gate.evaluate_mutation(
        "drafts/Guide.md", "edit", True, destination="docs/Guide.md", content_ref="v2"
    )
    assert verdict.permitted
    assert registry.get("drafts/Guide.md") is None
    moved = registry.get("docs/Guide.md")
    assert moved.content_ref == "v2"
    assert moved.governs == "style"
    assert [item.path.as_posix() for item in registry.for_subject("style")] == ["docs/Guide.md"]


def test_move_of_unregistered_file_is_claimed_by_its_origin(gate, registry) -> None:
    verdict = gate.evaluate_mutation("src/notes.md", "create", destination="src/Notes.md", content_ref="n1")
    assert verdict.permitted
    assert registry.get("src/Notes.md").governs == "src/notes.md"

    repeat = gate.evaluate_mutation("src/notes.md", "edit", destination="src/Notes.md", content_ref="n2")
    assert repeat.permitted
    other = gate.evaluate_mutation("src/other.md", "edit", destination="src/Notes.md", content_ref="n3")
    assert other.reason is DenyReason.IRRECONCILABLE


def test_rename_into_unclaimed_law_path_is_permitted_but_not_registered(gate, registry, recording_logger) -> None:
    verdict = gate.evaluate_mutation("notes.md", "edit", destination="AGENT.md", content_ref="promoted")
    assert verdict.permitted
    assert registry.get("AGENT.md") is None
    assert any(record["msg"] == "law_registration_requires_bootstrap" for record in recording_logger.records)


def test_permit_with_content_commits_constraint(gate, registry) -> None:
    verdict = gate.evaluate_mutation("src/StyleGuide.md", "create", content_ref="sha256:abc", subject="style")
    assert verdict.permitted
    stored = registry.get("src/StyleGuide.md")
    assert stored is not None
    assert stored.content_ref == "sha256:abc"
    assert stored.governs == "style"


def test_delete_and_denials_leave_registry_untouched(gate, registry) -> None:
    registry.bootstrap([Constraint.at("src/util.py", "v1")])
    generation = registry.generation
    gate.evaluate_mutation("src/util.py", "delete")
    gate.evaluate_mutation("Architecture/helpers.md", "edit", content_ref="v2")
    assert registry.generation == generation
    assert registry.get("src/util.py").content_ref == "v1"


def test_evaluate_is_idempotent_for_fixed_registry(gate, registry) -> None:
    registry.bootstrap([Constraint.at("docs/Guide.md", "guide")])
    request = MutationRequest.build("Architecture/helpers.md", MutationKind.EDIT, mandate_present=False)
    first = gate.evaluate(request)
    second = gate.evaluate(request)
    assert first == second
    assert gate.check(request) == first

    create = MutationRequest.build("docs/api/Guide.md", "create", content_ref="x")
    assert gate.evaluate(create) == gate.evaluate(create)


def test_malformed_target_is_denied(gate) -> None:
    verdict = gate.evaluate_mutation("", "edit")
    assert verdict.reason is DenyReason.MALFORMED_PATH
    assert gate.evaluate_mutation([], "create").reason is DenyReason.MALFORMED_PATH


def test_register_uses_create_then_configured_kind(registry, recording_logger, tmp_path) -> None:
    edit_gate = MutationGate(registry, config=GateConfig(log_dir=tmp_path), logger=recording_logger)
    assert edit_gate.register("docs/Guide.md", "v1").permitted
    assert edit_gate.register("docs/Guide.md", "v2").reason is DenyReason.REQUIRES_MANDATE
    assert edit_gate.register("docs/Guide.md", "v2", mandate_present=True).permitted
    assert registry.get("docs/Guide.md").content_ref == "v2"

    extend_gate = MutationGate(
        registry, config=GateConfig(reregistration_kind="extend", log_dir=tmp_path), logger=recording_logger
    )
    assert extend_gate.register("docs/Guide.md", "v3").permitted
    assert registry.get("docs/Guide.md").content_ref == "v3"


def test_every_verdict_is_audited(gate, recording_logger) -> None:
    gate.evaluate_mutation("POLICY/style.md", "edit", actor="agent-7")
    gate.evaluate_mutation("src/app.py", "edit")
    audits = recording_logger.audits()
    assert [record["outcome"] for record in audits] == ["deny", "permit"]
    assert audits[0]["actor"] == "agent-7"
    assert audits[0]["reason"] == "immutable_law"
    assert audits[0]["tier"] == "law"
    assert audits[0]["target"] == "POLICY/style.md"
    assert audits[0]["generation"] == audits[1]["generation"] == gate.registry.generation


def test_verdicts_are_journaled_when_configured(registry, recording_logger, tmp_path) -> None:
    journal = VerdictJournal(tmp_path / "verdicts.jsonl")
    gate = MutationGate(registry, config=GateConfig(log_dir=tmp_path), logger=recording_logger, journal=journal)
    gate.evaluate_mutation("POLICY/style.md", "delete")
    gate.evaluate_mutation("src/app.py", "create", content_ref="x")

    entries = journal.entries()
    assert [entry["payload"]["verdict"]["outcome"] for entry in entries] == ["deny", "permit"]
    assert journal.verify() == 2


def test_journal_path_from_config(registry, recording_logger, tmp_path) -> None:
    config = GateConfig(log_dir=tmp_path, journal_path=tmp_path / "j.jsonl")
    gate = MutationGate(registry, config=config, logger=recording_logger)
    gate.evaluate_mutation("src/app.py", "edit")
    assert gate.journal is not None
    assert gate.journal.verify() == 1


def test_module_level_entry_point_accepts_injected_gate(gate) -> None:
    assert evaluate_mutation("docs/AGENT.md", "extend", True, gate=gate).reason is DenyReason.IMMUTABLE_LAW


def test_concurrent_registrations_are_all_applied(gate, registry) -> None:
    def _worker(index: int) -> None:
        for offset in range(20):
            gate.evaluate_mutation(f"src/w{index}/file{offset}.py", "create", content_ref=f"{index}:{offset}")

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(registry) == 160
    assert registry.generation == 160


class SlowLookupRegistry(ConstraintRegistry):
    """Widens the gap between looking a path up and deciding on it."""

    def get(self, path):
        found = super().get(path)
        time.sleep(0.02)
        return found


def test_concurrent_register_of_new_path_admits_one_create(recording_logger, tmp_path) -> None:
    registry = SlowLookupRegistry(logger=recording_logger)
    gate = MutationGate(registry, config=GateConfig(log_dir=tmp_path), logger=recording_logger)
    start = threading.Barrier(4)
    verdicts = []

    def _worker(index: int) -> None:
        start.wait()
        verdicts.append(gate.register("docs/Guide.md", f"v{index}"))

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(verdict.permitted for verdict in verdicts) == 1
    assert [verdict.reason for verdict in verdicts if not verdict.permitted] == [DenyReason.REQUIRES_MANDATE] * 3
    assert registry.generation == 1


def test_journal_follows_commit_order_under_concurrency(registry, recording_logger, tmp_path) -> None:
    journal = VerdictJournal(tmp_path / "verdicts.jsonl")
    gate = MutationGate(registry, config=GateConfig(log_dir=tmp_path), logger=recording_logger, journal=journal)

    def _worker(index: int) -> None:
        for offset in range(10):
            gate.evaluate_mutation(f"src/w{index}/file{offset}.py", "create", content_ref=f"{index}:{offset}")

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    journaled = [entry["payload"]["generation"] for entry in journal.entries()]
    audited = [record["generation"] for record in recording_logger.audits()]
    assert journaled == list(range(1, 41))
    assert audited == journaled
    assert journal.verify() == 40
