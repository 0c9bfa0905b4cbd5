# SPDX-License-Identifier: Apache-2.0
"""
Durability gate CLI: classify paths, resolve conflicts, and dry-run mutations.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    from durability.config import load_config
    from durability.conflict import resolve_conflict
    from durability.constraint import Constraint
    from durability.errors import DurabilityError
    from durability.gate import MutationGate, MutationKind, MutationRequest
    from durability.interfaces import JsonPathListing
    from durability.journal import JournalIntegrityError, VerdictJournal
    from durability.paths import as_classified
    from durability.tiers import classify_segment
except ModuleNotFoundError:  # pragma: no cover - fallback for direct script execution
    sys.path.append(str(Path(__file__).resolve().parents[1]))
    from durability.config import load_config
    from durability.conflict import resolve_conflict
    from durability.constraint import Constraint
    from durability.errors import DurabilityError
    from durability.gate import MutationGate, MutationKind, MutationRequest
    from durability.interfaces import JsonPathListing
    from durability.journal import JournalIntegrityError, VerdictJournal
    from durability.paths import as_classified
    from durability.tiers import classify_segment


def _format_table(rows: List[Dict[str, Any]]) -> str:
    if not rows:
        return "(no rows)"
    headers = list(rows[0].keys())
    widths = {h: max(len(h), *(len(str(row.get(h, ""))) for row in rows)) for h in headers}
    lines = [" | ".join(h.ljust(widths[h]) for h in headers)]
    lines.append("-+-".join("-" * widths[h] for h in headers))
    for row in rows:
        lines.append(" | ".join(str(row.get(h, "")).ljust(widths[h]) for h in headers))
    return "\n".join(lines)


def _render(rows: List[Dict[str, Any]], output: str) -> str:
    if output == "json":
        return json.dumps(rows if len(rows) != 1 else rows[0], indent=2)
    return _format_table(rows)


def run_classify(segments: List[str], output: str) -> str:
    rows = [{"segment": text, "tier": classify_segment(text).label} for text in segments]
    return _render(rows, output)


def run_resolve(paths: List[str], output: str) -> str:
    rows = []
    for raw in paths:
        path = as_classified(raw)
        rows.append({"path": path.as_posix(), "tier": path.tier.label})
    return _render(rows, output)


def run_conflicts(paths: List[str], output: str) -> str:
    outcome = resolve_conflict(Constraint.at(raw, content_ref="") for raw in paths)
    if output == "json":
        return json.dumps(outcome.to_dict(), indent=2)
    winner = outcome.winner.path.as_posix() if outcome.winner is not None else "IRRECONCILABLE"
    return _format_table([{"tier": outcome.tier.label, "winner": winner}])


def run_evaluate(
    target: str,
    kind: str,
    *,
    mandate: bool,
    content_ref: Optional[str],
    destination: Optional[str],
    listing: Optional[Path],
    output: str,
) -> str:
    config = load_config()
    gate = MutationGate(config=config)
    source = listing or config.path_listing
    if source is not None:
        gate.registry.load(JsonPathListing(source))
    request = MutationRequest.build(
        target,
        kind,
        mandate_present=mandate,
        content_ref=content_ref,
        destination=destination,
        actor="cli",
    )
    verdict = gate.check(request)
    return _render([{"target": request.target.as_posix(), "kind": request.kind.value, **verdict.to_dict()}], output)


def run_verify_journal(journal_path: Optional[Path], output: str) -> str:
    path = journal_path or load_config().journal_path
    if path is None:
        raise DurabilityError("journal_path_not_configured")
    count = VerdictJournal(path).verify()
    return _render([{"journal": str(path), "verified_entries": count, "ok": True}], output)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Durability gate tooling")
    parser.add_argument(
        "--action",
        choices=["classify", "resolve", "conflicts", "evaluate", "verify-journal"],
        default="resolve",
        help="Operation to run.",
    )
    parser.add_argument("values", nargs="*", help="Segments (classify) or paths (resolve, conflicts).")
    parser.add_argument("--target", help="Target path for evaluate")
    parser.add_argument("--kind", choices=[kind.value for kind in MutationKind], default="edit")
    parser.add_argument("--mandate", action="store_true", help="Attach an authenticated mandate")
    parser.add_argument("--content-ref", help="Opaque content reference for evaluate")
    parser.add_argument("--destination", help="Post-mutation path for renames")
    parser.add_argument("--listing", type=Path, help="JSON path listing used to seed the registry")
    parser.add_argument("--journal", type=Path, help="Verdict journal to verify")
    parser.add_argument("--output", choices=["json", "table"], default="table")
    args = parser.parse_args(argv)

    try:
        if args.action == "classify":
            report = run_classify(args.values, args.output)
        elif args.action == "conflicts":
            report = run_conflicts(args.values, args.output)
        elif args.action == "evaluate":
            if not args.target:
                parser.error("--target is required for evaluate")
            report = run_evaluate(
                args.target,
                args.kind,
                mandate=args.mandate,
                content_ref=args.content_ref,
                destination=args.destination,
                listing=args.listing,
                output=args.output,
            )
        elif args.action == "verify-journal":
            report = run_verify_journal(args.journal, args.output)
        else:
            report = run_resolve(args.values, args.output)
    except (DurabilityError, JournalIntegrityError, ValueError) as exc:
        print(json.dumps({"error": str(exc)}), file=sys.stderr)
        return 2
    print(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
