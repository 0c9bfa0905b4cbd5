# SPDX-License-Identifier: Apache-2.0
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Append-only, hash-chained journal of gate verdicts and registry bootstraps.

Each line is a JSON object whose ``hash`` covers the previous line's hash plus
the entry itself, so any edit, reorder or truncation in the middle of the file
breaks verification.
"""

from __future__ import annotations

import json
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

from durability.foundation import GENESIS_HASH, chain_hash, utc_now_iso


class JournalIntegrityError(RuntimeError):
    """Raised when the verdict journal chain does not verify."""


class VerdictJournal:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.lock_path = self.path.with_suffix(self.path.suffix + ".lock")
        self._thread_lock = threading.Lock()

    def ensure(self) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.touch()
        return self.path

    @contextmanager
    def _append_lock(self) -> Iterator[None]:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        with self._thread_lock:
            with self.lock_path.open("a+", encoding="utf-8") as handle:
                if os.name == "nt":
                    import msvcrt

                    msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)
                else:
                    import fcntl

                    fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    if os.name == "nt":
                        import msvcrt

                        handle.seek(0)
                        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
                    else:
                        import fcntl

                        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _scan(self) -> tuple[str, int]:
        prev_hash = GENESIS_HASH
        count = 0
        with self.ensure().open("r", encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                text = line.strip()
                if not text:
                    continue
                try:
                    entry = json.loads(text)
                except json.JSONDecodeError as exc:
                    raise JournalIntegrityError(f"journal_invalid_json:line{line_no}:{exc.msg}") from exc
                if not isinstance(entry, dict):
                    raise JournalIntegrityError(f"journal_malformed_entry:line{line_no}")
                if entry.get("prev_hash") != prev_hash:
                    raise JournalIntegrityError(f"journal_prev_hash_mismatch:line{line_no}")
                body = {key: value for key, value in entry.items() if key != "hash"}
                if entry.get("hash") != chain_hash(prev_hash, body):
                    raise JournalIntegrityError(f"journal_hash_mismatch:line{line_no}")
                prev_hash = str(entry["hash"])
                count += 1
        return prev_hash, count

    def verify(self) -> int:
        """Recompute the chain from genesis; return the number of verified entries."""
        _, count = self._scan()
        return count

    def append(self, tx_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        with self._append_lock():
            prev_hash, count = self._scan()
            entry: Dict[str, Any] = {
                "seq": count + 1,
                "ts": utc_now_iso(),
                "type": tx_type,
                "payload": payload,
                "prev_hash": prev_hash,
            }
            entry["hash"] = chain_hash(prev_hash, entry)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
            return entry

    def entries(self, limit: int | None = None) -> List[Dict[str, Any]]:
        """Return entries oldest first, only the last ``limit`` when given.

        Hashes are not recomputed here, but a line that is not a JSON object
        raises ``JournalIntegrityError`` the same way ``verify`` does.
        """
        lines = self.ensure().read_text(encoding="utf-8").splitlines()
        first = 0 if limit is None else max(len(lines) - limit, 0)
        records: List[Dict[str, Any]] = []
        for line_no, line in enumerate(lines[first:], start=first + 1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as exc:
                raise JournalIntegrityError(f"journal_invalid_json:line{line_no}:{exc.msg}") from exc
            if not isinstance(entry, dict):
                raise JournalIntegrityError(f"journal_malformed_entry:line{line_no}")
            records.append(entry)
        return records


__all__ = ["VerdictJournal", "JournalIntegrityError"]
