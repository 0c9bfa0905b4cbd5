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
Durability classification and mutation gating for agent instruction files.
"""

from durability.conflict import ConflictOutcome, resolve_conflict, resolve_conflict_strict
from durability.constraint import Constraint
from durability.errors import ConfigError, DenyReason, DurabilityError, IrreconcilableConflict, MalformedPath
from durability.gate import MutationGate, MutationKind, MutationRequest, Verdict, evaluate_mutation
from durability.paths import ClassifiedPath, PathSegment, compare_authority, resolve_path
from durability.registry import ConstraintRegistry
from durability.tiers import DurabilityTier, classify_segment

__version__ = "0.1.0"

__all__ = [
    "ClassifiedPath",
    "ConfigError",
    "ConflictOutcome",
    "Constraint",
    "ConstraintRegistry",
    "DenyReason",
    "DurabilityError",
    "DurabilityTier",
    "IrreconcilableConflict",
    "MalformedPath",
    "MutationGate",
    "MutationKind",
    "MutationRequest",
    "PathSegment",
    "Verdict",
    "classify_segment",
    "compare_authority",
    "evaluate_mutation",
    "resolve_conflict",
    "resolve_conflict_strict",
    "resolve_path",
]
