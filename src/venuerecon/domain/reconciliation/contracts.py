"""Decision records, audit rows and counters produced by reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from venuerecon.domain.model import DecisionReason, UpsertAction

if TYPE_CHECKING:
    from uuid import UUID


@dataclass(frozen=True, slots=True, kw_only=True)
class UpsertDecision:
    """Terminal outcome for one record, appended once to the action ledger."""

    action: UpsertAction
    reason: DecisionReason
    name: str
    address: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    venue_id: UUID | None = None
    detail: str | None = None

    @property
    def ledger_reason(self) -> str:
        """Reason column value; errors carry the exception message instead."""

        if self.action is UpsertAction.ERROR and self.detail:
            return self.detail
        return self.reason.value


@dataclass(frozen=True, slots=True, kw_only=True)
class ConflictRecord:
    name: str
    existing_address: str | None
    existing_city: str | None
    new_address: str | None
    new_city: str | None
    reason: DecisionReason


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateRecord:
    name: str
    duplicate_name: str
    address: str | None
    city: str | None
    duplicate_id: UUID
    reason: DecisionReason


@dataclass(slots=True)
class ReconcileCounters:
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    conflicts: int = 0
    duplicates: int = 0
    errors: int = 0

    def count(self, action: UpsertAction) -> None:
        self.processed += 1
        match action:
            case UpsertAction.INSERT:
                self.inserted += 1
            case UpsertAction.UPDATE:
                self.updated += 1
            case UpsertAction.CONFLICT:
                self.conflicts += 1
            case UpsertAction.DUPLICATE:
                self.duplicates += 1
            case UpsertAction.ERROR:
                self.errors += 1


@dataclass(slots=True)
class ReconcileReport:
    dry_run: bool
    decisions: list[UpsertDecision] = field(default_factory=list)
    conflicts: list[ConflictRecord] = field(default_factory=list)
    duplicates: list[DuplicateRecord] = field(default_factory=list)
    counters: ReconcileCounters = field(default_factory=ReconcileCounters)

    def record(self, decision: UpsertDecision) -> UpsertDecision:
        self.decisions.append(decision)
        self.counters.count(decision.action)
        return decision
