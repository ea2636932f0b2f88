"""Pair two lists of venue names by normalized-name similarity."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from venuerecon.config.reconcile import BatchMatchConfig

from .model import AmbiguityReason
from .normalization import NormalizedName, normalize_name, similarity_score

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True, slots=True)
class ScoredName:
    name: str
    score: float
    reason: str


@dataclass(frozen=True, slots=True)
class NamePair:
    source_name: str
    store_name: str
    normalized_source: str
    normalized_store: str
    score: float
    reason: str


@dataclass(frozen=True, slots=True)
class AmbiguousName:
    source_name: str
    candidates: tuple[ScoredName, ...]
    reason: AmbiguityReason


@dataclass(slots=True)
class NameMatchReport:
    matches: list[NamePair] = field(default_factory=list)
    ambiguous: list[AmbiguousName] = field(default_factory=list)
    solo_source: list[str] = field(default_factory=list)
    solo_store: list[str] = field(default_factory=list)


def match_names(
    source_names: Sequence[str],
    store_names: Sequence[str],
    config: BatchMatchConfig | None = None,
) -> NameMatchReport:
    """Pair external names with store names.

    A pairing is kept only when the best candidate stands clear of the runner-up
    by more than ``close_score_delta`` and the store name is claimed by no other
    source name. Names without any candidate above ``pairing_score`` land in the
    solo lists.
    """

    cfg = config or BatchMatchConfig()
    source = [(name, normalize_name(name)) for name in source_names]
    store = [(name, normalize_name(name)) for name in store_names]
    store_by_name: dict[str, NormalizedName] = dict(store)

    forward: dict[str, list[ScoredName]] = {}
    reverse: dict[str, list[ScoredName]] = {}
    for source_name, source_norm in source:
        for store_name, store_norm in store:
            score, reason = similarity_score(source_norm, store_norm)
            if score < cfg.pairing_score:
                continue
            forward.setdefault(source_name, []).append(ScoredName(store_name, score, reason))
            reverse.setdefault(store_name, []).append(ScoredName(source_name, score, reason))

    report = NameMatchReport()
    for source_name, source_norm in source:
        candidates = sorted(forward.get(source_name, ()), key=lambda c: c.score, reverse=True)
        if not candidates:
            continue
        top = candidates[0]
        close = [c for c in candidates if c.score >= top.score - cfg.close_score_delta]
        claimants = reverse.get(top.name, [])
        if len(close) > 1 or len(claimants) != 1:
            reason = (
                AmbiguityReason.MULTIPLE_CLOSE_SCORES
                if len(close) > 1
                else AmbiguityReason.STORE_MULTIPLE_MATCHES
            )
            report.ambiguous.append(AmbiguousName(source_name, tuple(candidates), reason))
            continue
        report.matches.append(
            NamePair(
                source_name=source_name,
                store_name=top.name,
                normalized_source=source_norm.normalized,
                normalized_store=store_by_name[top.name].normalized,
                score=top.score,
                reason=top.reason,
            )
        )

    report.solo_source = [name for name, _ in source if name not in forward]
    report.solo_store = [name for name, _ in store if name not in reverse]
    return report
