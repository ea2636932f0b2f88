"""Text folding, similarity predicates and geographic helpers.

Everything here is pure and synchronous; the reconciliation and batch matching
jobs build on these functions.
"""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass
from typing import NamedTuple

from rapidfuzz.distance import Levenshtein

from venuerecon.config.reconcile import DEFAULT_ADDRESS_EDIT_DISTANCE, DEFAULT_NAME_EDIT_DISTANCE

COORDINATE_PRECISION = 8
EARTH_RADIUS_METERS = 6_371_000.0

EXACT_SCORE = 1.0
SUBSTRING_SCORE = 0.92

# Leftovers of contracted articles ("l'", "d'") once apostrophes become spaces.
ELISION_TOKENS = frozenset({"l", "d"})
STOPWORDS = frozenset(
    {"le", "la", "les", "au", "aux", "du", "de", "des", "bar", "club"} | ELISION_TOKENS
)

_NON_ALNUM = re.compile(r"[\W_]+")


class NormalizedName(NamedTuple):
    normalized: str
    tokens: tuple[str, ...]


class NameScore(NamedTuple):
    score: float
    reason: str


@dataclass(frozen=True, slots=True)
class AddressContext:
    """Side information for :func:`is_similar_address`."""

    existing_city: str | None = None
    candidate_city: str | None = None
    existing_postcode: str | None = None
    candidate_postcode: str | None = None
    candidate_label: str | None = None


def fold_text(value: str | None) -> str:
    """Strip diacritics, lowercase and reduce punctuation runs to single spaces."""

    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return _NON_ALNUM.sub(" ", stripped.lower()).strip()


def normalize_address(value: str | None) -> str:
    return fold_text(value)


def normalize_city(value: str | None) -> str:
    return fold_text(value)


def normalize_name(value: str | None) -> NormalizedName:
    """Fold a venue name and drop articles, elisions and generic venue nouns."""

    tokens = tuple(token for token in fold_text(value).split() if token not in STOPWORDS)
    return NormalizedName(" ".join(tokens), tokens)


def levenshtein(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def is_similar_name(
    a: str | None,
    b: str | None,
    *,
    max_distance: int = DEFAULT_NAME_EDIT_DISTANCE,
) -> bool:
    left = fold_text(a)
    right = fold_text(b)
    if not left or not right:
        return False
    if left == right or left in right or right in left:
        return True
    return levenshtein(left, right) <= max_distance


def is_similar_address(
    existing: str | None,
    candidate: str | None,
    context: AddressContext | None = None,
    *,
    max_distance: int = DEFAULT_ADDRESS_EDIT_DISTANCE,
) -> bool:
    ctx = context or AddressContext()
    left = normalize_address(existing)
    right = normalize_address(candidate)
    if not left or not right:
        return False

    existing_city = normalize_city(ctx.existing_city)
    candidate_city = normalize_city(ctx.candidate_city)
    if existing_city and candidate_city and existing_city != candidate_city:
        return False

    existing_postcode = (ctx.existing_postcode or "").strip()
    candidate_postcode = (ctx.candidate_postcode or "").strip()
    if existing_postcode and candidate_postcode and existing_postcode != candidate_postcode:
        return False

    if left == right or levenshtein(left, right) <= max_distance:
        return True

    label = normalize_address(ctx.candidate_label)
    if label and levenshtein(label, left) <= max_distance:
        return True

    left_tokens = set(left.split())
    right_tokens = set(right.split())
    required = max(1, min(len(left_tokens), len(right_tokens)) - 1)
    return len(left_tokens & right_tokens) >= required


def jaccard(a: tuple[str, ...], b: tuple[str, ...]) -> float:
    if not a or not b:
        return 0.0
    left, right = set(a), set(b)
    return len(left & right) / len(left | right)


def similarity_score(a: NormalizedName, b: NormalizedName) -> NameScore:
    """Score two normalized names in [0, 1]."""

    if not a.normalized or not b.normalized:
        return NameScore(0.0, "empty")
    if a.normalized == b.normalized:
        return NameScore(EXACT_SCORE, "exact")
    if a.normalized in b.normalized or b.normalized in a.normalized:
        return NameScore(SUBSTRING_SCORE, "substring")

    token_score = jaccard(a.tokens, b.tokens)
    max_len = max(len(a.normalized), len(b.normalized))
    edit_score = 1 - levenshtein(a.normalized, b.normalized) / max_len
    if token_score >= edit_score:
        return NameScore(token_score, "token_overlap")
    return NameScore(edit_score, "edit_distance")


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(min(1.0, h)))


def round_coordinate(value: float) -> float:
    return round(value, COORDINATE_PRECISION)
