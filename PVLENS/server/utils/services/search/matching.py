from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from PVLENS.server.utils.constants import (
    MATCH_TYPE_CHOICES,
    SEVERITY_CHOICES,
    SORT_COLUMN_CHOICES,
    SORT_ORDER_CHOICES,
)
from PVLENS.server.utils.services.text.normalization import normalize_term
from PVLENS.server.utils.services.text.phonetics import soundex
from PVLENS.server.utils.types import coerce_choice, extract_positive_int


###############################################################################
class PredicateKind(str, Enum):
    EQUALS = "equals"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    WORD_START = "word_start"
    WORD_END = "word_end"
    CONTAINS = "contains"
    PHONETIC = "phonetic"
    SYNONYM = "synonym"


###############################################################################
class OrderKey(str, Enum):
    RELEVANCE = "relevance"
    USAGE = "usage"
    LENGTH = "length"
    TERM = "term"


###############################################################################
@dataclass(frozen=True, slots=True)
class MatchPredicate:
    """One scoring tier: a match test on the lower-cased term and its score.

    ``value`` is already normalized. For PHONETIC it holds the query's
    Soundex code; WORD_START and WORD_END carry the bare query and add the
    boundary space themselves.
    """

    kind: PredicateKind
    value: str
    score: int

    # -------------------------------------------------------------------------
    def pattern(self) -> str:
        if self.kind == PredicateKind.WORD_START:
            return f" {self.value}"
        if self.kind == PredicateKind.WORD_END:
            return f"{self.value} "
        return self.value

    # -------------------------------------------------------------------------
    def matches(self, term: str) -> bool:
        lowered = term.lower()
        kind = self.kind
        if kind == PredicateKind.EQUALS:
            return lowered == self.value
        if kind == PredicateKind.PREFIX:
            return lowered.startswith(self.value)
        if kind == PredicateKind.SUFFIX:
            return lowered.endswith(self.value)
        if kind == PredicateKind.PHONETIC:
            return bool(self.value) and soundex(term) == self.value
        # WORD_START, WORD_END, CONTAINS and SYNONYM are substring tests
        return self.pattern() in lowered


###############################################################################
@dataclass(frozen=True, slots=True)
class MatchSpec:
    pool: str
    query: str
    predicates: tuple[MatchPredicate, ...]
    fallback_score: int
    order_by: tuple[OrderKey, ...] = (
        OrderKey.RELEVANCE,
        OrderKey.USAGE,
        OrderKey.LENGTH,
        OrderKey.TERM,
    )
    limit: int | None = None
    excluded_terms: frozenset[str] = field(default_factory=frozenset)

    # -------------------------------------------------------------------------
    def is_empty(self) -> bool:
        return not self.predicates

    # -------------------------------------------------------------------------
    def is_excluded(self, term: str) -> bool:
        return term.lower() in self.excluded_terms

    # -------------------------------------------------------------------------
    def accepts(self, term: str | None) -> bool:
        if not term or self.is_excluded(term):
            return False
        return any(predicate.matches(term) for predicate in self.predicates)

    # -------------------------------------------------------------------------
    def score(self, term: str | None) -> int:
        if not term:
            return self.fallback_score
        for predicate in self.predicates:
            if predicate.matches(term):
                return predicate.score
        return self.fallback_score


###############################################################################
@dataclass(slots=True)
class MatchCandidate:
    id: int
    code: str | None
    term: str
    term_type: str | None = None
    usage_count: int = 0


###############################################################################
@dataclass(slots=True)
class ScoredResult:
    id: int
    code: str | None
    term: str
    term_type: str | None
    usage_count: int
    score: int
    category: str | None = None
    type: str | None = None

    # -------------------------------------------------------------------------
    @classmethod
    def from_candidate(cls, candidate: MatchCandidate, score: int) -> ScoredResult:
        return cls(
            id=candidate.id,
            code=candidate.code,
            term=candidate.term,
            term_type=candidate.term_type,
            usage_count=candidate.usage_count,
            score=score,
        )


###############################################################################
@dataclass(slots=True)
class SpellingSuggestion:
    suggestion: str
    usage_count: int
    is_synonym: bool = False


###############################################################################
@dataclass(slots=True)
class AdverseEventRecord:
    id: int
    substance_id: int
    substance_name: str | None
    meddra_id: int
    meddra_code: str | None
    meddra_term: str
    meddra_term_type: str | None
    label_date: date | None
    warning: bool
    blackbox: bool
    exact_match: bool
    usage_count: int = 0
    score: int = 0


###############################################################################
@dataclass(frozen=True, slots=True)
class AdverseEventFilters:
    """Hard filters and ordering for adverse event searches.

    Unrecognized severity or match type values mean no filter. An unknown
    sort column falls back to the default relevance tie-break.
    """

    substance_id: int | None = None
    severity: str | None = None
    match_type: str | None = None
    sort_by: str | None = None
    sort_order: str = "asc"

    # -------------------------------------------------------------------------
    @classmethod
    def from_values(
        cls,
        substance_id: Any = None,
        severity: Any = None,
        match_type: Any = None,
        sort_by: Any = None,
        sort_order: Any = None,
    ) -> AdverseEventFilters:
        return cls(
            substance_id=extract_positive_int(substance_id),
            severity=coerce_choice(severity, SEVERITY_CHOICES),
            match_type=coerce_choice(match_type, MATCH_TYPE_CHOICES),
            sort_by=coerce_choice(sort_by, SORT_COLUMN_CHOICES),
            sort_order=coerce_choice(sort_order, SORT_ORDER_CHOICES) or "asc",
        )

    # -------------------------------------------------------------------------
    def accepts(self, record: AdverseEventRecord) -> bool:
        if self.substance_id is not None and record.substance_id != self.substance_id:
            return False
        if self.severity == "blackbox" and not record.blackbox:
            return False
        if self.severity == "warning" and (not record.warning or record.blackbox):
            return False
        if self.match_type == "exact" and not record.exact_match:
            return False
        if self.match_type == "nlp" and record.exact_match:
            return False
        return True


# -----------------------------------------------------------------------------
def phonetic_predicate(query: str, score: int) -> MatchPredicate | None:
    code = soundex(query)
    if not code:
        return None
    return MatchPredicate(PredicateKind.PHONETIC, code, score)


# -----------------------------------------------------------------------------
def synonym_predicates(
    synonyms: list[str], base: int, step: int, floor: int
) -> list[MatchPredicate]:
    predicates: list[MatchPredicate] = []
    for index, synonym in enumerate(synonyms):
        value = normalize_term(synonym)
        if not value:
            continue
        predicates.append(
            MatchPredicate(PredicateKind.SYNONYM, value, max(base - step * index, floor))
        )
    return predicates


__all__ = [
    "AdverseEventFilters",
    "AdverseEventRecord",
    "MatchCandidate",
    "MatchPredicate",
    "MatchSpec",
    "OrderKey",
    "PredicateKind",
    "ScoredResult",
    "SpellingSuggestion",
    "phonetic_predicate",
    "synonym_predicates",
]
