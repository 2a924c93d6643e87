from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from PVLENS.server.utils.services.search.matching import (
    AdverseEventRecord,
    ScoredResult,
    SpellingSuggestion,
)


###############################################################################
class TermSuggestionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    code: str | None = None
    term: str
    term_type: str | None = Field(None, alias="termType")
    score: int = Field(..., ge=0, le=100, description="Tiered relevance score")
    usage_count: int = Field(0, alias="usageCount")
    category: str | None = Field(None, description="Display label of the source pool")
    type: str | None = Field(None, description="Machine tag of the source pool")

    # -------------------------------------------------------------------------
    @classmethod
    def from_result(cls, result: ScoredResult) -> TermSuggestionResponse:
        return cls(
            id=result.id,
            code=result.code,
            term=result.term,
            term_type=result.term_type,
            score=result.score,
            usage_count=result.usage_count,
            category=result.category,
            type=result.type,
        )


###############################################################################
class SpellingSuggestionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    suggestion: str
    usage_count: int = Field(0, alias="usageCount")
    is_synonym: bool = Field(False, alias="isSynonym")

    # -------------------------------------------------------------------------
    @classmethod
    def from_suggestion(cls, suggestion: SpellingSuggestion) -> SpellingSuggestionResponse:
        return cls(
            suggestion=suggestion.suggestion,
            usage_count=suggestion.usage_count,
            is_synonym=suggestion.is_synonym,
        )


###############################################################################
class AdverseEventResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    substance_id: int = Field(..., alias="substanceId")
    substance_name: str | None = Field(None, alias="substanceName")
    meddra_id: int = Field(..., alias="meddraId")
    meddra_code: str | None = Field(None, alias="meddraCode")
    meddra_term: str = Field(..., alias="meddraTerm")
    meddra_term_type: str | None = Field(None, alias="meddraTermType")
    label_date: date | None = Field(None, alias="labelDate")
    warning: bool = False
    blackbox: bool = False
    exact_match: bool = Field(False, alias="exactMatch")
    usage_count: int = Field(0, alias="usageCount")
    score: int = 0

    # -------------------------------------------------------------------------
    @classmethod
    def from_record(cls, record: AdverseEventRecord) -> AdverseEventResponse:
        return cls(
            id=record.id,
            substance_id=record.substance_id,
            substance_name=record.substance_name,
            meddra_id=record.meddra_id,
            meddra_code=record.meddra_code,
            meddra_term=record.meddra_term,
            meddra_term_type=record.meddra_term_type,
            label_date=record.label_date,
            warning=record.warning,
            blackbox=record.blackbox,
            exact_match=record.exact_match,
            usage_count=record.usage_count,
            score=record.score,
        )
