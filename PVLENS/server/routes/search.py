from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query, status

from PVLENS.server.database.database import build_repository
from PVLENS.server.schemas.search import (
    AdverseEventResponse,
    SpellingSuggestionResponse,
    TermSuggestionResponse,
)
from PVLENS.server.utils.configurations import server_settings
from PVLENS.server.utils.constants import SEARCH_API_URL
from PVLENS.server.utils.logger import logger
from PVLENS.server.utils.services.search.matching import AdverseEventFilters
from PVLENS.server.utils.services.search.orchestrator import (
    SearchOrchestrator,
    build_search_orchestrator,
)
from PVLENS.server.utils.services.text.normalization import is_blank


###############################################################################
router = APIRouter(prefix=SEARCH_API_URL, tags=["search"])

SEARCH_SETTINGS = server_settings.search
QUERY_DESCRIPTION = "Free-text query (lay phrase, term fragment or misspelling)"
LIMIT_DESCRIPTION = "Maximum number of results"


# -----------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_search_orchestrator() -> SearchOrchestrator:
    repository = build_repository(server_settings.database)
    return build_search_orchestrator(repository, SEARCH_SETTINGS)


###############################################################################
@router.get("/suggest", response_model=list[TermSuggestionResponse])
def suggest_terms(
    q: str = Query("", description=QUERY_DESCRIPTION),
    type: str | None = Query(
        None, description="adverse_events, substances, indications or all"
    ),
    limit: int = Query(
        SEARCH_SETTINGS.default_suggest_limit,
        ge=1,
        le=SEARCH_SETTINGS.max_request_limit,
        description=LIMIT_DESCRIPTION,
    ),
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
) -> list[TermSuggestionResponse]:
    """Autocomplete suggestions merged across vocabulary pools."""
    if is_blank(q):
        return []
    try:
        results = orchestrator.suggest(q, type, limit)
    except Exception as e:
        logger.exception("Error suggesting terms for '%s': %s", q, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to suggest terms: {str(e)}",
        ) from e
    return [TermSuggestionResponse.from_result(result) for result in results]


@router.get("/spellcheck", response_model=list[SpellingSuggestionResponse])
def spellcheck_query(
    q: str = Query("", description=QUERY_DESCRIPTION),
    limit: int = Query(
        SEARCH_SETTINGS.default_spellcheck_limit,
        ge=1,
        le=SEARCH_SETTINGS.max_request_limit,
        description=LIMIT_DESCRIPTION,
    ),
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
) -> list[SpellingSuggestionResponse]:
    """Synonym-derived corrections first, then sound-alike terms."""
    if is_blank(q):
        return []
    try:
        suggestions = orchestrator.spellcheck(q, limit)
    except Exception as e:
        logger.exception("Error building spelling suggestions for '%s': %s", q, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to build spelling suggestions: {str(e)}",
        ) from e
    return [SpellingSuggestionResponse.from_suggestion(entry) for entry in suggestions]


@router.get("/adverse-events", response_model=list[AdverseEventResponse])
def search_adverse_events(
    q: str = Query("", description=QUERY_DESCRIPTION),
    substance_id: int | None = Query(None, description="Restrict to one substance"),
    severity: str | None = Query(None, description="blackbox, warning or all"),
    match_type: str | None = Query(None, description="exact, nlp or all"),
    sort_by: str | None = Query(None, description="term, code, substance or label_date"),
    sort_order: str | None = Query(None, description="asc or desc"),
    limit: int = Query(
        SEARCH_SETTINGS.default_fuzzy_limit,
        ge=1,
        le=SEARCH_SETTINGS.max_request_limit,
        description=LIMIT_DESCRIPTION,
    ),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
) -> list[AdverseEventResponse]:
    """Ranked adverse event records with hard filters and pagination."""
    if is_blank(q):
        return []
    filters = AdverseEventFilters.from_values(
        substance_id=substance_id,
        severity=severity,
        match_type=match_type,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    try:
        records = orchestrator.fuzzy_search(q, filters, limit, offset)
    except Exception as e:
        logger.exception("Error searching adverse events for '%s': %s", q, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to search adverse events: {str(e)}",
        ) from e
    return [AdverseEventResponse.from_record(record) for record in records]
