from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from PVLENS.server.utils.configurations.base import (
    ensure_mapping,
    load_configuration_data,
)
from PVLENS.server.utils.constants import (
    DATABASE_FILENAME,
    PROJECT_DIR,
    SERVER_CONFIGURATION_FILE,
    SYNONYM_GROUPS_FILENAME,
    VOCABULARY_PATH,
)
from PVLENS.server.utils.types import (
    coerce_int,
    coerce_positive_int,
    coerce_str,
)

DATABASE_ENGINES = ("sqlite", "memory")


# [SERVER SETTINGS]
###############################################################################
@dataclass(frozen=True)
class FastAPISettings:
    title: str
    description: str
    version: str

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class DatabaseSettings:
    engine: str
    filename: str
    insert_batch_size: int

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ScoringSettings:
    exact_score: int
    prefix_score: int
    suffix_score: int
    word_start_score: int
    word_end_score: int
    contains_score: int
    phonetic_score: int
    synonym_base_score: int
    synonym_step: int
    synonym_floor_score: int
    fallback_score: int
    substance_prefix_score: int
    substance_contains_score: int
    substance_fallback_score: int

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class SearchSettings:
    synonym_limit: int
    spellcheck_synonym_limit: int
    pool_limit_multiplier: int
    pool_limit_floor: int
    candidate_limit_multiplier: int
    candidate_limit_floor: int
    default_suggest_limit: int
    default_spellcheck_limit: int
    default_fuzzy_limit: int
    max_request_limit: int
    synonym_groups_path: str
    scoring: ScoringSettings

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ServerSettings:
    fastapi: FastAPISettings
    database: DatabaseSettings
    search: SearchSettings


# [BUILDER FUNCTIONS]
###############################################################################
def build_fastapi_settings(data: dict[str, Any]) -> FastAPISettings:
    payload = ensure_mapping(data)
    return FastAPISettings(
        title=coerce_str(payload.get("title"), "PVLENS Term Search Backend"),
        version=coerce_str(payload.get("version"), "0.1.0"),
        description=coerce_str(payload.get("description"), "FastAPI backend"),
    )

# -----------------------------------------------------------------------------
def build_database_settings(data: dict[str, Any]) -> DatabaseSettings:
    payload = ensure_mapping(data)
    engine = coerce_str(payload.get("engine"), "sqlite").lower()
    if engine not in DATABASE_ENGINES:
        engine = "sqlite"
    return DatabaseSettings(
        engine=engine,
        filename=coerce_str(payload.get("filename"), DATABASE_FILENAME),
        insert_batch_size=coerce_int(payload.get("insert_batch_size"), 1000, minimum=1),
    )

# -----------------------------------------------------------------------------
def build_scoring_settings(data: dict[str, Any]) -> ScoringSettings:
    payload = ensure_mapping(data)

    def score(key: str, default: int) -> int:
        return coerce_int(payload.get(key), default, minimum=0, maximum=100)

    return ScoringSettings(
        exact_score=score("exact_score", 100),
        prefix_score=score("prefix_score", 95),
        suffix_score=score("suffix_score", 90),
        word_start_score=score("word_start_score", 85),
        word_end_score=score("word_end_score", 80),
        contains_score=score("contains_score", 75),
        phonetic_score=score("phonetic_score", 60),
        synonym_base_score=score("synonym_base_score", 55),
        synonym_step=score("synonym_step", 2),
        synonym_floor_score=score("synonym_floor_score", 35),
        fallback_score=score("fallback_score", 30),
        substance_prefix_score=score("substance_prefix_score", 90),
        substance_contains_score=score("substance_contains_score", 70),
        substance_fallback_score=score("substance_fallback_score", 50),
    )

# -----------------------------------------------------------------------------
def resolve_resource_path(value: Any, default: str) -> str:
    path = coerce_str(value, default)
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_DIR, path)

# -----------------------------------------------------------------------------
def build_search_settings(data: dict[str, Any]) -> SearchSettings:
    payload = ensure_mapping(data)
    synonym_limit = coerce_positive_int(payload.get("synonym_limit"), 10)
    spellcheck_synonyms = coerce_positive_int(payload.get("spellcheck_synonym_limit"), 5)
    # spellcheck draws from the capped synonym list
    spellcheck_synonyms = min(spellcheck_synonyms, synonym_limit)
    default_groups = os.path.join(VOCABULARY_PATH, SYNONYM_GROUPS_FILENAME)
    return SearchSettings(
        synonym_limit=synonym_limit,
        spellcheck_synonym_limit=spellcheck_synonyms,
        pool_limit_multiplier=coerce_positive_int(payload.get("pool_limit_multiplier"), 2),
        pool_limit_floor=coerce_positive_int(payload.get("pool_limit_floor"), 15),
        candidate_limit_multiplier=coerce_positive_int(
            payload.get("candidate_limit_multiplier"),
            3,
        ),
        candidate_limit_floor=coerce_positive_int(payload.get("candidate_limit_floor"), 30),
        default_suggest_limit=coerce_positive_int(payload.get("default_suggest_limit"), 10),
        default_spellcheck_limit=coerce_positive_int(
            payload.get("default_spellcheck_limit"),
            5,
        ),
        default_fuzzy_limit=coerce_positive_int(payload.get("default_fuzzy_limit"), 50),
        max_request_limit=coerce_positive_int(payload.get("max_request_limit"), 500),
        synonym_groups_path=resolve_resource_path(
            payload.get("synonym_groups_path"),
            default_groups,
        ),
        scoring=build_scoring_settings(ensure_mapping(payload.get("scoring"))),
    )

# -----------------------------------------------------------------------------
def build_server_settings(data: dict[str, Any] | Any) -> ServerSettings:
    payload = ensure_mapping(data)
    return ServerSettings(
        fastapi=build_fastapi_settings(ensure_mapping(payload.get("fastapi"))),
        database=build_database_settings(ensure_mapping(payload.get("database"))),
        search=build_search_settings(ensure_mapping(payload.get("search"))),
    )


# [SERVER CONFIGURATION LOADER]
###############################################################################
def get_server_settings(config_path: str | None = None) -> ServerSettings:
    path = config_path or SERVER_CONFIGURATION_FILE
    payload = load_configuration_data(path)
    return build_server_settings(payload)


server_settings = get_server_settings()
