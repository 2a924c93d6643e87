from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import pandas as pd

from PVLENS.server.database.memory import DataFrameRepository
from PVLENS.server.database.sqlite import SQLiteRepository
from PVLENS.server.utils.configurations import DatabaseSettings, server_settings
from PVLENS.server.utils.exceptions import ConfigurationError
from PVLENS.server.utils.logger import logger
from PVLENS.server.utils.services.search.matching import (
    AdverseEventFilters,
    AdverseEventRecord,
    MatchCandidate,
    MatchSpec,
)


###############################################################################
class CandidateRepository(Protocol):
    db_path: str | None

    # -------------------------------------------------------------------------
    def find_candidates(self, spec: MatchSpec) -> list[MatchCandidate]:
        ...

    # -------------------------------------------------------------------------
    def find_adverse_events(
        self, spec: MatchSpec, filters: AdverseEventFilters
    ) -> list[AdverseEventRecord]:
        ...

    # -------------------------------------------------------------------------
    def load_from_database(self, table_name: str) -> pd.DataFrame:
        ...

    # -------------------------------------------------------------------------
    def save_into_database(self, df: pd.DataFrame, table_name: str) -> None:
        ...

    # -------------------------------------------------------------------------
    def count_rows(self, table_name: str) -> int:
        ...


BackendFactory = Callable[[DatabaseSettings], CandidateRepository]


# -----------------------------------------------------------------------------
def build_sqlite_backend(settings: DatabaseSettings) -> CandidateRepository:
    return SQLiteRepository(settings)

# -----------------------------------------------------------------------------
def build_memory_backend(settings: DatabaseSettings) -> CandidateRepository:
    return DataFrameRepository.from_sources()


BACKEND_FACTORIES: dict[str, BackendFactory] = {
    "sqlite": build_sqlite_backend,
    "memory": build_memory_backend,
}


# -----------------------------------------------------------------------------
def build_repository(settings: DatabaseSettings | None = None) -> CandidateRepository:
    settings = settings or server_settings.database
    backend_name = settings.engine.lower()
    logger.info("Initializing %s candidate repository", backend_name)
    if backend_name not in BACKEND_FACTORIES:
        raise ConfigurationError(f"Unsupported database engine: {settings.engine}")
    factory = BACKEND_FACTORIES[backend_name]
    return factory(settings)


__all__ = [
    "BACKEND_FACTORIES",
    "CandidateRepository",
    "build_repository",
]
