from __future__ import annotations

import os
from typing import Any, Protocol, cast

import pandas as pd

from PVLENS.server.utils.constants import SOURCES_PATH, VOCABULARY_TABLES
from PVLENS.server.utils.logger import logger
from PVLENS.server.utils.services.text.normalization import (
    coerce_text,
    normalize_whitespace,
)

INTEGER_COLUMNS = {"id", "product_id", "meddra_id", "ndc_id"}
FLAG_COLUMNS = {"warning", "blackbox", "exact_match"}
DATE_COLUMNS = {"label_date"}
REQUIRED_COLUMNS: dict[str, list[str]] = {
    "MEDDRA": ["id", "meddra_term"],
    "NDC_CODE": ["id"],
    "PRODUCT_NDC": ["product_id", "ndc_id"],
    "PRODUCT_AE": ["id", "product_id", "meddra_id"],
    "PRODUCT_IND": ["id", "product_id", "meddra_id"],
}


###############################################################################
class VocabularyStore(Protocol):
    def save_into_database(self, df: pd.DataFrame, table_name: str) -> None:
        ...


# -----------------------------------------------------------------------------
def clean_text(value: Any) -> str | None:
    text = coerce_text(value)
    return normalize_whitespace(text) if text else None


# -----------------------------------------------------------------------------
def coerce_flag(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return 1 if value.strip().lower() in {"1", "true", "yes", "y", "t"} else 0
    try:
        if pd.isna(value):
            return 0
    except (TypeError, ValueError):
        pass
    return 1 if bool(value) else 0


###############################################################################
class VocabularySerializer:
    """Reads the vocabulary CSV exports and shapes them into table frames."""

    def __init__(self, sources_path: str = SOURCES_PATH) -> None:
        self.sources_path = sources_path

    # -------------------------------------------------------------------------
    def read_source_table(self, table_name: str) -> pd.DataFrame:
        path = os.path.join(self.sources_path, f"{table_name}.csv")
        if not os.path.exists(path):
            logger.warning("Vocabulary source %s not found; table left empty", path)
            return pd.DataFrame(columns=VOCABULARY_TABLES[table_name])
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""])
        logger.info("Read %d rows for %s from %s", len(frame), table_name, path)
        return frame

    # -------------------------------------------------------------------------
    def sanitize_table(self, table_name: str, frame: pd.DataFrame) -> pd.DataFrame:
        columns = VOCABULARY_TABLES[table_name]
        df = frame.copy()
        df.columns = [str(column).strip().lower() for column in df.columns]
        df = df.reindex(columns=columns)
        for column in columns:
            if column in INTEGER_COLUMNS:
                df[column] = pd.to_numeric(df[column], errors="coerce").astype("Int64")
            elif column in FLAG_COLUMNS:
                df[column] = df[column].apply(coerce_flag)
            elif column in DATE_COLUMNS:
                df[column] = pd.to_datetime(df[column], errors="coerce").dt.date
            else:
                df[column] = df[column].apply(clean_text)
        df = df.dropna(subset=REQUIRED_COLUMNS[table_name])
        key_columns = ["product_id", "ndc_id"] if table_name == "PRODUCT_NDC" else ["id"]
        dropped = len(df)
        df = df.drop_duplicates(subset=key_columns, keep="first")
        if dropped != len(df):
            logger.warning(
                "Dropped %d duplicated rows from %s", dropped - len(df), table_name
            )
        df = df.astype(object)
        df = df.where(pd.notnull(df), cast(Any, None))
        return df.reset_index(drop=True)

    # -------------------------------------------------------------------------
    def load_source_tables(self) -> dict[str, pd.DataFrame]:
        return {
            table_name: self.sanitize_table(table_name, self.read_source_table(table_name))
            for table_name in VOCABULARY_TABLES
        }

    # -------------------------------------------------------------------------
    def save_vocabulary(
        self, store: VocabularyStore, tables: dict[str, pd.DataFrame]
    ) -> dict[str, int]:
        saved: dict[str, int] = {}
        for table_name, frame in tables.items():
            store.save_into_database(frame, table_name)
            saved[table_name] = len(frame)
            logger.info("Saved %d rows into %s", len(frame), table_name)
        return saved


__all__ = ["VocabularySerializer", "coerce_flag"]
