from __future__ import annotations

import json
import time

from PVLENS.server.database.sqlite import SQLiteRepository
from PVLENS.server.utils.configurations import server_settings
from PVLENS.server.utils.constants import SOURCES_PATH
from PVLENS.server.utils.logger import logger
from PVLENS.server.utils.repository.serializer import VocabularySerializer


# -----------------------------------------------------------------------------
def initialize_database(
    sources_path: str = SOURCES_PATH, db_path: str | None = None
) -> dict[str, int]:
    repository = SQLiteRepository(server_settings.database, db_path=db_path)
    serializer = VocabularySerializer(sources_path)
    tables = serializer.load_source_tables()
    return serializer.save_vocabulary(repository, tables)


###############################################################################
if __name__ == "__main__":
    start = time.perf_counter()
    logger.info("Starting database initialization")
    logger.info(
        "Current database configuration: %s",
        json.dumps(
            {
                "engine": server_settings.database.engine,
                "filename": server_settings.database.filename,
                "insert_batch_size": server_settings.database.insert_batch_size,
            }
        ),
    )
    counts = initialize_database()
    elapsed = time.perf_counter() - start
    logger.info("Loaded tables: %s", json.dumps(counts))
    logger.info("Database initialization completed in %.2f seconds", elapsed)
