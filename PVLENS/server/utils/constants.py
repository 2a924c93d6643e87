from __future__ import annotations

from os.path import abspath, join

# [PATHS]
###############################################################################
ROOT_DIR = abspath(join(__file__, "../../../.."))
PROJECT_DIR = join(ROOT_DIR, "PVLENS")
SETTING_PATH = join(PROJECT_DIR, "setup", "settings")
RSC_PATH = join(PROJECT_DIR, "resources")
DATA_PATH = join(RSC_PATH, "database")
SOURCES_PATH = join(DATA_PATH, "sources")
VOCABULARY_PATH = join(RSC_PATH, "vocabulary")
LOGS_PATH = join(RSC_PATH, "logs")
DATABASE_FILENAME = "sqlite.db"
SYNONYM_GROUPS_FILENAME = "synonym_groups.json"

###############################################################################
SERVER_CONFIGURATION_FILE = join(SETTING_PATH, "server_configurations.json")

# [ENDPOINTS]
###############################################################################
SEARCH_API_URL = "/search"

# [TERM POOLS]
###############################################################################
ADVERSE_EVENT_POOL = "adverse_events"
INDICATION_POOL = "indications"
SUBSTANCE_POOL = "substances"
ALL_POOLS = "all"

POOL_LABELS: dict[str, tuple[str, str]] = {
    ADVERSE_EVENT_POOL: ("Adverse Event", "adverse_event"),
    SUBSTANCE_POOL: ("Substance", "substance"),
    INDICATION_POOL: ("Indication", "indication"),
}
# suggest() visits pools in this order; merge ties keep it
POOL_ORDER = (ADVERSE_EVENT_POOL, SUBSTANCE_POOL, INDICATION_POOL)

# [ADVERSE EVENT FILTERS]
###############################################################################
SEVERITY_CHOICES = {"blackbox", "warning"}
MATCH_TYPE_CHOICES = {"exact", "nlp"}
SORT_COLUMN_CHOICES = {"term", "code", "substance", "label_date"}
SORT_ORDER_CHOICES = {"asc", "desc"}

# [DATA SERIALIZATION]
###############################################################################
MEDDRA_COLUMNS = ["id", "meddra_code", "meddra_term", "meddra_tty"]
NDC_CODE_COLUMNS = ["id", "ndc_code", "product_name"]
PRODUCT_NDC_COLUMNS = ["product_id", "ndc_id"]
PRODUCT_AE_COLUMNS = [
    "id",
    "product_id",
    "meddra_id",
    "label_date",
    "warning",
    "blackbox",
    "exact_match",
]
PRODUCT_IND_COLUMNS = ["id", "product_id", "meddra_id", "label_date", "exact_match"]

VOCABULARY_TABLES: dict[str, list[str]] = {
    "MEDDRA": MEDDRA_COLUMNS,
    "NDC_CODE": NDC_CODE_COLUMNS,
    "PRODUCT_NDC": PRODUCT_NDC_COLUMNS,
    "PRODUCT_AE": PRODUCT_AE_COLUMNS,
    "PRODUCT_IND": PRODUCT_IND_COLUMNS,
}
MISSING_TABLE_MESSAGE = "Table %s does not exist; returning no rows"
