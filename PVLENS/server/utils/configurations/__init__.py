from __future__ import annotations

from PVLENS.server.utils.configurations.base import (
    ensure_mapping,
    load_configuration_data,
)

from PVLENS.server.utils.configurations.server import (
    DatabaseSettings,
    FastAPISettings,
    ScoringSettings,
    SearchSettings,
    ServerSettings,
    build_server_settings,
    server_settings,
    get_server_settings,
)

__all__ = [
    "ensure_mapping",
    "load_configuration_data",
    "DatabaseSettings",
    "FastAPISettings",
    "ScoringSettings",
    "SearchSettings",
    "ServerSettings",
    "build_server_settings",
    "server_settings",
    "get_server_settings",
]
