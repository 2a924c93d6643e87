from __future__ import annotations

import json
import os
from collections.abc import Iterable
from typing import Any

from PVLENS.server.utils.logger import logger
from PVLENS.server.utils.services.text.normalization import normalize_term


###############################################################################
class SynonymDictionary:
    """Symmetric lay-term to clinical-term synonym lookup.

    Terms added together in one group become mutual synonyms. Lookups also
    pick up keys that contain the queried term or are contained in it, so a
    query such as "bad headache" reaches the "headache" group. The dictionary
    is built once and frozen before it is shared across requests.
    """

    def __init__(self) -> None:
        self.entries: dict[str, set[str] | frozenset[str]] = {}
        self.frozen = False

    # -------------------------------------------------------------------------
    @classmethod
    def from_groups(cls, groups: Iterable[Iterable[Any]]) -> SynonymDictionary:
        dictionary = cls()
        for group in groups:
            dictionary.add_group(group)
        dictionary.freeze()
        return dictionary

    # -------------------------------------------------------------------------
    def add_group(self, terms: Iterable[Any]) -> None:
        if self.frozen:
            raise RuntimeError("Synonym dictionary is frozen and cannot be extended")
        normalized: list[str] = []
        for term in terms:
            value = normalize_term(term)
            if value and value not in normalized:
                normalized.append(value)
        for term in normalized:
            related = self.entries.setdefault(term, set())
            related.update(other for other in normalized if other != term)

    # -------------------------------------------------------------------------
    def freeze(self) -> None:
        if self.frozen:
            return
        self.entries = {key: frozenset(values) for key, values in self.entries.items()}
        self.frozen = True

    # -------------------------------------------------------------------------
    def synonyms_of(
        self, term: Any, max_count: int | None = None
    ) -> set[str] | list[str]:
        """Collect the synonyms of a term.

        Without ``max_count`` the full set is returned. With it, the synonyms
        are ordered by length (shorter, more general terms first, ties
        alphabetical) and truncated.
        """
        normalized = normalize_term(term)
        if not normalized:
            return [] if max_count is not None else set()

        collected: set[str] = set(self.entries.get(normalized, ()))
        for key, values in self.entries.items():
            if normalized in key or key in normalized:
                collected.update(values)
                collected.add(key)
        collected.discard(normalized)

        if max_count is None:
            return collected
        ordered = sorted(collected, key=lambda value: (len(value), value))
        return ordered[: max(int(max_count), 0)]

    # -------------------------------------------------------------------------
    def expand(self, term: Any) -> list[str]:
        normalized = normalize_term(term)
        if not normalized:
            return []
        synonyms = sorted(self.synonyms_of(normalized), key=lambda value: (len(value), value))
        return [normalized, *synonyms]

    # -------------------------------------------------------------------------
    def has_synonyms(self, term: Any) -> bool:
        normalized = normalize_term(term)
        if not normalized:
            return False
        return bool(self.entries.get(normalized))

    # -------------------------------------------------------------------------
    def size(self) -> int:
        return len(self.entries)

    # -------------------------------------------------------------------------
    def __len__(self) -> int:
        return self.size()


# -----------------------------------------------------------------------------
def read_synonym_groups(payload: Any) -> list[list[str]]:
    groups: list[list[str]] = []
    if not isinstance(payload, dict):
        return groups
    sections = payload.get("sections")
    if not isinstance(sections, list):
        return groups
    for section in sections:
        if not isinstance(section, dict):
            continue
        entries = section.get("groups")
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if isinstance(entry, list):
                groups.append([str(term) for term in entry if term is not None])
    return groups


# -----------------------------------------------------------------------------
def load_synonym_dictionary(path: str) -> SynonymDictionary:
    if not os.path.exists(path):
        logger.warning("Synonym resource not found at '%s'; using an empty dictionary", path)
        return SynonymDictionary.from_groups([])
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Unable to read synonym resource '%s': %s", path, exc)
        return SynonymDictionary.from_groups([])

    groups = read_synonym_groups(payload)
    if not groups:
        logger.warning("Synonym resource '%s' holds no synonym groups", path)
    dictionary = SynonymDictionary.from_groups(groups)
    logger.info(
        "Loaded %d synonym groups covering %d terms from '%s'",
        len(groups),
        dictionary.size(),
        path,
    )
    return dictionary


__all__ = ["SynonymDictionary", "load_synonym_dictionary", "read_synonym_groups"]
