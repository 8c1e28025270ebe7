"""In-memory catalog search index over tool descriptors.

Every tool is indexed under its ``(tool_id, method)`` key across three
fields: the method name, the description, and the flattened parameter
descriptions of its input schema. Ranking is BM25+ per field, weighted by
a configurable per-field boost (description counts double by default).

Each query term is matched three ways:

- exactly;
- by prefix: the query term starts an indexed term, or an indexed term of
  at least three characters starts the query term;
- fuzzily, within a bounded Levenshtein distance (via ``rapidfuzz``).

Query terms are combined with OR. A tool's score is the sum of its term
scores multiplied by the number of query terms it matched, so tools that
cover more of the query rank first. Ties keep insertion order.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import Dict, Iterator, List, Optional

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from mcp_metaproxy.config.schema import SEARCH_FIELDS
from mcp_metaproxy.constants import DEFAULT_FIELD_BOOST, DEFAULT_FUZZY, MAX_FUZZY_DISTANCE
from mcp_metaproxy.runtime.models import (
    IndexEntry,
    ToolDescriptor,
    ToolKey,
    extract_parameter_descriptions,
)

logger = logging.getLogger(__name__)

__all__ = ["CatalogIndex", "extract_parameter_descriptions", "tokenize"]

# BM25+ parameters
_BM25_K = 1.2
_BM25_B = 0.7
_BM25_D = 0.5

_PREFIX_WEIGHT = 0.375
_FUZZY_WEIGHT = 0.45
_MIN_STEM_LENGTH = 3

_SPLIT_RE = re.compile(r"[\W_]+")


def tokenize(text: str) -> List[str]:
    """Lower-case, split on whitespace, punctuation and underscores."""
    return [t for t in _SPLIT_RE.split(text.lower()) if t]


class CatalogIndex:
    """Keyed, incrementally updated search index of tool descriptors.

    :meth:`upsert` replaces any entry with the same key, so the index never
    holds two entries for one tool.
    """

    def __init__(
        self,
        fuzzy: float = DEFAULT_FUZZY,
        prefix: bool = True,
        boost: Optional[Dict[str, float]] = None,
    ) -> None:
        if fuzzy < 0:
            raise ValueError("fuzzy must be >= 0")
        self._fuzzy = fuzzy
        self._prefix = prefix
        self._boost: Dict[str, float] = dict(DEFAULT_FIELD_BOOST if boost is None else boost)

        self._tools: Dict[ToolKey, ToolDescriptor] = {}
        self._entries: Dict[ToolKey, IndexEntry] = {}
        # term → key → field → term frequency
        self._postings: Dict[str, Dict[ToolKey, Dict[str, int]]] = {}
        self._field_lengths: Dict[ToolKey, Dict[str, int]] = {}
        self._total_field_length: Counter = Counter()

    # ── Population ───────────────────────────────────────────────────

    def upsert(self, tool: ToolDescriptor) -> bool:
        """Insert *tool*, or replace the entry with the same key.

        Returns ``True`` when an existing entry was replaced.
        """
        key = tool.key
        replaced = key in self._tools
        if replaced:
            self._drop_postings(key)

        entry = IndexEntry.from_descriptor(tool)
        lengths: Dict[str, int] = {}
        for field_name in SEARCH_FIELDS:
            terms = tokenize(entry.field_text(field_name))
            lengths[field_name] = len(terms)
            self._total_field_length[field_name] += len(terms)
            for term, freq in Counter(terms).items():
                self._postings.setdefault(term, {}).setdefault(key, {})[field_name] = freq

        self._field_lengths[key] = lengths
        self._entries[key] = entry
        self._tools[key] = tool
        logger.debug("%s catalog entry %s::%s.", "Replaced" if replaced else "Indexed", *key)
        return replaced

    def upsert_all(self, tools: List[ToolDescriptor]) -> int:
        for tool in tools:
            self.upsert(tool)
        return len(tools)

    def remove(self, key: ToolKey) -> bool:
        """Remove the entry for *key*; returns ``False`` if it was absent."""
        if key not in self._tools:
            return False
        self._drop_postings(key)
        del self._tools[key]
        del self._entries[key]
        return True

    def remove_provider(self, tool_id: str) -> int:
        """Remove every entry owned by *tool_id*."""
        keys = [key for key in self._tools if key[0] == tool_id]
        for key in keys:
            self.remove(key)
        if keys:
            logger.info("Removed %d catalog entries owned by '%s'.", len(keys), tool_id)
        return len(keys)

    def _drop_postings(self, key: ToolKey) -> None:
        for field_name, length in self._field_lengths.pop(key, {}).items():
            self._total_field_length[field_name] -= length
        for term in tokenize(" ".join(self._entries[key].field_text(f) for f in SEARCH_FIELDS)):
            postings = self._postings.get(term)
            if postings is None:
                continue
            postings.pop(key, None)
            if not postings:
                del self._postings[term]

    # ── Search ───────────────────────────────────────────────────────

    def search(self, query: str, limit: int) -> List[ToolDescriptor]:
        """Return at most *limit* tools ranked against *query*."""
        if limit <= 0 or not self._tools:
            return []
        query_terms = list(dict.fromkeys(tokenize(query)))
        if not query_terms:
            return []

        scores: Dict[ToolKey, float] = {}
        coverage: Dict[ToolKey, int] = {}
        vocabulary = list(self._postings)
        for query_term in query_terms:
            term_scores = self._score_term(query_term, vocabulary)
            for key, score in term_scores.items():
                scores[key] = scores.get(key, 0.0) + score
                coverage[key] = coverage.get(key, 0) + 1

        position = {key: i for i, key in enumerate(self._tools)}
        ranked = sorted(scores, key=lambda k: (-scores[k] * coverage[k], position[k]))
        logger.debug(
            "Search '%s': %d candidate(s), returning up to %d.", query, len(ranked), limit
        )
        return [self._tools[key] for key in ranked[:limit]]

    def _score_term(self, query_term: str, vocabulary: List[str]) -> Dict[ToolKey, float]:
        term_scores: Dict[ToolKey, float] = {}
        doc_count = len(self._tools)
        for term, weight in self._expand(query_term, vocabulary).items():
            postings = self._postings[term]
            field_doc_freq = Counter(f for fields in postings.values() for f in fields)
            for key, fields in postings.items():
                for field_name, freq in fields.items():
                    score = self._bm25(
                        freq,
                        field_doc_freq[field_name],
                        doc_count,
                        self._field_lengths[key][field_name],
                        self._total_field_length[field_name] / doc_count,
                    )
                    term_scores[key] = term_scores.get(key, 0.0) + (
                        weight * self._boost.get(field_name, 1.0) * score
                    )
        return term_scores

    def _expand(self, query_term: str, vocabulary: List[str]) -> Dict[str, float]:
        """Map indexed terms matching *query_term* to their match weight."""
        matches: Dict[str, float] = {}
        if query_term in self._postings:
            matches[query_term] = 1.0

        if self._prefix:
            for term in vocabulary:
                if term == query_term:
                    continue
                if term.startswith(query_term):
                    shorter, distance = len(query_term), len(term) - len(query_term)
                elif len(term) >= _MIN_STEM_LENGTH and query_term.startswith(term):
                    shorter, distance = len(term), len(query_term) - len(term)
                else:
                    continue
                matches[term] = _PREFIX_WEIGHT * shorter / (shorter + 0.3 * distance)

        max_distance = self._max_distance(query_term)
        if max_distance > 0:
            for term, distance, _ in process.extract(
                query_term,
                vocabulary,
                scorer=Levenshtein.distance,
                score_cutoff=max_distance,
                limit=None,
            ):
                if distance == 0 or term in matches:
                    continue
                matches[term] = _FUZZY_WEIGHT * len(query_term) / (len(query_term) + distance)
        return matches

    def _max_distance(self, query_term: str) -> int:
        if self._fuzzy < 1:
            distance = int(self._fuzzy * len(query_term) + 0.5)
        else:
            distance = int(self._fuzzy)
        return min(distance, MAX_FUZZY_DISTANCE)

    @staticmethod
    def _bm25(freq: int, doc_freq: int, doc_count: int, length: int, avg_length: float) -> float:
        idf = math.log(1 + (doc_count - doc_freq + 0.5) / (doc_freq + 0.5))
        norm = 1 - _BM25_B + _BM25_B * (length / avg_length if avg_length else 1.0)
        return idf * (_BM25_D + freq * (_BM25_K + 1) / (freq + _BM25_K * norm))

    # ── Lookup ───────────────────────────────────────────────────────

    def get(self, key: ToolKey) -> Optional[ToolDescriptor]:
        return self._tools.get(key)

    def get_entry(self, key: ToolKey) -> Optional[IndexEntry]:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(list(self._tools.values()))

    @property
    def document_count(self) -> int:
        return len(self._tools)

    @property
    def keys(self) -> List[ToolKey]:
        return list(self._tools)
