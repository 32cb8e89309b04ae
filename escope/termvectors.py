"""Term vectors of a document and their text rendering."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from escope.formatting import format_table
from escope.stats import ElasticClient
from escope.util import EscopeError

MAX_TERM_DISPLAY = 28
TERM_KEEP = 25


@dataclass
class TermInfo:
    """One term of one field with its frequency."""

    field: str
    term: str
    term_freq: int = 0


def _dict_or_none(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def _parse_term_info(field_name: str, term_name: str, term_data: dict) -> TermInfo:
    info = TermInfo(field=field_name, term=term_name)
    freq = term_data.get("term_freq")
    if isinstance(freq, (int, float)) and not isinstance(freq, bool):
        info.term_freq = int(freq)
    return info


class TermvectorsService:
    """Reads the term vectors of a document."""

    def __init__(self, client: ElasticClient) -> None:
        self.client = client

    def get_document_termvectors(
        self, index_name: str, document_id: str, fields: Sequence[str]
    ) -> list[TermInfo]:
        """Return every term of the requested fields of one document."""
        try:
            result = self.client.get_termvectors(index_name, document_id, fields)
        except Exception as exc:
            raise EscopeError(f"termvectors request failed: {exc}") from exc

        docs = _dict_or_none(result.get("docs"))
        if docs is not None:
            term_vectors = _dict_or_none(docs.get("term_vectors"))
        else:
            term_vectors = _dict_or_none(result.get("term_vectors"))

        if term_vectors is None:
            return []

        infos = []
        for field_name, field_data in term_vectors.items():
            field_dict = _dict_or_none(field_data)
            terms = _dict_or_none(field_dict.get("terms")) if field_dict else None
            if terms is None:
                continue
            infos.extend(
                _parse_term_info(field_name, term_name, term_data)
                for term_name, term_data in terms.items()
                if isinstance(term_data, dict)
            )
        return infos


def _group_by_field(term_infos: Iterable[TermInfo]) -> dict[str, list[TermInfo]]:
    groups: dict[str, list[TermInfo]] = defaultdict(list)
    for info in term_infos:
        groups[info.field].append(info)
    return groups


def format_termvectors_table(term_infos: Sequence[TermInfo]) -> str:
    """Render one table per field, terms by descending frequency."""
    if not term_infos:
        return "No term vectors found\n"

    groups = _group_by_field(term_infos)
    parts = []
    for field_name in sorted(groups):
        terms = sorted(groups[field_name], key=lambda info: info.term_freq, reverse=True)
        parts.append(f"\nField: {field_name} ({len(terms)} terms)\n")
        rows = [
            [
                info.term if len(info.term) <= MAX_TERM_DISPLAY else info.term[:TERM_KEEP] + "...",
                str(info.term_freq),
            ]
            for info in terms
        ]
        parts.append(format_table(["Term", "Frequency"], rows))
    return "".join(parts)


def format_term_search_result(term_infos: Sequence[TermInfo], search_term: str) -> str:
    """Render where a term occurs and how often."""
    found = [info for info in term_infos if info.term == search_term]
    if not found:
        return "\nSEARCH TERM NOT FOUND!\n\n"

    parts = [
        "\nSEARCH TERM FOUND!\n\n",
        f"------- term: {search_term} -------\n\n",
        " Field            │ Frequency      \n",
        "─────────────────────────────────────\n",
    ]
    parts.extend(f" {info.field:<16} │ {info.term_freq:<15d}  \n" for info in found)
    parts.append("\n")
    return "".join(parts)


def format_summary(term_infos: Sequence[TermInfo]) -> str:
    """Render totals and a per-field breakdown of term vectors."""
    if not term_infos:
        return "No term vectors to summarize\n"

    groups = _group_by_field(term_infos)
    max_freq = max(0, *(info.term_freq for info in term_infos))

    parts = [
        "\nTERM VECTORS SUMMARY\n",
        "─────────────────────\n",
        f"Total Terms: {len(term_infos)}\n",
        f"Fields Analyzed: {len(groups)}\n",
        f"Highest Frequency: {max_freq}\n\n",
        "FIELD BREAKDOWN\n",
        "────────────────\n",
    ]
    parts.extend(f"   • {name}: {len(terms)} terms\n" for name, terms in groups.items())
    parts.append("\n")
    return "".join(parts)