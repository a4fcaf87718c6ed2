"""
pipelines/stats.py

Search, filtering and summary statistics over loaded case records.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from pydantic import BaseModel

from storage.models import AnalysisState, CaseRecord

ALL_JURISDICTIONS = "all"


class CaseStats(BaseModel):
    total: int = 0
    jurisdiction_counts: dict[str, int] = {}
    crime_type_counts: dict[str, int] = {}
    analyses_completed: int = 0

    @property
    def jurisdictions(self) -> int:
        return len(self.jurisdiction_counts)

    @property
    def crime_types(self) -> int:
        return len(self.crime_type_counts)


def compute_stats(cases: Iterable[CaseRecord]) -> CaseStats:
    cases = list(cases)
    return CaseStats(
        total=len(cases),
        jurisdiction_counts=dict(Counter(c.jurisdiction for c in cases)),
        crime_type_counts=dict(Counter(c.crime_type for c in cases)),
        analyses_completed=sum(1 for c in cases if c.analysis_state == AnalysisState.completed),
    )


def filter_cases(
    cases: Iterable[CaseRecord],
    search_term: str = "",
    jurisdiction: str = ALL_JURISDICTIONS,
) -> list[CaseRecord]:
    """
    Keep cases whose crime type or jurisdiction contains *search_term*
    (case-insensitive) and, unless *jurisdiction* is ``"all"``, whose
    jurisdiction equals it exactly.
    """
    term = (search_term or "").lower()
    out = []
    for c in cases:
        matches_search = term in c.crime_type.lower() or term in c.jurisdiction.lower()
        matches_jurisdiction = jurisdiction == ALL_JURISDICTIONS or c.jurisdiction == jurisdiction
        if matches_search and matches_jurisdiction:
            out.append(c)
    return out
