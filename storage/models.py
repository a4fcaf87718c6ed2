"""
storage/models.py

Pydantic v2 data models for PleaBargainFHE case records.

``CaseRecord`` is the in-memory shape used by the UI.  On the contract it is
stored as a compact JSON object whose field names follow the original
browser client (``data``, ``timestamp``, ``crimeType``, ``fheAnalysis`` ...);
the aliases below carry that mapping so ``to_wire`` / ``from_wire`` stay the
only place the two shapes meet.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


PENDING_ANALYSIS = "Pending FHE Analysis"


def is_pending_analysis(text: str | None) -> bool:
    """Blank text, or text still carrying the "Pending" marker, counts as not analysed."""
    return not (text or "").strip() or "Pending" in text


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Jurisdiction(str, Enum):
    federal = "Federal"
    state = "State"
    county = "County"
    municipal = "Municipal"


class CrimeType(str, Enum):
    drug = "Drug"
    property = "Property"
    violent = "Violent"
    white_collar = "White Collar"
    other = "Other"


class AnalysisState(str, Enum):
    """Lifecycle of a record's analysis text."""
    pending = "pending"
    completed = "completed"


JURISDICTIONS: list[str] = [j.value for j in Jurisdiction]
CRIME_TYPES: list[str] = [c.value for c in CrimeType]


# ---------------------------------------------------------------------------
# Domain models
# ---------------------------------------------------------------------------


class CaseDraft(BaseModel):
    """Form input collected before a case is submitted."""
    model_config = ConfigDict(populate_by_name=True)

    jurisdiction: str = ""
    crime_type: str = Field(default="", alias="crimeType")
    outcome: str = ""
    details: str = ""

    @property
    def is_complete(self) -> bool:
        return all(v.strip() for v in (self.jurisdiction, self.crime_type, self.outcome))

    def payload_fields(self) -> dict[str, str]:
        """Fields fed to the payload codec, in the original key order."""
        return {
            "jurisdiction": self.jurisdiction,
            "crimeType": self.crime_type,
            "outcome": self.outcome,
            "details": self.details,
        }


class CaseRecord(BaseModel):
    """
    One plea-bargain case as stored under ``case_<id>``.

    ``id`` is not part of the stored object; it comes from the key.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(exclude=True)
    encrypted_data: str = Field(default="", alias="data")
    timestamp: int
    jurisdiction: str = ""
    crime_type: str = Field(default="", alias="crimeType")
    outcome: str = ""
    fhe_analysis: str = Field(default=PENDING_ANALYSIS, alias="fheAnalysis")

    @property
    def analysis_state(self) -> AnalysisState:
        if is_pending_analysis(self.fhe_analysis):
            return AnalysisState.pending
        return AnalysisState.completed

    @property
    def short_id(self) -> str:
        return self.id[:6]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_wire(cls, case_id: str, data: dict[str, Any]) -> "CaseRecord":
        fields = dict(data)
        fields.pop("id", None)
        # null / empty analysis text is read as still pending
        if not fields.get("fheAnalysis"):
            fields.pop("fheAnalysis", None)
        return cls(id=case_id, **fields)
