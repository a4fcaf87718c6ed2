"""
app/state.py

Application state for the PleaBargainFHE UI.

All UI state lives in one immutable ``AppState``.  Pages never mutate it;
they dispatch an ``Action`` and store the ``AppState`` returned by
``reduce``.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from pipelines.stats import ALL_JURISDICTIONS
from storage.models import CaseDraft, CaseRecord

TxStatus = Literal["pending", "success", "error"]

# Seconds before a finished transaction banner disappears.
STATUS_DISMISS_AFTER: dict[str, float] = {
    "success": 2.0,
    "error": 3.0,
}


class TransactionStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    visible: bool = False
    status: TxStatus = "pending"
    message: str = ""
    expires_at: float | None = None


class AppState(BaseModel):
    model_config = ConfigDict(frozen=True)

    account: str = ""
    loading: bool = True
    is_refreshing: bool = False
    cases: tuple[CaseRecord, ...] = ()
    show_create_form: bool = False
    creating: bool = False
    draft: CaseDraft = Field(default_factory=CaseDraft)
    search_term: str = ""
    selected_jurisdiction: str = ALL_JURISDICTIONS
    expanded_case_id: str | None = None
    tx: TransactionStatus = Field(default_factory=TransactionStatus)


ActionKind = Literal[
    "account_changed",
    "refresh_started",
    "refresh_finished",
    "open_create_form",
    "close_create_form",
    "draft_changed",
    "create_started",
    "create_finished",
    "create_succeeded",
    "status",
    "tick",
    "search_changed",
    "jurisdiction_selected",
    "analysis_toggled",
]


class Action(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ActionKind
    data: dict[str, Any] = Field(default_factory=dict)


def action(kind: ActionKind, **data: Any) -> Action:
    return Action(kind=kind, data=data)


def _status(status: TxStatus, message: str, now: float) -> TransactionStatus:
    ttl = STATUS_DISMISS_AFTER.get(status)
    return TransactionStatus(
        visible=True,
        status=status,
        message=message,
        expires_at=None if ttl is None else now + ttl,
    )


def reduce(state: AppState, act: Action) -> AppState:
    """Return the state that results from applying *act* to *state*."""
    kind, data = act.kind, act.data

    if kind == "account_changed":
        return state.model_copy(update={"account": data.get("account") or ""})

    if kind == "refresh_started":
        return state.model_copy(update={"is_refreshing": True})

    if kind == "refresh_finished":
        update: dict[str, Any] = {"is_refreshing": False, "loading": False}
        if data.get("cases") is not None:
            update["cases"] = tuple(data["cases"])
        return state.model_copy(update=update)

    if kind == "open_create_form":
        return state.model_copy(update={"show_create_form": True})

    if kind == "close_create_form":
        return state.model_copy(update={"show_create_form": False})

    if kind == "draft_changed":
        draft = state.draft.model_copy(update=data)
        return state.model_copy(update={"draft": draft})

    if kind == "create_started":
        return state.model_copy(update={"creating": True})

    if kind == "create_finished":
        return state.model_copy(update={"creating": False})

    if kind == "create_succeeded":
        return state.model_copy(update={"show_create_form": False, "draft": CaseDraft()})

    if kind == "status":
        tx = _status(data["status"], data["message"], data["now"])
        return state.model_copy(update={"tx": tx})

    if kind == "tick":
        tx = state.tx
        if tx.visible and tx.expires_at is not None and data["now"] >= tx.expires_at:
            return state.model_copy(update={"tx": TransactionStatus()})
        return state

    if kind == "search_changed":
        return state.model_copy(update={"search_term": data.get("search_term") or ""})

    if kind == "jurisdiction_selected":
        return state.model_copy(
            update={"selected_jurisdiction": data.get("jurisdiction") or ALL_JURISDICTIONS}
        )

    if kind == "analysis_toggled":
        case_id = data.get("case_id")
        expanded = None if state.expanded_case_id == case_id else case_id
        return state.model_copy(update={"expanded_case_id": expanded})

    raise ValueError(f"Unknown action '{kind}'")
