"""Saved set and conference routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from loteria.db import get_optional_session
from loteria.schemas.conference import AutoCheckResponseSchema, ManualCheckSchema
from loteria.schemas.generate import SaveSetRequestSchema
from loteria.schemas.saved_set import view_saved_set
from loteria.services.conference_service import ConferenceService
from loteria.services.history_service import HistoryService
from loteria.utils.responses import created, ok

history_bp = Blueprint("history", __name__)

_save_schema = SaveSetRequestSchema()
_manual_schema = ManualCheckSchema()
_auto_check_schema = AutoCheckResponseSchema()
_history = HistoryService()


def _conference() -> ConferenceService:
    return ConferenceService(lookup=current_app.extensions["draw_results"])


@history_bp.get("/history")
def list_saved_sets():
    """List saved sets, newest first."""

    session = get_optional_session()
    return ok([view_saved_set(s) for s in _history.list_sets(session)])


@history_bp.post("/history")
def save_set():
    """Save generated combinations (plain set or teimosinha)."""

    payload = request.get_json(silent=True) or {}
    data = _save_schema.load(payload)

    session = get_optional_session()
    saved = _history.save_generated(
        session,
        variant_id=str(data["variant"]),
        combinations=data["combinations"],
        target_contest=int(data["target_contest"]),
        teimosinha_contests=data.get("teimosinha_contests"),
    )
    return created(view_saved_set(saved))


@history_bp.get("/history/<set_id>")
def get_saved_set(set_id: str):
    """Saved set details; checks official results first when enabled."""

    session = get_optional_session()
    if current_app.config.get("AUTO_CHECK_ON_VIEW"):
        saved = _conference().refresh(session, set_id)
    else:
        saved = _history.get_set(session, set_id)
    return ok(view_saved_set(saved))


@history_bp.delete("/history/<set_id>")
def delete_saved_set(set_id: str):
    session = get_optional_session()
    _history.delete_set(session, set_id)
    return ok({"id": set_id, "deleted": True})


@history_bp.post("/history/<set_id>/manual-check")
def manual_check(set_id: str):
    payload = request.get_json(silent=True) or {}
    data = _manual_schema.load(payload)

    session = get_optional_session()
    saved = _conference().manual_check(session, set_id, data["numbers"])
    return ok(view_saved_set(saved))


@history_bp.delete("/history/<set_id>/manual-check")
def undo_manual_check(set_id: str):
    session = get_optional_session()
    saved = _conference().undo_manual_check(session, set_id)
    return ok(view_saved_set(saved))


@history_bp.post("/history/<set_id>/refresh")
def refresh_saved_set(set_id: str):
    session = get_optional_session()
    saved = _conference().refresh(session, set_id)
    return ok(view_saved_set(saved))


@history_bp.post("/history/auto-check")
def auto_check():
    session = get_optional_session()
    report = _conference().auto_check_all(
        session, max_workers=int(current_app.config.get("AUTO_CHECK_WORKERS", 4))
    )
    return ok(_auto_check_schema.dump(report))
