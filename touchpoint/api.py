"""
touchpoint/api.py
─────────────────────────────────────────────────────────────────────────────
Touchpoint: dual-mode API layer

TWO USAGE MODES:
  1. Importable module:
         from touchpoint.api import TouchpointAPI
         api = TouchpointAPI(db_path=Path("touchpoint.db"))
         touchpoints = api.list_touchpoints()

  2. FastAPI HTTP server (local web or widget UI via fetch()):
         python -m touchpoint.api                  # default: port 8766
         python -m touchpoint.api --port 9000
         uvicorn touchpoint.api:app --port 8766

ENDPOINTS:
  GET    /touchpoints              ranked list, most urgent first (?category=)
  POST   /touchpoints              create a touchpoint
  GET    /touchpoints/{id}         single touchpoint with urgency
  POST   /touchpoints/{id}/reset   contact made: last_contact_at = now
  DELETE /touchpoints/{id}         remove permanently
  GET    /summary                  counts by severity and category
  GET    /health                   status and db existence

CORS: localhost-only. The server binds to 127.0.0.1 by default.

ERRORS:
  ValidationError     → 400
  RecordNotFoundError → 404
  PersistenceError    → 500 (nothing was changed; retry is safe)
"""

import logging
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from touchpoint.errors import PersistenceError, RecordNotFoundError, ValidationError
from touchpoint.models.record import TouchpointRecord
from touchpoint.ranking import RankedTouchpoint
from touchpoint.stores.sqlite_store import SqliteTouchpointStore
from touchpoint.tracker import TouchpointTracker
from touchpoint.urgency import classify, severity
from touchpoint.validation import parse_category

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# ═══════════════════════════════════════════════════════════════════════════
# IMPORTABLE CLASS
# ═══════════════════════════════════════════════════════════════════════════

class TouchpointAPI:
    """
    Pure-Python API wrapper around touchpoint.db. Returns plain dicts.
    No HTTP layer required. Import and call directly.

    Usage:
        api = TouchpointAPI(db_path=Path("touchpoint.db"))
        api.create_touchpoint(name="Jane", channel="+16125550002", cadence="weekly")
        api.list_touchpoints(category="personal")
        api.reset_touchpoint(touchpoint_id)
    """

    def __init__(
        self,
        db_path: Path = Path("touchpoint.db"),
        tz:      Optional[tzinfo] = None,
        tracker: Optional[TouchpointTracker] = None,
    ):
        self.db_path = Path(db_path)
        self.tracker = tracker or TouchpointTracker(SqliteTouchpointStore(self.db_path), tz=tz)

    # ── SERIALIZATION ─────────────────────────────────────────────────────

    @staticmethod
    def _record_to_dict(record: TouchpointRecord) -> Dict[str, Any]:
        return {
            "id":               record.id,
            "name":             record.name,
            "channel":          record.channel,
            "cadence_days":     record.cadence_days,
            "last_contact_at":  record.last_contact_at.isoformat(),
            "preferred_action": record.preferred_action.value,
            "category":         record.category.value if record.category else None,
        }

    @classmethod
    def _entry_to_dict(cls, entry: RankedTouchpoint) -> Dict[str, Any]:
        d = cls._record_to_dict(entry.record)
        d.update({
            "urgency_days": entry.urgency_days,
            "status":       entry.status.kind.value,
            "status_label": entry.status.label,
            "severity":     entry.severity.value,
        })
        return d

    def _with_urgency(self, record: TouchpointRecord, now: Optional[datetime] = None) -> Dict[str, Any]:
        urgency_days, status = classify(
            record.cadence_days, record.last_contact_at, now or self.tracker.now(), self.tracker.tz
        )
        return self._entry_to_dict(RankedTouchpoint(
            record       = record,
            urgency_days = urgency_days,
            status       = status,
            severity     = severity(urgency_days),
        ))

    # ── QUERIES ───────────────────────────────────────────────────────────

    def list_touchpoints(
        self,
        category: Optional[str] = None,
        now:      Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """Ranked touchpoints, most urgent first. category: personal / business."""
        view = self.tracker.ranked_view(now=now, category=parse_category(category))
        return [self._entry_to_dict(e) for e in view]

    def get_touchpoint(self, touchpoint_id: str) -> Optional[Dict[str, Any]]:
        """Single touchpoint with urgency. None if not found."""
        try:
            record = self.tracker.store.get(touchpoint_id)
        except RecordNotFoundError:
            return None
        return self._with_urgency(record)

    def get_summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return self.tracker.summary(now=now)

    # ── MUTATIONS ─────────────────────────────────────────────────────────

    def create_touchpoint(
        self,
        name:     str,
        channel:  str,
        cadence:  Any = 7,
        action:   str = "message",
        category: Optional[str] = None,
    ) -> Dict[str, Any]:
        record = self.tracker.create(name, channel, cadence, action, category)
        return self._with_urgency(record)

    def reset_touchpoint(self, touchpoint_id: str) -> Dict[str, Any]:
        record = self.tracker.reset(touchpoint_id)
        return self._with_urgency(record)

    def delete_touchpoint(self, touchpoint_id: str) -> None:
        self.tracker.delete(touchpoint_id)


# ═══════════════════════════════════════════════════════════════════════════
# FASTAPI HTTP APP
# ═══════════════════════════════════════════════════════════════════════════

def _build_app(db_path: Path = Path("touchpoint.db"), tz: Optional[tzinfo] = None) -> FastAPI:
    """
    Build and return the FastAPI application instance.
    Called once at module level or on demand.
    """
    _api = TouchpointAPI(db_path=db_path, tz=tz)

    _app = FastAPI(
        title       = "Touchpoint API",
        description = "Recurring contact cadence tracker, local API",
        version     = API_VERSION,
        docs_url    = "/docs",
        redoc_url   = None,
    )

    _app.add_middleware(
        CORSMiddleware,
        allow_origins     = [
            "http://localhost",
            "http://localhost:8766",
            "http://127.0.0.1",
            "http://127.0.0.1:8766",
            "null",   # file:// origin
        ],
        allow_methods     = ["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers     = ["Content-Type"],
        allow_credentials = False,
    )

    # ── REQUEST MODELS ──────────────────────────────────────────────────

    class TouchpointCreate(BaseModel):
        name:             str
        channel:          str
        cadence:          Union[str, int] = 7   # daily / weekly / monthly / 1..365
        preferred_action: str = "message"        # message / call / meet_up
        category:         Optional[str] = None   # personal / business

    # ── ENDPOINTS ───────────────────────────────────────────────────────

    @_app.get("/touchpoints", summary="Ranked touchpoints")
    def list_touchpoints(
        category: Optional[str] = Query(None, description="Filter: personal, business"),
    ):
        """Most overdue first; ties ordered by id."""
        try:
            data = _api.list_touchpoints(category=category)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except PersistenceError as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        return {"count": len(data), "touchpoints": data}

    @_app.post("/touchpoints", status_code=201, summary="Create a touchpoint")
    def create_touchpoint(req: TouchpointCreate):
        try:
            return _api.create_touchpoint(
                name     = req.name,
                channel  = req.channel,
                cadence  = req.cadence,
                action   = req.preferred_action,
                category = req.category,
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except PersistenceError as exc:
            logger.error(f"Create failed: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(exc))

    @_app.get("/touchpoints/{touchpoint_id}", summary="Get single touchpoint")
    def get_touchpoint(touchpoint_id: str):
        try:
            data = _api.get_touchpoint(touchpoint_id)
        except PersistenceError as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        if data is None:
            raise HTTPException(status_code=404, detail=f"Touchpoint not found: {touchpoint_id}")
        return data

    @_app.post("/touchpoints/{touchpoint_id}/reset", summary="Mark contact made")
    def reset_touchpoint(touchpoint_id: str):
        try:
            return _api.reset_touchpoint(touchpoint_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
        except PersistenceError as exc:
            logger.error(f"Reset failed: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(exc))

    @_app.delete("/touchpoints/{touchpoint_id}", summary="Delete a touchpoint")
    def delete_touchpoint(touchpoint_id: str):
        try:
            _api.delete_touchpoint(touchpoint_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
        except PersistenceError as exc:
            logger.error(f"Delete failed: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(exc))
        return {"status": "ok", "deleted": touchpoint_id}

    @_app.get("/summary", summary="Counts by severity and category")
    def get_summary():
        try:
            return _api.get_summary()
        except PersistenceError as exc:
            raise HTTPException(status_code=500, detail=str(exc))

    @_app.get("/health", summary="Health check")
    def health():
        return {
            "status":    "ok",
            "db_exists": _api.db_path.exists(),
            "db_path":   str(_api.db_path),
            "version":   API_VERSION,
        }

    return _app


# Module-level app instance, used by uvicorn touchpoint.api:app
# The store opens touchpoint.db on first request, not at import.
app = _build_app()


# ═══════════════════════════════════════════════════════════════════════════
# CLI ENTRYPOINT: python -m touchpoint.api
# ═══════════════════════════════════════════════════════════════════════════

def serve(db_path: Path, host: str = "127.0.0.1", port: int = 8766, tz: Optional[tzinfo] = None) -> None:
    import uvicorn

    server_app = _build_app(db_path=db_path, tz=tz)
    logger.info(f"Touchpoint API at http://{host}:{port} | db={db_path}")
    uvicorn.run(
        server_app,
        host      = host,
        port      = port,
        log_level = "info",
    )


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(
        prog        = "touchpoint.api",
        description = "Touchpoint API Server. Serves the local UI on localhost",
    )
    parser.add_argument("--port", type=int, default=8766,
                        help="Port to bind (default: 8766)")
    parser.add_argument("--db",   type=str, default="touchpoint.db",
                        help="Path to touchpoint.db (default: touchpoint.db)")
    parser.add_argument("--host", type=str, default="127.0.0.1",
                        help="Host to bind. DO NOT change to 0.0.0.0 on shared networks")
    args = parser.parse_args()

    logging.basicConfig(
        level   = logging.INFO,
        format  = '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt = '%H:%M:%S',
    )
    serve(Path(args.db), host=args.host, port=args.port)
