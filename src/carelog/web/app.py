"""JSON web API over the care facade."""

import json
from contextlib import contextmanager

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from carelog.config import get_config
from carelog.core.clock import Clock
from carelog.core.errors import Unauthenticated, ValidationError
from carelog.core.facade import open_facade
from carelog.core.shifts import SHIFT_LABELS, relevant_categories
from carelog.db.engine import get_db
from carelog.db.models import completion_to_dict, entry_to_dict, progress_to_dict, task_to_dict

STAFF_HEADER = "x-staff-id"


@contextmanager
def _facade(request: Request):
    config = get_config()
    with get_db(config.db_path) as db:
        yield open_facade(
            db,
            config,
            staff_id=request.headers.get(STAFF_HEADER),
            clock=request.app.state.clock,
        )


async def _body(request: Request, allowed: set[str]) -> dict:
    data = await request.json()
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    unknown = set(data) - allowed
    if unknown:
        raise ValidationError(f"Unexpected fields: {', '.join(sorted(unknown))}")
    return data


# ── Handlers ──────────────────────────────────────────────────────────────────


async def api_shift(request: Request):
    with _facade(request) as facade:
        shift = facade.current_shift()
        return JSONResponse({
            "shift": shift,
            "label": SHIFT_LABELS[shift],
            "relevant_categories": list(relevant_categories(shift)),
            "today": facade.clock.today(),
        })


async def api_list_tasks(request: Request):
    category = request.query_params.get("category")
    with _facade(request) as facade:
        tasks = facade.checklist_items(category)
        return JSONResponse([task_to_dict(t) for t in tasks])


async def api_get_task(request: Request):
    task_id = request.path_params["task_id"]
    with _facade(request) as facade:
        task = facade.task(task_id)
        if not task:
            return JSONResponse({"error": "Task not found"}, status_code=404)
        return JSONResponse(task_to_dict(task))


async def api_list_completions(request: Request):
    resident_id = request.path_params["resident_id"]
    with _facade(request) as facade:
        events = facade.completions(resident_id, request.query_params.get("date"))
        return JSONResponse([completion_to_dict(e) for e in events])


async def api_create_completion(request: Request):
    resident_id = request.path_params["resident_id"]
    data = await _body(request, {"task_id", "notes", "skipped", "skip_reason"})
    if "task_id" not in data:
        raise ValidationError("task_id is required")
    with _facade(request) as facade:
        event = facade.complete_task(
            data["task_id"],
            resident_id,
            notes=data.get("notes"),
            skipped=data.get("skipped", False),
            skip_reason=data.get("skip_reason"),
        )
        return JSONResponse(completion_to_dict(event), status_code=201)


async def api_update_completion(request: Request):
    completion_id = request.path_params["completion_id"]
    data = await _body(request, {"notes", "skipped", "skip_reason"})
    with _facade(request) as facade:
        event = facade.update_completion(completion_id, **data)
        if not event:
            return JSONResponse({"error": "Completion not found"}, status_code=404)
        return JSONResponse(completion_to_dict(event))


async def api_delete_completion(request: Request):
    completion_id = request.path_params["completion_id"]
    with _facade(request) as facade:
        removed = facade.uncomplete_task(completion_id, request.query_params.get("resident"))
        return JSONResponse({"id": completion_id, "removed": removed})


async def api_progress(request: Request):
    resident_id = request.path_params["resident_id"]
    with _facade(request) as facade:
        day = request.query_params.get("date")
        result = progress_to_dict(facade.progress(resident_id, day))
        result["waiting_on"] = facade.dependency_hints(resident_id, day)
        return JSONResponse(result)


async def api_list_entries(request: Request):
    params = request.query_params
    with _facade(request) as facade:
        entries = facade.journal_entries(
            params.get("resident"), params.get("shift"), params.get("date")
        )
        return JSONResponse([entry_to_dict(e) for e in entries])


async def api_create_entry(request: Request):
    data = await _body(
        request, {"content", "resident_id", "is_handover", "priority", "tags", "audio_url"}
    )
    if not data.get("content"):
        raise ValidationError("content is required")
    with _facade(request) as facade:
        entry = facade.create_entry(
            data["content"],
            resident_id=data.get("resident_id"),
            is_handover=data.get("is_handover", False),
            priority=data.get("priority", "normal"),
            tags=data.get("tags"),
            audio_url=data.get("audio_url"),
        )
        return JSONResponse(entry_to_dict(entry), status_code=201)


async def api_update_entry(request: Request):
    entry_id = request.path_params["entry_id"]
    data = await _body(request, {"content", "priority", "tags", "is_handover"})
    with _facade(request) as facade:
        entry = facade.update_entry(entry_id, **data)
        if not entry:
            return JSONResponse({"error": "Entry not found"}, status_code=404)
        return JSONResponse(entry_to_dict(entry))


async def api_delete_entry(request: Request):
    entry_id = request.path_params["entry_id"]
    with _facade(request) as facade:
        deleted = facade.delete_entry(entry_id)
        return JSONResponse({"id": entry_id, "deleted": deleted})


async def api_attach_audio(request: Request):
    entry_id = request.path_params["entry_id"]
    data = await _body(request, {"audio_url"})
    if not data.get("audio_url"):
        raise ValidationError("audio_url is required")
    with _facade(request) as facade:
        entry = facade.attach_voice_note(entry_id, data["audio_url"])
        if not entry:
            return JSONResponse({"error": "Entry not found"}, status_code=404)
        return JSONResponse(entry_to_dict(entry))


async def api_handover(request: Request):
    shift = request.path_params["shift"]
    with _facade(request) as facade:
        entries = facade.handover_summary(shift, request.query_params.get("date"))
        return JSONResponse([entry_to_dict(e) for e in entries])


# ── Error handlers ────────────────────────────────────────────────────────────


async def _unauthenticated(request: Request, exc: Exception):
    return JSONResponse({"error": str(exc)}, status_code=401)


async def _bad_request(request: Request, exc: Exception):
    return JSONResponse({"error": str(exc)}, status_code=400)


# ── App ───────────────────────────────────────────────────────────────────────


def create_app(clock: Clock | None = None) -> Starlette:
    routes = [
        Route("/api/shift", api_shift),
        Route("/api/tasks", api_list_tasks),
        Route("/api/tasks/{task_id}", api_get_task),
        Route("/api/residents/{resident_id}/completions", api_list_completions, methods=["GET"]),
        Route("/api/residents/{resident_id}/completions", api_create_completion, methods=["POST"]),
        Route("/api/residents/{resident_id}/progress", api_progress),
        Route("/api/completions/{completion_id}", api_update_completion, methods=["PATCH"]),
        Route("/api/completions/{completion_id}", api_delete_completion, methods=["DELETE"]),
        Route("/api/journal", api_list_entries, methods=["GET"]),
        Route("/api/journal", api_create_entry, methods=["POST"]),
        Route("/api/journal/{entry_id}", api_update_entry, methods=["PATCH"]),
        Route("/api/journal/{entry_id}", api_delete_entry, methods=["DELETE"]),
        Route("/api/journal/{entry_id}/audio", api_attach_audio, methods=["POST"]),
        Route("/api/handover/{shift}", api_handover),
    ]
    app = Starlette(
        routes=routes,
        exception_handlers={
            Unauthenticated: _unauthenticated,
            ValidationError: _bad_request,
            json.JSONDecodeError: _bad_request,
        },
    )
    app.state.clock = clock
    return app


def run_server(host: str = "127.0.0.1", port: int = 8787):
    app = create_app()
    uvicorn.run(app, host=host, port=port)
