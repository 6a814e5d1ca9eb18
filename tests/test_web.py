"""Tests for the web API."""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from starlette.testclient import TestClient

from carelog.config import get_config
from carelog.core.clock import Clock
from carelog.core.facade import open_facade
from carelog.db.engine import init_db
from carelog.web.app import create_app

MORNING = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)
STAFF = {"X-Staff-Id": "S1"}


@pytest.fixture
def web_env():
    """Set up a temp database with some seeded records."""
    with tempfile.TemporaryDirectory() as tmp:
        db_path = Path(tmp) / "test.db"
        env = {"CARELOG_DB_PATH": str(db_path), "CARELOG_TIMEZONE": "UTC"}
        old_env = {}
        for k, v in env.items():
            old_env[k] = os.environ.get(k)
            os.environ[k] = v
        old_env["CARELOG_STAFF_ID"] = os.environ.pop("CARELOG_STAFF_ID", None)

        clock = Clock("UTC", now_fn=lambda: MORNING)

        # Seed data
        db = init_db(db_path)
        facade = open_facade(db, get_config(), staff_id="seed", clock=clock)
        facade.complete_task("morning-vitals", "R1")
        facade.create_entry("Good breakfast #appetite", resident_id="R1", is_handover=True)
        facade.create_entry("Quiet ward", is_handover=False)
        db.close()

        yield TestClient(create_app(clock=clock))

        for k, v in old_env.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


class TestShiftAndTasks:
    def test_shift(self, web_env):
        resp = web_env.get("/api/shift")
        assert resp.status_code == 200
        data = resp.json()
        assert data["shift"] == "morning"
        assert data["relevant_categories"] == ["morning", "prn"]
        assert data["today"] == "2026-10-17"

    def test_tasks(self, web_env):
        resp = web_env.get("/api/tasks", params={"category": "prn"})
        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()] == ["prn-pain-assess", "prn-bathroom", "prn-emotional"]

    def test_tasks_bad_category(self, web_env):
        resp = web_env.get("/api/tasks", params={"category": "brunch"})
        assert resp.status_code == 400

    def test_get_task(self, web_env):
        resp = web_env.get("/api/tasks/morning-meds")
        assert resp.status_code == 200
        assert resp.json()["dependencies"] == ["morning-vitals"]

    def test_get_missing_task(self, web_env):
        assert web_env.get("/api/tasks/nope").status_code == 404


class TestCompletionsAPI:
    def test_list(self, web_env):
        resp = web_env.get("/api/residents/R1/completions")
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 1
        assert data[0]["task_id"] == "morning-vitals"
        assert data[0]["staff_id"] == "seed"

    def test_create_requires_staff(self, web_env):
        resp = web_env.post("/api/residents/R1/completions", json={"task_id": "morning-meds"})
        assert resp.status_code == 401
        assert len(web_env.get("/api/residents/R1/completions").json()) == 1

    def test_create(self, web_env):
        resp = web_env.post(
            "/api/residents/R1/completions",
            json={"task_id": "morning-meds", "notes": "with water"},
            headers=STAFF,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["staff_id"] == "S1"
        assert data["completed_at"].startswith("2026-10-17T09:30")

    def test_create_rejects_unknown_fields(self, web_env):
        resp = web_env.post(
            "/api/residents/R1/completions",
            json={"task_id": "morning-meds", "completed_at": "2020-01-01"},
            headers=STAFF,
        )
        assert resp.status_code == 400

    def test_create_bad_json(self, web_env):
        resp = web_env.post(
            "/api/residents/R1/completions", content=b"{not json", headers=STAFF
        )
        assert resp.status_code == 400

    def test_update_and_delete(self, web_env):
        completion_id = web_env.get("/api/residents/R1/completions").json()[0]["id"]

        resp = web_env.patch(f"/api/completions/{completion_id}", json={"notes": "late"}, headers=STAFF)
        assert resp.status_code == 200
        assert resp.json()["notes"] == "late"

        resp = web_env.delete(f"/api/completions/{completion_id}", headers=STAFF)
        assert resp.json()["removed"] is True
        resp = web_env.delete(f"/api/completions/{completion_id}", headers=STAFF)
        assert resp.status_code == 200
        assert resp.json()["removed"] is False

    def test_update_rejects_string_skipped(self, web_env):
        completion_id = web_env.get("/api/residents/R1/completions").json()[0]["id"]
        resp = web_env.patch(f"/api/completions/{completion_id}", json={"skipped": "no"}, headers=STAFF)
        assert resp.status_code == 400
        assert web_env.get("/api/residents/R1/progress").json()["completed"] == 1

    def test_create_rejects_string_skipped(self, web_env):
        resp = web_env.post(
            "/api/residents/R1/completions",
            json={"task_id": "morning-meds", "skipped": "false"},
            headers=STAFF,
        )
        assert resp.status_code == 400
        assert len(web_env.get("/api/residents/R1/completions").json()) == 1

    def test_update_missing(self, web_env):
        resp = web_env.patch("/api/completions/nope", json={"notes": "x"}, headers=STAFF)
        assert resp.status_code == 404

    def test_progress(self, web_env):
        resp = web_env.get("/api/residents/R1/progress")
        assert resp.status_code == 200
        data = resp.json()
        assert data["shift"] == "morning"
        assert data["total"] == 9
        assert data["completed"] == 1
        assert data["required_total"] == 6
        assert data["required_percentage"] == 17
        assert data["waiting_on"] == {}


class TestJournalAPI:
    def test_list_newest_first(self, web_env):
        resp = web_env.get("/api/journal")
        assert resp.status_code == 200
        assert [e["content"] for e in resp.json()] == ["Quiet ward", "Good breakfast #appetite"]

    def test_list_by_resident(self, web_env):
        resp = web_env.get("/api/journal", params={"resident": "R1"})
        data = resp.json()
        assert len(data) == 1
        assert data[0]["tags"] == ["appetite"]

    def test_create(self, web_env):
        resp = web_env.post(
            "/api/journal",
            json={"content": "Shift went well #calm", "is_handover": True},
            headers=STAFF,
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["shift"] == "morning"
        assert data["tags"] == ["calm"]
        assert data["staff_id"] == "S1"

    def test_create_requires_staff(self, web_env):
        resp = web_env.post("/api/journal", json={"content": "x"})
        assert resp.status_code == 401

    def test_create_bad_priority(self, web_env):
        resp = web_env.post("/api/journal", json={"content": "x", "priority": "meh"}, headers=STAFF)
        assert resp.status_code == 400

    def test_handover(self, web_env):
        resp = web_env.get("/api/handover/morning")
        assert resp.status_code == 200
        assert [e["content"] for e in resp.json()] == ["Good breakfast #appetite"]

    def test_handover_bad_shift(self, web_env):
        assert web_env.get("/api/handover/graveyard").status_code == 400

    def test_update_audio_delete(self, web_env):
        entry_id = web_env.get("/api/journal").json()[0]["id"]

        resp = web_env.patch(f"/api/journal/{entry_id}", json={"priority": "high"}, headers=STAFF)
        assert resp.status_code == 200
        assert resp.json()["priority"] == "high"

        resp = web_env.post(f"/api/journal/{entry_id}/audio", json={"audio_url": "v.m4a"}, headers=STAFF)
        assert resp.status_code == 200
        assert resp.json()["audio_url"] == "v.m4a"

        resp = web_env.delete(f"/api/journal/{entry_id}", headers=STAFF)
        assert resp.json()["deleted"] is True
        assert len(web_env.get("/api/journal").json()) == 1

    def test_update_missing(self, web_env):
        resp = web_env.patch("/api/journal/nope", json={"content": "x"}, headers=STAFF)
        assert resp.status_code == 404

    def test_update_rejects_null_tags(self, web_env):
        entry_id = web_env.get("/api/journal", params={"resident": "R1"}).json()[0]["id"]
        resp = web_env.patch(f"/api/journal/{entry_id}", json={"tags": None}, headers=STAFF)
        assert resp.status_code == 400

        resp = web_env.get("/api/journal")
        assert resp.status_code == 200
        assert len(resp.json()) == 2
        assert resp.json()[1]["tags"] == ["appetite"]

    def test_create_rejects_string_handover(self, web_env):
        resp = web_env.post(
            "/api/journal", json={"content": "x", "is_handover": "false"}, headers=STAFF
        )
        assert resp.status_code == 400
        assert len(web_env.get("/api/journal").json()) == 2
