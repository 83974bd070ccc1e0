"""
Tests for the plan editing, storage and code generation endpoints.

These tests use FastAPI's TestClient against the real application.
The saved-plan index and documents are redirected to a temporary
directory, and template fetching is replaced with an in-memory source
so no network access is needed.
"""

import io
import json
import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlmodel import create_engine

# Add the backend directory to sys.path so we can import the app
sys.path.append(str(Path(__file__).resolve().parents[1]))

from pysplanner.api import routes_codegen  # type: ignore
from pysplanner.main import app  # type: ignore
from pysplanner.services import db, storage  # type: ignore
from pysplanner.services.codegen import StaticTemplateSource  # type: ignore

TEMPLATE = "PLAN = {INSERT_PATH_PLANNER_DATA}\n"

DRIVE_BASE = {"leftMotorPort": "A", "rightMotorPort": "B", "wheelDiameter": 56, "axleTrack": 112}


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    engine = create_engine(
        f"sqlite:///{(tmp_path / 'test.db').as_posix()}",
        connect_args={"check_same_thread": False},
    )
    plans_dir = tmp_path / "plans"
    plans_dir.mkdir()
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(storage, "PLANS_DIR", plans_dir)
    monkeypatch.setattr(routes_codegen, "template_source_for_hub", lambda hub: StaticTemplateSource(TEMPLATE))
    with TestClient(app) as c:
        yield c


def _create(client: TestClient, name: str = "Mission", **overrides) -> dict:
    body = {"name": name, "driveBase": dict(DRIVE_BASE, **overrides)}
    response = client.post("/api/plans", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _plan_with_run(client: TestClient, points=((0, 0), (100, 0))) -> str:
    plan_id = _create(client)["planId"]
    assert client.post(f"/api/plans/{plan_id}/runs", json={"name": "Run 1"}).status_code == 201
    for x, y in points:
        response = client.post(f"/api/plans/{plan_id}/runs/0/points", json={"x": x, "y": y})
        assert response.status_code == 201, response.text
    return plan_id


def test_health(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_create_plan_returns_empty_snapshot(client: TestClient) -> None:
    data = _create(client)
    assert data["activeRun"] is None
    assert data["plan"]["name"] == "Mission"
    assert data["plan"]["runs"] == []
    assert data["plan"]["driveBase"]["leftMotorPort"] == "A"
    assert client.get(f"/api/plans/{data['planId']}").json() == data


@pytest.mark.parametrize(
    "overrides, kind",
    [
        ({"rightMotorPort": "A"}, "DuplicateMotorPort"),
        ({"wheelDiameter": 0}, "NonPositiveDimension"),
        ({"leftMotorPort": "Z"}, "InvalidDriveBase"),
    ],
)
def test_invalid_drive_base_is_rejected(client: TestClient, overrides: dict, kind: str) -> None:
    response = client.post("/api/plans", json={"name": "Bad", "driveBase": dict(DRIVE_BASE, **overrides)})
    assert response.status_code == 422
    assert response.json()["kind"] == kind


def test_unknown_plan_is_404(client: TestClient) -> None:
    assert client.get("/api/plans/does-not-exist").status_code == 404


def test_runs_and_active_run(client: TestClient) -> None:
    plan_id = _create(client)["planId"]
    first = client.post(f"/api/plans/{plan_id}/runs", json={"name": "Red"}).json()
    assert first["activeRun"] == 0
    second = client.post(f"/api/plans/{plan_id}/runs", json={"name": "Blue"}).json()
    assert second["activeRun"] == 1
    assert [r["name"] for r in second["plan"]["runs"]] == ["Red", "Blue"]

    selected = client.put(f"/api/plans/{plan_id}/active-run", json={"runIndex": 0})
    assert selected.json()["activeRun"] == 0
    renamed = client.patch(f"/api/plans/{plan_id}/runs/1", json={"name": "Green"})
    assert renamed.json()["plan"]["runs"][1]["name"] == "Green"
    removed = client.delete(f"/api/plans/{plan_id}/runs/0")
    assert [r["name"] for r in removed.json()["plan"]["runs"]] == ["Green"]
    assert removed.json()["activeRun"] == 0

    assert client.patch(f"/api/plans/{plan_id}/runs/5", json={"name": "x"}).status_code == 404
    assert client.post(f"/api/plans/{plan_id}/runs", json={"name": ""}).status_code == 422


def test_points_warn_at_soft_limit_and_stop_at_hard_limit(client: TestClient) -> None:
    plan_id = _plan_with_run(client, points=[(i, i) for i in range(24)])
    response = client.post(f"/api/plans/{plan_id}/runs/0/points", json={"x": 24, "y": 24})
    assert response.status_code == 201
    assert len(response.json()["warnings"]) == 1
    for i in range(25, 49):
        client.post(f"/api/plans/{plan_id}/runs/0/points", json={"x": i, "y": i})
    rejected = client.post(f"/api/plans/{plan_id}/runs/0/points", json={"x": 49, "y": 49})
    assert rejected.status_code == 409
    assert rejected.json()["error"] == "CapacityExceeded"
    points = client.get(f"/api/plans/{plan_id}").json()["plan"]["runs"][0]["points"]
    assert len(points) == 49


def test_points_and_actions(client: TestClient) -> None:
    plan_id = _plan_with_run(client, points=[(0, 0), (50, 0)])
    inserted = client.post(f"/api/plans/{plan_id}/runs/0/points", json={"x": 25, "y": 10, "index": 1})
    assert inserted.json()["plan"]["runs"][0]["points"] == [[0, 0], [25, 10], [50, 0]]
    assert inserted.json()["warnings"] == []

    action = {"anchorIndex": 2, "operationName": "grab", "arguments": [90, "slow", True], "blocking": True}
    with_action = client.post(f"/api/plans/{plan_id}/runs/0/actions", json=action).json()
    assert with_action["plan"]["runs"][0]["actions"] == [
        {"anchorPoint": [50, 0], "anchorIndex": 2, "operationName": "grab", "arguments": [90, "slow", True], "blocking": True}
    ]

    moved = client.put(f"/api/plans/{plan_id}/runs/0/points/2", json={"x": 60, "y": 5}).json()
    assert moved["plan"]["runs"][0]["actions"][0]["anchorPoint"] == [60, 5]

    bad_anchor = client.post(f"/api/plans/{plan_id}/runs/0/actions", json=dict(action, anchorIndex=9))
    assert bad_anchor.status_code == 404

    removed = client.delete(f"/api/plans/{plan_id}/runs/0/points/2").json()
    assert removed["plan"]["runs"][0]["points"] == [[0, 0], [25, 10]]
    assert removed["plan"]["runs"][0]["actions"] == []


def test_curve_preview(client: TestClient) -> None:
    plan_id = _plan_with_run(client, points=[(0, 0), (100, 0)])
    data = client.get(f"/api/plans/{plan_id}/runs/0/curve").json()
    assert data["runIndex"] == 0
    assert len(data["points"]) == 4
    assert data["points"][0] == [0, 0]
    assert data["points"][-1] == [100, 0]
    assert data["metadata"]["controlPoints"] == 2
    assert data["metadata"]["length"] == pytest.approx(100.0)
    assert data["metadata"]["tension"] == 0.5

    assert client.get(f"/api/plans/{plan_id}/runs/0/curve", params={"density": 5}).status_code == 422
    assert client.get(f"/api/plans/{plan_id}/runs/3/curve").status_code == 404


def test_generate_returns_script_and_records_hub(client: TestClient) -> None:
    plan_id = _plan_with_run(client)
    response = client.post(f"/api/plans/{plan_id}/generate", json={"hub": "Spike"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/x-python")
    assert 'filename="mission_spike.py"' in response.headers["content-disposition"]
    assert response.text.startswith("PLAN = {")
    embedded = json.loads(response.text[len("PLAN = ") :])
    assert embedded["hubType"] == "Spike"
    assert client.get(f"/api/plans/{plan_id}").json()["plan"]["hubType"] == "Spike"


def test_generate_without_runs_is_rejected(client: TestClient) -> None:
    plan_id = _create(client)["planId"]
    response = client.post(f"/api/plans/{plan_id}/generate", json={"hub": "EV3"})
    assert response.status_code == 422
    assert response.json()["kind"] == "NoRuns"
    assert client.get(f"/api/plans/{plan_id}").json()["plan"]["hubType"] is None


def test_export_and_import_round_trip(client: TestClient) -> None:
    plan_id = _plan_with_run(client)
    exported = client.get(f"/api/plans/{plan_id}/export")
    assert exported.status_code == 200
    assert 'filename="mission.pysplan"' in exported.headers["content-disposition"]

    imported = client.post(
        "/api/plans/import",
        files={"file": ("mission.pysplan", io.BytesIO(exported.content), "application/json")},
    )
    assert imported.status_code == 201
    assert imported.json()["planId"] != plan_id
    assert imported.json()["plan"] == client.get(f"/api/plans/{plan_id}").json()["plan"]
    assert imported.json()["activeRun"] == 0


def test_import_rejects_malformed_document(client: TestClient) -> None:
    response = client.post(
        "/api/plans/import",
        files={"file": ("broken.pysplan", io.BytesIO(b'{"name": "x"}'), "application/json")},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "MalformedDocument"


def test_save_list_open_and_delete(client: TestClient, tmp_path: Path) -> None:
    plan_id = _plan_with_run(client)
    saved = client.post(f"/api/plans/{plan_id}/save")
    assert saved.status_code == 201
    saved_id = saved.json()["savedId"]
    assert (tmp_path / "plans" / f"{saved_id}.pysplan").is_file()

    overwritten = client.post(f"/api/plans/{plan_id}/save", params={"savedId": saved_id})
    assert overwritten.json()["savedId"] == saved_id
    listing = client.get("/api/saved-plans").json()
    assert [entry["savedId"] for entry in listing] == [saved_id]
    assert listing[0]["name"] == "Mission"

    opened = client.post(f"/api/saved-plans/{saved_id}/open")
    assert opened.status_code == 201
    assert opened.json()["plan"] == client.get(f"/api/plans/{plan_id}").json()["plan"]

    assert client.delete(f"/api/saved-plans/{saved_id}").status_code == 204
    assert client.get("/api/saved-plans").json() == []
    assert client.post(f"/api/saved-plans/{saved_id}/open").status_code == 404
    assert client.delete(f"/api/saved-plans/{saved_id}").status_code == 404


def test_save_rejects_unsafe_identifier(client: TestClient) -> None:
    plan_id = _plan_with_run(client)
    response = client.post(f"/api/plans/{plan_id}/save", params={"savedId": "../escape"})
    assert response.status_code == 422


def test_close_plan(client: TestClient) -> None:
    plan_id = _create(client)["planId"]
    assert client.delete(f"/api/plans/{plan_id}").status_code == 204
    assert client.get(f"/api/plans/{plan_id}").status_code == 404


def test_replace_drive_base(client: TestClient) -> None:
    plan_id = _create(client)["planId"]
    new_base = {"leftMotorPort": "E", "rightMotorPort": "F", "wheelDiameter": 62.4, "axleTrack": 130}
    response = client.put(f"/api/plans/{plan_id}/drive-base", json=new_base)
    assert response.status_code == 200
    assert response.json()["plan"]["driveBase"]["leftMotorPort"] == "E"
    duplicate = client.put(f"/api/plans/{plan_id}/drive-base", json=dict(new_base, rightMotorPort="E"))
    assert duplicate.status_code == 422
    assert client.get(f"/api/plans/{plan_id}").json()["plan"]["driveBase"]["leftMotorPort"] == "E"


def test_import_rejects_out_of_range_number(client: TestClient) -> None:
    document = (
        '{"name": "x", "driveBase": {"leftMotorPort": "A", "rightMotorPort": "B", '
        '"wheelDiameter": 56, "axleTrack": 112}, '
        '"runs": [{"name": "r", "points": [[' + "9" * 400 + ', 0]], "actions": []}]}'
    )
    response = client.post(
        "/api/plans/import",
        files={"file": ("huge.pysplan", io.BytesIO(document.encode("utf-8")), "application/json")},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "MalformedDocument"
