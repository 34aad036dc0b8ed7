import pytest
from fastapi.testclient import TestClient

from swimcoach.logic.persistence import MemoryBlobStore
from swimcoach.server.app import app, get_manager
from swimcoach.server.database import SQLStore
from swimcoach.server.session import PracticeManager

from conftest import as_payload, ready_pose, star_pose


@pytest.fixture
def manager(sqlite_url):
    return PracticeManager(MemoryBlobStore(), recorder=SQLStore(sqlite_url))


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def _train_star_float(client):
    for step, joints in (("ready_pose", ready_pose()), ("star_spread", star_pose())):
        for _ in range(2):
            response = client.post("/api/motions/6/samples", json={"step": step, "landmarks": as_payload(joints)})
            assert response.status_code == 200


def _frame(client, joints, t):
    response = client.post("/api/practice/frame", json={"landmarks": as_payload(joints), "timestamp": t})
    assert response.status_code == 200
    return response.json()


def test_list_motions(client):
    response = client.get("/api/motions")
    assert response.status_code == 200
    motions = response.json()["motions"]
    assert [m["id"] for m in motions] == [1, 2, 3, 4, 5, 6]
    assert motions[0]["hold_mode"] is True
    assert motions[3]["sequence"] == ["spread", "gather"]


def test_add_sample_and_counts(client):
    response = client.post("/api/motions/4/samples", json={"step": "spread", "landmarks": as_payload(ready_pose())})
    assert response.status_code == 200
    body = response.json()
    assert body["counts"] == {"ready_pose": 0, "spread": 1, "gather": 0}
    assert body["total_samples"] == 1
    assert body["trained_classes"] == 1

    assert client.get("/api/motions/4/samples").json()["total_samples"] == 1
    assert client.delete("/api/motions/4/samples").status_code == 200
    assert client.get("/api/motions/4/samples").json()["total_samples"] == 0


def test_add_sample_rejects_bad_input(client):
    payload = {"step": "not_a_step", "landmarks": as_payload(ready_pose())}
    assert client.post("/api/motions/4/samples", json=payload).status_code == 422
    payload["step"] = "spread"
    assert client.post("/api/motions/99/samples", json=payload).status_code == 404
    payload["landmarks"] = payload["landmarks"][:10]
    assert client.post("/api/motions/4/samples", json=payload).status_code == 422


def test_samples_are_persisted_to_the_store(client, manager):
    _train_star_float(client)
    restored = PracticeManager(manager.store)
    assert restored.sample_counts(6)["counts"] == {"ready_pose": 2, "star_spread": 2}


def test_classifier_export_and_import(client):
    _train_star_float(client)
    exported = client.get("/api/motions/6/classifier").json()
    assert set(exported["samples"]) == {"ready_pose", "star_spread"}
    assert len(exported["samples"]["star_spread"][0]) == 114

    response = client.put("/api/motions/2/classifier", json=exported)
    assert response.status_code == 200
    assert response.json()["total_samples"] == 4

    bad = {"samples": {"a": [[1.0, 2.0]], "b": [[1.0]]}}
    assert client.put("/api/motions/2/classifier", json=bad).status_code == 400
    assert client.get("/api/motions/2/samples").json()["total_samples"] == 4
    assert client.get("/api/motions/99/classifier").status_code == 404


def test_practice_requires_a_started_session(client):
    assert client.post("/api/practice/frame", json={"landmarks": as_payload(ready_pose())}).status_code == 409
    assert client.get("/api/practice/status").status_code == 409
    assert client.post("/api/practice/reset").status_code == 409
    assert client.post("/api/practice/stop").json() == {"status": "idle", "recorded": False}
    assert client.post("/api/practice/start", json={"motion_id": 99}).status_code == 404


def test_untrained_motion_reports_no_prediction(client):
    client.post("/api/practice/start", json={"motion_id": 1})
    body = _frame(client, ready_pose(), 0.0)
    assert body["prediction"] == {"label": None, "confidence": 0.0}
    assert body["readiness"]["is_ready"] is True
    assert body["session"]["expected"] == "ready_pose"


def test_full_hold_practice_is_recorded(client):
    _train_star_float(client)
    start = client.post("/api/practice/start", json={"motion_id": 6, "hold_goal": 5})
    assert start.status_code == 200
    assert start.json()["hold_goal"] == 5
    assert start.json()["expected"] == "ready_pose"

    first = _frame(client, ready_pose(), 0.0)
    assert first["prediction"]["label"] == "ready_pose"
    assert first["session"]["ready_detected"] is True
    assert first["session"]["expected"] == "star_spread"

    _frame(client, star_pose(), 0.0)
    body = _frame(client, star_pose(), 0.0)
    assert [event["kind"] for event in body["events"]] == ["ready"]
    assert body["evaluation"]["all_passed"] is True
    assert body["readiness"]["message"] == "Relax both arms down"

    kinds = []
    for t in range(1, 6):
        body = _frame(client, star_pose(), float(t))
        kinds.extend(event["kind"] for event in body["events"])
    assert kinds == ["goal"]
    assert body["session"]["done"] is True
    assert body["session"]["score"] == 20
    assert body["session"]["progress"] == 1.0

    status = client.get("/api/practice/status").json()
    assert status["done"] is True

    assert client.post("/api/practice/stop").json() == {"status": "stopped", "recorded": True}
    sessions = client.get("/api/practice/history").json()["sessions"]
    assert len(sessions) == 1
    assert sessions[0]["motion_id"] == 6
    assert sessions[0]["score"] == 20
    assert client.get("/api/practice/stats").json() == {
        "total_sessions": 1,
        "average_score": 20,
        "perfect_sessions": 1,
    }


def test_reset_and_unfinished_stop(client):
    _train_star_float(client)
    client.post("/api/practice/start", json={"motion_id": 6})
    _frame(client, ready_pose(), 0.0)
    reset = client.post("/api/practice/reset").json()
    assert reset["ready_detected"] is False
    assert reset["score"] == 0
    assert client.post("/api/practice/stop").json() == {"status": "stopped", "recorded": False}
    assert client.get("/api/practice/history").json()["sessions"] == []


def test_import_of_wrong_sized_vectors_keeps_trained_state(client):
    _train_star_float(client)
    bad = {"samples": {"ready_pose": [[1.0, 2.0]], "star_spread": [[0.0, 0.0]]}}
    assert client.put("/api/motions/6/classifier", json=bad).status_code == 400
    assert client.get("/api/motions/6/samples").json()["total_samples"] == 4

    client.post("/api/practice/start", json={"motion_id": 6})
    body = _frame(client, star_pose(), 0.0)
    assert body["prediction"]["label"] == "star_spread"
    response = client.post("/api/motions/6/samples", json={"step": "star_spread", "landmarks": as_payload(star_pose())})
    assert response.status_code == 200
    assert response.json()["total_samples"] == 5
