"""Tests for the preview API."""

import pytest
from fastapi.testclient import TestClient

from reactorloom.api.app import create_app
from reactorloom.core.migration import MigrationEngine
from reactorloom.setting import MigrationSettings

SOURCE = """package com.example;

import reactor.core.publisher.Mono;

public class Demo {
    public void run(Mono<String> mono) {
        mono.doAfterSuccessOrError((result, error) -> {
            if (error != null) {
                System.out.println(error);
            } else {
                System.out.println(result);
            }
            System.out.println("done");
        }).subscribe();
    }
}
"""


@pytest.fixture
def client():
    app = create_app(MigrationEngine(settings=MigrationSettings()))
    return TestClient(app)


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "reactorloom"}


class TestLanes:
    def test_lanes(self, client):
        response = client.get("/api/migration/lanes")
        assert response.status_code == 200
        lane_ids = [lane["lane_id"] for lane in response.json()["lanes"]]
        assert "reactor_do_after_success_or_error_to_tap" in lane_ids


class TestPreview:
    def test_rewrite(self, client):
        response = client.post("/api/migration/preview", json={"source": SOURCE, "file_path": "Demo.java"})
        assert response.status_code == 200
        data = response.json()

        assert data["file_path"] == "Demo.java"
        assert data["changed"] is True
        assert data["rewritten_count"] == 1
        assert data["skipped_count"] == 0
        assert "mono.tap(() -> new DefaultSignalListener<>() {" in data["source"]
        assert data["diff"].startswith("--- a/Demo.java\n+++ b/Demo.java\n")
        assert data["diagnostics"] == []

        (outcome,) = data["outcomes"]
        assert outcome["line"] == 7
        assert outcome["rewritten"] is True
        assert outcome["method"] == "com.example.Demo.run"
        assert outcome["buckets"] == {"value": 1, "error": 1, "finally": 1}

        gates = {g["gate_name"]: g for g in data["gates"]}
        assert gates["no_deprecated_calls"]["passed"] is True
        assert gates["syntax_clean"]["passed"] is True

    def test_default_file_path(self, client):
        response = client.post("/api/migration/preview", json={"source": "class Plain {}\n"})
        assert response.status_code == 200
        data = response.json()
        assert data["file_path"] == "Preview.java"
        assert data["changed"] is False
        assert data["diff"] == ""
        assert data["outcomes"] == []

    def test_skipped_site(self, client):
        source = SOURCE.replace("mono.doAfterSuccessOrError", "Mono.empty().doAfterSuccessOrError")
        data = client.post("/api/migration/preview", json={"source": source}).json()

        assert data["changed"] is False
        (outcome,) = data["outcomes"]
        assert outcome["rewritten"] is False
        assert outcome["buckets"] is None
        assert "no concrete element type" in outcome["reason"]
        assert data["diagnostics"][0]["severity"] == "warning"

    def test_syntax_error(self, client):
        data = client.post("/api/migration/preview", json={"source": "class Broken {\n    void run( {\n"}).json()
        assert data["changed"] is False
        assert data["diagnostics"][0]["severity"] == "error"

    def test_unsupported_extension(self, client):
        response = client.post("/api/migration/preview", json={"source": SOURCE, "file_path": "Demo.kt"})
        assert response.status_code == 400
        assert "Unsupported file type '.kt'" in response.json()["detail"]

    def test_missing_source(self, client):
        response = client.post("/api/migration/preview", json={"file_path": "Demo.java"})
        assert response.status_code == 422


class TestLazyEngine:
    def test_engine_created_on_first_request(self, monkeypatch):
        monkeypatch.setattr("reactorloom.core.migration.engine.get_settings", MigrationSettings)
        app = create_app()
        assert app.state.migration_engine is None

        response = TestClient(app).post("/api/migration/preview", json={"source": "class Plain {}\n"})
        assert response.status_code == 200
        assert isinstance(app.state.migration_engine, MigrationEngine)
