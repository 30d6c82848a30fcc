"""HTTP-level tests for the generation service."""

from __future__ import annotations

import asyncio
import base64
import threading
import time

import pytest
from fastapi.testclient import TestClient

from manuscript_providers import GenerationError, MockProvider, ProviderCapabilities
from manuscript_providers.mock import MOCK_IMAGE

from services.generation.app.container import ServiceContainer
from services.generation.app.main import create_app
from services.generation.app.settings import PipelineSettings
from services.generation.app.store import InMemoryProjectStore
from services.generation.app.wakelock import NullWakeLock
from services.generation.app.writing import ChapterGenerator


class StubGenerator(ChapterGenerator):
    def __init__(self) -> None:
        self.release = threading.Event()
        self.release.set()
        self.fatal_on: int | None = None

    async def generate(self, chapter, outline, sources, style) -> str:
        while not self.release.is_set():
            await asyncio.sleep(0.01)
        if chapter.number == self.fatal_on:
            raise GenerationError("Permission denied", status_code=403)
        return f"{style.value} text for {chapter.title}"


class TextOnlyProvider(MockProvider):
    name = "text-only"

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(supports_json_mode=True)


OUTLINE = {
    "title": "Tide Tables",
    "description": "A year on the estuary",
    "chapters": [
        {"number": 1, "title": "Spring", "summary": "Thaw"},
        {"number": 2, "title": "Summer", "summary": "Heat"},
    ],
}


@pytest.fixture
def generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def client(generator: StubGenerator):
    container = ServiceContainer(
        PipelineSettings(backoff_base_seconds=0, timeout_seconds=None, wake_lock=False),
        store=InMemoryProjectStore(),
        generator=generator,
        provider=MockProvider(),
        wake_lock=NullWakeLock(),
    )
    with TestClient(create_app(container)) as test_client:
        yield test_client


def _create_project(client: TestClient, **payload) -> str:
    response = client.post("/projects", json=payload)
    assert response.status_code == 201
    return response.json()["id"]


def _wait_for_run(client: TestClient, project_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/projects/{project_id}/generation").json()
        if body["state"] in ("completed", "aborted") and body["finished_at"]:
            return body
        time.sleep(0.02)
    raise AssertionError("generation run did not finish in time")


def test_health_and_styles(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    styles = client.get("/styles").json()
    assert [entry["style"] for entry in styles] == [
        "standard",
        "literary",
        "humorous",
        "technical",
        "simple",
        "sarcastic",
    ]


def test_create_read_and_patch_project(client: TestClient) -> None:
    project_id = _create_project(client, title="Working title")

    patched = client.patch(f"/projects/{project_id}", json={"title": "Final title", "current_step": 1})
    assert patched.status_code == 200
    assert patched.json()["title"] == "Final title"

    fetched = client.get(f"/projects/{project_id}").json()
    assert fetched["current_step"] == 1
    assert [project["id"] for project in client.get("/projects").json()] == [project_id]


def test_unknown_project_returns_404(client: TestClient) -> None:
    assert client.get("/projects/missing").status_code == 404
    assert client.patch("/projects/missing", json={"title": "x"}).status_code == 404
    assert client.post("/projects/missing/generation").status_code == 404
    assert client.get("/projects/missing/generation").status_code == 404


def test_invalid_patch_is_rejected(client: TestClient) -> None:
    project_id = _create_project(client)
    assert client.patch(f"/projects/{project_id}", json={"current_step": 9}).status_code == 422


def test_outline_generation_from_sources(client: TestClient) -> None:
    project_id = _create_project(
        client, sources=[{"type": "TEXT", "name": "notes.txt", "content": "Boats and birds."}]
    )

    response = client.post(f"/projects/{project_id}/outline")

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Mock Book"
    assert [chapter["number"] for chapter in body["outline"]["chapters"]] == [1, 2]
    assert "notes.txt" in body["outline"]["chapters"][0]["summary"]
    assert body["current_step"] == 1

    stored = client.get(f"/projects/{project_id}").json()
    assert stored["outline"]["title"] == "Mock Book"
    assert stored["sources"][0]["type"] == "TEXT"


def test_lowercase_source_type_is_rejected(client: TestClient) -> None:
    response = client.post("/projects", json={"sources": [{"type": "text", "name": "notes.txt"}]})
    assert response.status_code == 422


def test_outline_requires_sources(client: TestClient) -> None:
    project_id = _create_project(client)
    assert client.post(f"/projects/{project_id}/outline").status_code == 400


def test_generation_without_outline_is_rejected(client: TestClient) -> None:
    project_id = _create_project(client)
    assert client.post(f"/projects/{project_id}/generation").status_code == 400


def test_generation_run_completes_and_chapter_can_be_refined(client: TestClient) -> None:
    project_id = _create_project(client, outline=OUTLINE)

    started = client.post(f"/projects/{project_id}/generation", json={"style": "humorous"})
    assert started.status_code == 202
    assert started.json()["style"] == "humorous"

    status = _wait_for_run(client, project_id)
    assert status["state"] == "completed"
    assert status["completed"] == [1, 2]

    project = client.get(f"/projects/{project_id}").json()
    assert [chapter["status"] for chapter in project["chapters"]] == ["done", "done"]
    assert project["chapters"][0]["content"] == "humorous text for Spring"
    assert project["current_step"] == 2

    refined = client.post(f"/projects/{project_id}/chapters/1/refine", json={"instruction": "Tighten it"})
    assert refined.status_code == 200
    assert refined.json()["content"].startswith("Mock response generated for testing.")
    assert client.get(f"/projects/{project_id}").json()["chapters"][0]["content"] == refined.json()["content"]


def test_refine_requires_generated_content(client: TestClient) -> None:
    project_id = _create_project(client, outline=OUTLINE)
    response = client.post(f"/projects/{project_id}/chapters/1/refine", json={"instruction": "Tighten"})
    assert response.status_code == 400


def test_second_start_conflicts_and_cancel_stops_run(client: TestClient, generator: StubGenerator) -> None:
    project_id = _create_project(client, outline=OUTLINE)
    generator.release.clear()

    assert client.post(f"/projects/{project_id}/generation").status_code == 202
    conflict = client.post(f"/projects/{project_id}/generation")
    assert conflict.status_code == 409

    assert client.delete(f"/projects/{project_id}/generation").status_code == 202
    generator.release.set()

    status = _wait_for_run(client, project_id)
    assert status["state"] == "aborted"
    assert status["abort_reason"] == "cancelled"
    assert status["completed"] == [1]

    project = client.get(f"/projects/{project_id}").json()
    assert project["chapters"][1]["status"] == "pending"
    assert client.delete(f"/projects/{project_id}/generation").status_code == 404


def test_fatal_error_is_reported_in_status(client: TestClient, generator: StubGenerator) -> None:
    project_id = _create_project(client, outline=OUTLINE)
    generator.fatal_on = 1

    client.post(f"/projects/{project_id}/generation")
    status = _wait_for_run(client, project_id)

    assert status["state"] == "aborted"
    assert status["fatal_reason"] == "Permission denied"
    project = client.get(f"/projects/{project_id}").json()
    assert project["chapters"][0]["content"] == "Stopped due to API error."
    assert project["chapters"][1]["status"] == "pending"


def test_front_and_back_covers_are_stored_on_the_outline(client: TestClient) -> None:
    project_id = _create_project(client, outline=OUTLINE)

    front = client.post(f"/projects/{project_id}/cover")
    back = client.post(f"/projects/{project_id}/cover", json={"side": "back", "aspect_ratio": "3:4"})

    assert front.status_code == 200
    assert back.status_code == 200
    outline = client.get(f"/projects/{project_id}").json()["outline"]
    assert base64.b64decode(outline["cover_image"]) == MOCK_IMAGE
    assert base64.b64decode(outline["back_cover_image"]) == MOCK_IMAGE
    assert [chapter["title"] for chapter in outline["chapters"]] == ["Spring", "Summer"]


def test_cover_requires_outline_and_valid_ratio(client: TestClient) -> None:
    project_id = _create_project(client)
    assert client.post(f"/projects/{project_id}/cover").status_code == 400

    with_outline = _create_project(client, outline=OUTLINE)
    assert client.post(f"/projects/{with_outline}/cover", json={"aspect_ratio": "2:1"}).status_code == 422


def test_chapter_speech_uses_project_voice(client: TestClient) -> None:
    project_id = _create_project(client, outline=OUTLINE)
    assert client.post(f"/projects/{project_id}/chapters/1/speech").status_code == 400

    client.post(f"/projects/{project_id}/generation")
    _wait_for_run(client, project_id)
    client.patch(f"/projects/{project_id}", json={"audio_voice": "Fenrir"})

    narrated = client.post(f"/projects/{project_id}/chapters/1/speech")
    assert narrated.status_code == 200
    body = narrated.json()
    assert body["voice"] == "Fenrir"
    assert body["truncated"] is False
    assert base64.b64decode(body["audio"])

    chosen = client.post(f"/projects/{project_id}/chapters/1/speech", json={"voice": "Puck"})
    assert chosen.json()["voice"] == "Puck"


def test_media_routes_report_unsupported_provider(generator: StubGenerator) -> None:
    container = ServiceContainer(
        PipelineSettings(backoff_base_seconds=0, timeout_seconds=None, wake_lock=False),
        store=InMemoryProjectStore(),
        generator=generator,
        provider=TextOnlyProvider(),
        wake_lock=NullWakeLock(),
    )
    with TestClient(create_app(container)) as text_client:
        project_id = _create_project(text_client, outline=OUTLINE)
        response = text_client.post(f"/projects/{project_id}/cover")

    assert response.status_code == 501
    assert "cannot generate images" in response.json()["detail"]
