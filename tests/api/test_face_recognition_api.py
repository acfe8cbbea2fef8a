"""Tests for the HTTP endpoints."""
import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import DIM, FlakyStore, ScriptedDetector, shifted, vector
from faceid.core.config import Settings
from faceid.core.container import ServiceContainer
from faceid.core.exceptions import IdentityExistsError, StoreUnavailableError
from faceid.core.utils.image import encode_data_url
from faceid.infrastructure.dependencies import get_container
from faceid.main import app, get_app_container

RECOGNIZE_URL = "/api/v1/face-recognition/recognize"
ENROLL_URL = "/api/v1/face-recognition/enroll"


def data_url(frame) -> str:
    """PNG keeps the scripted pixel values intact."""
    return encode_data_url(frame.pixels, ".png")


@pytest.fixture
async def service_container():
    config = Settings(STORE_BACKEND="memory", EMBEDDING_DIMENSION=DIM, MATCH_THRESHOLD=0.6)
    service_container = ServiceContainer(
        config=config,
        detector=ScriptedDetector(),
        store=FlakyStore(dimension=DIM),
    )
    await service_container.initialize()
    yield service_container
    await service_container.cleanup()


@pytest.fixture
async def client(service_container):
    app.dependency_overrides[get_container] = lambda: service_container
    app.dependency_overrides[get_app_container] = lambda: service_container
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class TestRecognize:
    async def test_empty_frame(self, client, service_container):
        response = await client.post(RECOGNIZE_URL, json={"frame_data": "data:,"})

        assert response.status_code == 200
        assert response.json() == {"names": []}
        assert service_container.detector.calls == 0

    async def test_known_and_unknown_faces(self, client, service_container):
        detector = service_container.detector
        await client.post(ENROLL_URL, json={"name": "alice", "frame_data": data_url(detector.frame(vector(0)))})

        frame = detector.frame(vector(5), shifted(vector(0), 1, 0.2))
        response = await client.post(RECOGNIZE_URL, json={"frame_data": data_url(frame)})

        assert response.status_code == 200
        assert response.json() == {"names": ["unknown", "alice"]}

    async def test_malformed_frame(self, client):
        response = await client.post(RECOGNIZE_URL, json={"frame_data": "data:image/jpeg;base64,@@@"})

        assert response.status_code == 400

    async def test_missing_frame_data(self, client):
        response = await client.post(RECOGNIZE_URL, json={})

        assert response.status_code == 422

    @pytest.mark.parametrize(
        "error, status_code",
        [
            (RuntimeError("model crashed"), 502),
            (asyncio.TimeoutError(), 504),
        ],
    )
    async def test_detector_errors(self, client, service_container, error, status_code):
        detector = service_container.detector
        frame = detector.frame(vector(0))
        detector.error = error

        response = await client.post(RECOGNIZE_URL, json={"frame_data": data_url(frame)})

        assert response.status_code == status_code


class TestEnroll:
    async def test_create_then_extend(self, client, service_container):
        detector = service_container.detector

        created = await client.post(
            ENROLL_URL, json={"name": "bob", "frame_data": data_url(detector.frame(vector(0)))}
        )
        extended = await client.post(
            ENROLL_URL,
            json={"name": "robert", "frame_data": data_url(detector.frame(shifted(vector(0), 1, 0.1)))},
        )

        assert created.status_code == 200
        assert created.json() == {
            "outcome": "identity_created",
            "label": "bob",
            "message": "New user created",
            "names": [],
        }
        assert extended.status_code == 200
        assert extended.json()["outcome"] == "identity_extended"
        assert extended.json()["names"] == ["bob"]
        assert len(await service_container.store.get("bob")) == 2

    async def test_no_face(self, client, service_container):
        frame = service_container.detector.frame()

        response = await client.post(ENROLL_URL, json={"name": "bob", "frame_data": data_url(frame)})

        assert response.status_code == 200
        assert response.json()["outcome"] == "no_face_detected"
        assert response.json()["message"] == "There is no face in the frame"

    async def test_empty_frame_is_no_face(self, client, service_container):
        response = await client.post(ENROLL_URL, json={"name": "bob", "frame_data": "data:,"})

        assert response.status_code == 200
        assert response.json()["outcome"] == "no_face_detected"

    async def test_multiple_faces(self, client, service_container):
        frame = service_container.detector.frame(vector(0), vector(1))

        response = await client.post(ENROLL_URL, json={"name": "bob", "frame_data": data_url(frame)})

        assert response.status_code == 200
        assert response.json()["outcome"] == "multiple_faces_detected"
        assert response.json()["message"] == "Please make sure only 1 person is in the frame"
        assert await service_container.store.load_all() == {}

    @pytest.mark.parametrize("name", ["", "   "])
    async def test_blank_name(self, client, name):
        response = await client.post(ENROLL_URL, json={"name": name, "frame_data": "data:,"})

        assert response.status_code == 422

    async def test_store_failure(self, client, service_container):
        frame = service_container.detector.frame(vector(0))
        service_container.store.fail_writes = StoreUnavailableError("database is locked")

        response = await client.post(ENROLL_URL, json={"name": "bob", "frame_data": data_url(frame)})

        assert response.status_code == 503
        assert service_container.gallery_service.snapshot.size == 0

    async def test_new_face_under_an_enrolled_name_is_refused(self, client, service_container):
        detector = service_container.detector
        await client.post(ENROLL_URL, json={"name": "bob", "frame_data": data_url(detector.frame(vector(0)))})

        response = await client.post(
            ENROLL_URL, json={"name": "bob", "frame_data": data_url(detector.frame(vector(5)))}
        )

        assert response.status_code == 409
        assert response.json()["outcome"] == "name_taken"
        assert response.json()["label"] == "bob"
        assert len(await service_container.store.get("bob")) == 1

    async def test_store_identity_errors_are_conflicts(self, client, service_container):
        frame = service_container.detector.frame(vector(0))
        service_container.store.fail_writes = IdentityExistsError("Identity already exists: bob")

        response = await client.post(ENROLL_URL, json={"name": "bob", "frame_data": data_url(frame)})

        assert response.status_code == 409
        assert response.json() == {"detail": "Identity already exists: bob"}


class TestHealth:
    async def test_healthy(self, client, service_container):
        frame = service_container.detector.frame(vector(0))
        await client.post(ENROLL_URL, json={"name": "bob", "frame_data": data_url(frame)})

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "gallery": {"identities": 1, "embeddings": 1}}


async def test_requests_before_startup_are_refused():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        recognize = await client.post(RECOGNIZE_URL, json={"frame_data": "data:,"})
        health = await client.get("/health")

    assert recognize.status_code == 503
    assert recognize.json() == {"detail": "Service is not ready"}
    assert health.json()["status"] == "starting"
