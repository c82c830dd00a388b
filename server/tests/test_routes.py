from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from decisions_api.auth import get_current_user, get_supabase_gateway
from decisions_api.config import Settings
from decisions_api.main import create_app
from decisions_api.routers import decisions
from decisions_api.routers.audio import MAX_FILE_SIZE
from decisions_api.routers.transcription import extract_storage_path, path_belongs_to_user
from decisions_api.services.supabase_gateway import AuthenticatedUser, InvalidTokenError
from decisions_api.services.transcription import (
    ErrorCode,
    MockTranscriptionService,
    TranscriptionError,
    get_transcription_service,
)

USER_ID = "11111111-2222-3333-4444-555555555555"
PUBLIC_PREFIX = "https://proj.supabase.co/storage/v1/object/public/decision-audio/"
SIGNED_PREFIX = "https://proj.supabase.co/storage/v1/object/sign/decision-audio/"


class FakeGateway:
    def __init__(self, fail_upload: bool = False, fail_signing: bool = False) -> None:
        self.fail_upload = fail_upload
        self.fail_signing = fail_signing
        self.signed: list[tuple[str, int]] = []
        self.uploads: list[tuple[str, bytes, str]] = []

    async def verify_token(self, token: str) -> AuthenticatedUser:
        if token != "good-token":
            raise InvalidTokenError("invalid JWT")
        return AuthenticatedUser(id=USER_ID, email="ada@example.com", role="authenticated")

    async def upload(self, path: str, data: bytes, *, content_type: str) -> str:
        if self.fail_upload:
            raise RuntimeError("storage unavailable")
        self.uploads.append((path, data, content_type))
        return path

    def get_public_url(self, path: str) -> str:
        return PUBLIC_PREFIX + path

    async def create_signed_url(self, path: str, expires_in: int = 3600) -> str:
        if self.fail_signing:
            raise RuntimeError("Supabase returned no signed URL")
        self.signed.append((path, expires_in))
        return f"{SIGNED_PREFIX}{path}?token=t"


class RecordingService:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.urls: list[str] = []
        self._mock = MockTranscriptionService(delay_ms=0, mock_text="Ciao   mondo")

    async def transcribe(self, audio_url: str):  # noqa: ANN201
        self.urls.append(audio_url)
        if self.error is not None:
            raise self.error
        return await self._mock.transcribe(audio_url)


def _make_client(gateway: FakeGateway | None = None, service: Any = None, authenticated: bool = True) -> TestClient:
    app = create_app(Settings(app_env="test", cors_origin=None))
    app.dependency_overrides[get_supabase_gateway] = lambda: gateway or FakeGateway()
    if service is not None:
        app.dependency_overrides[get_transcription_service] = lambda: service
    if authenticated:
        app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(id=USER_ID, email="ada@example.com")
    return TestClient(app)


AUTH = {"Authorization": "Bearer good-token"}


def test_health() -> None:
    resp = _make_client(authenticated=False).get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["uptime"] >= 0
    assert "timestamp" in body


def test_me_requires_token() -> None:
    client = _make_client(authenticated=False)
    assert client.get("/api/me").status_code == 401
    assert client.get("/api/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_me_returns_verified_user() -> None:
    resp = _make_client(authenticated=False).get("/api/me", headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["id"] == USER_ID
    assert resp.json()["email"] == "ada@example.com"


def test_upload_stores_audio_under_user_folder() -> None:
    gateway = FakeGateway()
    resp = _make_client(gateway=gateway).post(
        "/api/audio/upload",
        files={"audio": ("clip.webm", b"RIFF-audio-bytes", "audio/webm")},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["path"].startswith(f"{USER_ID}/")
    assert body["path"].endswith(".webm")
    assert body["url"] == PUBLIC_PREFIX + body["path"]
    assert body["size"] == len(b"RIFF-audio-bytes")
    assert gateway.uploads[0][2] == "audio/webm"


def test_upload_requires_file() -> None:
    assert _make_client().post("/api/audio/upload").status_code == 400


def test_upload_rejects_non_audio() -> None:
    resp = _make_client().post("/api/audio/upload", files={"audio": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 415


def test_upload_rejects_oversized_file() -> None:
    payload = b"\x00" * (MAX_FILE_SIZE + 1)
    resp = _make_client().post("/api/audio/upload", files={"audio": ("big.wav", payload, "audio/wav")})
    assert resp.status_code == 413


def test_upload_reports_storage_failure() -> None:
    resp = _make_client(gateway=FakeGateway(fail_upload=True)).post(
        "/api/audio/upload", files={"audio": ("clip.mp3", b"id3", "audio/mpeg")}
    )
    assert resp.status_code == 500


def test_transcription_requires_source() -> None:
    assert _make_client(service=RecordingService()).post("/api/transcription", json={}).status_code == 400


def test_transcription_from_owned_path() -> None:
    service = RecordingService()
    resp = _make_client(service=service).post("/api/transcription", json={"audioPath": f"{USER_ID}/a.webm"})

    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"text", "confidence"}
    assert body["text"] == "Ciao mondo"
    assert 0.85 <= body["confidence"] <= 1.0
    assert service.urls == [f"{PUBLIC_PREFIX}{USER_ID}/a.webm"]


def test_transcription_rejects_foreign_path() -> None:
    resp = _make_client(service=RecordingService()).post("/api/transcription", json={"audioPath": "someone-else/a.webm"})
    assert resp.status_code == 403


def test_transcription_rejects_foreign_bucket_url() -> None:
    resp = _make_client(service=RecordingService()).post(
        "/api/transcription", json={"audioUrl": PUBLIC_PREFIX + "someone-else/a.webm"}
    )
    assert resp.status_code == 403


def test_transcription_allows_external_url() -> None:
    service = RecordingService()
    resp = _make_client(service=service).post("/api/transcription", json={"audioUrl": "https://cdn.example.com/a.mp3"})
    assert resp.status_code == 200
    assert service.urls == ["https://cdn.example.com/a.mp3"]


def test_transcription_error_maps_to_bad_gateway() -> None:
    service = RecordingService(TranscriptionError("429 Too Many Requests", ErrorCode.RATE_LIMIT_ERROR, retryable=True))
    resp = _make_client(service=service).post("/api/transcription", json={"audioPath": f"{USER_ID}/a.webm"})

    assert resp.status_code == 502
    detail = resp.json()["detail"]
    assert detail["code"] == "RATE_LIMIT_ERROR"
    assert detail["retryable"] is True


def test_generic_error_maps_to_bad_gateway_without_code() -> None:
    service = RecordingService(RuntimeError("boom"))
    resp = _make_client(service=service).post("/api/transcription", json={"audioPath": f"{USER_ID}/a.webm"})

    assert resp.status_code == 502
    assert resp.json()["detail"] == {"message": "Transcription service failed: boom"}


def test_registry_backs_transcription_route_in_test_env() -> None:
    app = create_app(Settings(app_env="test", cors_origin=None))
    app.dependency_overrides[get_supabase_gateway] = lambda: FakeGateway()
    app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(id=USER_ID)
    registry = app.state.transcription_registry
    registry.get_transcription_service().delay_ms = 0

    resp = TestClient(app).post("/api/transcription", json={"audioUrl": "https://cdn.example.com/a.mp3"})

    assert resp.status_code == 200
    assert "decisione" in resp.json()["text"]


def test_storage_path_helpers() -> None:
    assert extract_storage_path(PUBLIC_PREFIX + "u%201/file.webm") == "u 1/file.webm"
    assert extract_storage_path("https://cdn.example.com/a.mp3") is None
    assert path_belongs_to_user(f"{USER_ID}/x.webm", USER_ID)
    assert not path_belongs_to_user("x.webm", USER_ID)


def _post_voice(client: TestClient, content: bytes = b"webm-bytes", mime_type: str = "audio/webm"):  # noqa: ANN202
    return client.post("/decisions/voice", files={"audio": ("recording.webm", content, mime_type)})


def test_voice_decision_stores_signs_and_transcribes() -> None:
    gateway = FakeGateway()
    service = RecordingService()

    resp = _post_voice(_make_client(gateway=gateway, service=service))

    assert resp.status_code == 200
    body = resp.json()
    assert set(body) == {"decisionId", "transcript", "audioUrl"}
    assert body["transcript"] == "Ciao mondo"
    path, data, content_type = gateway.uploads[0]
    assert path == f"{USER_ID}/{body['decisionId']}/recording.webm"
    assert (data, content_type) == (b"webm-bytes", "audio/webm")
    assert gateway.signed == [(path, 3600)]
    assert body["audioUrl"] == f"{SIGNED_PREFIX}{path}?token=t"
    assert service.urls == [body["audioUrl"]]


def test_voice_decision_requires_token() -> None:
    resp = _post_voice(_make_client(service=RecordingService(), authenticated=False))
    assert resp.status_code == 401


def test_voice_decision_without_file_is_missing_file() -> None:
    resp = _make_client(service=RecordingService()).post("/decisions/voice")

    assert resp.status_code == 400
    assert resp.json()["code"] == "MISSING_FILE"
    assert set(resp.json()) == {"error", "code", "message"}


def test_voice_decision_rejects_unsupported_format() -> None:
    resp = _post_voice(_make_client(service=RecordingService()), b"ID3", "audio/flac")

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_FORMAT"
    assert "audio/flac" in resp.json()["message"]


def test_voice_decision_rejects_oversized_file(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(decisions, "MAX_FILE_SIZE", 8)
    gateway = FakeGateway()

    resp = _post_voice(_make_client(gateway=gateway, service=RecordingService()), b"x" * 9)

    assert resp.status_code == 400
    assert resp.json()["code"] == "FILE_TOO_LARGE"
    assert gateway.uploads == []


def test_voice_decision_reports_upload_failure() -> None:
    service = RecordingService()
    resp = _post_voice(_make_client(gateway=FakeGateway(fail_upload=True), service=service))

    assert resp.status_code == 500
    assert resp.json()["code"] == "UPLOAD_FAILED"
    assert service.urls == []


def test_voice_decision_reports_signing_failure_as_upload_failure() -> None:
    service = RecordingService()
    resp = _post_voice(_make_client(gateway=FakeGateway(fail_signing=True), service=service))

    assert resp.status_code == 500
    assert resp.json()["code"] == "UPLOAD_FAILED"
    assert service.urls == []


def test_voice_decision_reports_provider_failure() -> None:
    service = RecordingService(TranscriptionError("Audio file could not be decoded", ErrorCode.TRANSCRIPTION_ERROR))
    resp = _post_voice(_make_client(service=service))

    assert resp.status_code == 500
    assert resp.json()["code"] == "TRANSCRIPTION_FAILED"
    assert resp.json()["message"] == "Audio file could not be decoded"


def test_voice_decision_hides_unexpected_errors() -> None:
    resp = _post_voice(_make_client(service=RecordingService(RuntimeError("boom"))))

    assert resp.status_code == 500
    assert resp.json()["code"] == "TRANSCRIPTION_FAILED"
    assert "boom" not in resp.json()["message"]


def test_voice_decision_reports_timeout() -> None:
    service = RecordingService(TranscriptionError("Polling timeout exceeded", ErrorCode.TIMEOUT_ERROR, retryable=True))
    resp = _post_voice(_make_client(service=service))

    assert resp.status_code == 504
    assert resp.json()["code"] == "TIMEOUT"
