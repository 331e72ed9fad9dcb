import os
import sys

import pytest
import requests
from pydantic import ValidationError

sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from music_test_utils import API_KEY, BACKUP, PRIMARY, make_config, task_payload, track  # noqa: E402

from music_api.client import MusicApiClient  # noqa: E402
from music_api.errors import (  # noqa: E402
    EndpointsExhaustedError,
    ErrorCategory,
    MusicApiClientError,
    MusicApiError,
)
from music_api.schemas import GenerationRequest, TaskStatus  # noqa: E402

GEN_URL = f"{PRIMARY}/suno/submit/music"
FETCH_URL = f"{PRIMARY}/suno/fetch/task-123"


def _client(*base_urls: str, **overrides) -> MusicApiClient:
    return MusicApiClient(make_config(*base_urls, **overrides), sleep=lambda _: None)


def test_generate_music_returns_task_id(requests_mock):
    requests_mock.post(GEN_URL, json={"code": "success", "message": "", "data": "task-123"})

    task_id = _client().generate_music("lofi beat")

    assert task_id == "task-123"
    sent = requests_mock.last_request
    assert sent.json() == {
        "model": "suno-v3.5",
        "messages": [{"role": "user", "content": "lofi beat"}],
        "stream": True,
    }
    assert sent.headers["Authorization"] == f"Bearer {API_KEY}"
    assert sent.headers["Content-Type"] == "application/json"


def test_generate_music_accepts_request_model(requests_mock):
    requests_mock.post(GEN_URL, json={"code": "success", "data": {"task_id": "task-77"}})

    assert _client().generate_music(GenerationRequest(prompt="ambient pads")) == "task-77"


def test_generate_music_uses_configured_model(requests_mock):
    requests_mock.post(GEN_URL, json={"code": "success", "data": "t"})

    _client(model="suno-v4", stream=False).generate_music("jazz")

    assert requests_mock.last_request.json()["model"] == "suno-v4"
    assert requests_mock.last_request.json()["stream"] is False


@pytest.mark.parametrize("prompt", ["", "   "])
def test_blank_prompt_is_rejected_before_sending(requests_mock, prompt):
    with pytest.raises(MusicApiClientError) as exc:
        _client().generate_music(prompt)

    assert exc.value.category is ErrorCategory.INVALID_REQUEST
    assert requests_mock.call_count == 0


def test_invalid_json_is_a_format_error(requests_mock):
    requests_mock.post(GEN_URL, text="<html>gateway says hi</html>")

    with pytest.raises(MusicApiError) as exc:
        _client().generate_music("lofi beat")

    assert exc.value.category is ErrorCategory.FORMAT
    assert "<html>gateway says hi</html>" in exc.value.display_message


def test_vendor_error_code_surfaces_vendor_message(requests_mock):
    requests_mock.post(GEN_URL, json={"code": "error", "message": "quota exceeded", "data": None})

    with pytest.raises(MusicApiError) as exc:
        _client().generate_music("lofi beat")

    assert exc.value.category is ErrorCategory.API_FAILURE
    assert str(exc.value) == "quota exceeded"


def test_vendor_error_code_without_message_uses_template(requests_mock):
    requests_mock.post(GEN_URL, json={"code": "fail"})

    with pytest.raises(MusicApiError) as exc:
        _client().generate_music("lofi beat")

    assert exc.value.category is ErrorCategory.API_FAILURE
    assert "fail" in exc.value.display_message


def test_missing_task_id_is_an_api_failure(requests_mock):
    requests_mock.post(GEN_URL, json={"code": "success", "data": ""})

    with pytest.raises(MusicApiError) as exc:
        _client().generate_music("lofi beat")

    assert exc.value.category is ErrorCategory.API_FAILURE
    assert "task id" in exc.value.display_message


def test_auth_failure_on_every_endpoint(requests_mock):
    requests_mock.post(GEN_URL, status_code=401, text="bad key")
    requests_mock.post(f"{BACKUP}/suno/submit/music", status_code=401, text="bad key")

    with pytest.raises(EndpointsExhaustedError) as exc:
        _client(PRIMARY, BACKUP).generate_music("lofi beat")

    assert requests_mock.call_count == 2
    assert exc.value.last_error is not None
    assert exc.value.last_error.category is ErrorCategory.AUTH_FAILED


def test_generate_falls_back_to_backup(requests_mock):
    requests_mock.post(GEN_URL, status_code=503)
    requests_mock.post(f"{BACKUP}/suno/submit/music", json={"code": "success", "data": "task-b"})

    assert _client(PRIMARY, BACKUP).generate_music("lofi beat") == "task-b"


def test_fetch_task_parses_record(requests_mock):
    requests_mock.get(FETCH_URL, json=task_payload("SUCCESS", tracks=[track()], progress="100%"))

    task = _client().fetch_task("task-123")

    assert task.task_id == "task-123"
    assert task.task_status is TaskStatus.SUCCESS
    assert task.progress == "100%"
    assert task.data is not None
    assert task.data[0].audio_url == "https://cdn.example/clip-1.mp3"
    assert task.data[0].duration == 121.5
    assert requests_mock.last_request.headers["Authorization"] == f"Bearer {API_KEY}"


def test_fetch_task_tolerates_missing_fields(requests_mock):
    requests_mock.get(FETCH_URL, json={"code": "success", "data": {"status": "QUEUED"}})

    task = _client().fetch_task("task-123")

    assert task.task_status is TaskStatus.QUEUED
    assert task.data is None
    assert task.progress is None


def test_fetch_task_code_failure(requests_mock):
    requests_mock.get(FETCH_URL, json={"code": "error"})

    with pytest.raises(MusicApiError) as exc:
        _client().fetch_task("task-123")

    assert exc.value.category is ErrorCategory.API_FAILURE
    assert str(exc.value) == "Failed to fetch task status"


def test_fetch_task_requires_id(requests_mock):
    with pytest.raises(MusicApiClientError) as exc:
        _client().fetch_task("  ")

    assert exc.value.category is ErrorCategory.INVALID_REQUEST
    assert requests_mock.call_count == 0


def test_validate_audio_url(requests_mock):
    requests_mock.head("https://cdn.example/ok.mp3", status_code=200)
    requests_mock.head("https://cdn.example/gone.mp3", status_code=404)
    requests_mock.head("https://cdn.example/down.mp3", exc=requests.exceptions.ConnectionError)
    client = _client()

    assert client.validate_audio_url("https://cdn.example/ok.mp3") is True
    assert client.validate_audio_url("https://cdn.example/gone.mp3") is False
    assert client.validate_audio_url("https://cdn.example/down.mp3") is False
    assert client.validate_audio_url("") is False


def test_health_check_accepts_any_non_server_error(requests_mock):
    requests_mock.head(f"{PRIMARY}/", status_code=503)
    requests_mock.head(f"{BACKUP}/", status_code=405)

    assert _client(PRIMARY, BACKUP).health_check() is True
    assert requests_mock.call_count == 2


def test_health_check_fails_when_all_endpoints_unreachable(requests_mock):
    requests_mock.head(f"{PRIMARY}/", exc=requests.exceptions.ConnectTimeout)
    requests_mock.head(f"{BACKUP}/", exc=requests.exceptions.ConnectionError)

    assert _client(PRIMARY, BACKUP).health_check() is False


def test_client_context_manager_closes_session():
    class RecordingSession(requests.Session):
        closed = False

        def close(self):
            self.closed = True
            super().close()

    session = RecordingSession()
    with MusicApiClient(make_config(), session=session) as client:
        assert client.session is session
    assert session.closed is True


@pytest.mark.parametrize("data", [False, True, 0, [], ["a"], {"other": "x"}, 1.5])
def test_non_id_data_is_an_api_failure(requests_mock, data):
    requests_mock.post(GEN_URL, json={"code": "success", "data": data})

    with pytest.raises(MusicApiError) as exc:
        _client().generate_music("lofi beat")

    assert exc.value.category is ErrorCategory.API_FAILURE
    assert "task id" in exc.value.display_message


def test_numeric_task_id_is_accepted(requests_mock):
    requests_mock.post(GEN_URL, json={"code": "success", "data": 12345})

    assert _client().generate_music("lofi beat") == "12345"


@pytest.mark.parametrize(
    "overrides",
    [
        {"created_at": 1700000000},
        {"title": 123},
        {"tags": ["lofi", "chill"]},
        {"metadata": "v3"},
        {"metadata": {"priority": "high", "stream": "yes", "duration": "n/a"}},
        {"explicit": "false"},
    ],
)
def test_odd_descriptive_track_fields_do_not_reject_the_record(requests_mock, overrides):
    requests_mock.get(FETCH_URL, json=task_payload("SUCCESS", tracks=[track(**overrides)]))

    task = _client().fetch_task("task-123")

    assert task.task_status is TaskStatus.SUCCESS
    assert task.data is not None
    assert task.data[0].audio_url == "https://cdn.example/clip-1.mp3"


def test_descriptive_fields_are_coerced_to_text(requests_mock):
    requests_mock.get(
        FETCH_URL,
        json=task_payload("SUCCESS", tracks=[track(created_at=1700000000, title=123, tags=["lofi", "chill"])]),
    )

    item = _client().fetch_task("task-123").data[0]

    assert item.created_at == "1700000000"
    assert item.title == "123"
    assert item.tags == "lofi, chill"


def test_non_string_playability_fields_make_track_unplayable(requests_mock):
    requests_mock.get(
        FETCH_URL,
        json=task_payload("SUCCESS", tracks=[track(audio_url=["https://cdn.example/x.mp3"]), "junk"]),
    )

    task = _client().fetch_task("task-123")

    assert task.data is not None
    assert len(task.data) == 1
    assert task.data[0].audio_url is None


def test_vendor_failure_code_wins_over_payload_shape():
    response = requests.Response()
    response.status_code = 200
    with pytest.raises(ValidationError) as info:
        GenerationRequest(prompt="")
    validation_error = info.value

    error = MusicApiClient._format_error(
        response, {"code": "error", "message": "insufficient credits", "data": 42}, validation_error, "fallback"
    )
    fallback = MusicApiClient._format_error(response, {"code": 500}, validation_error, "fallback")
    shape = MusicApiClient._format_error(response, {"code": "success", "data": 42}, validation_error, "fallback")

    assert error.category is ErrorCategory.API_FAILURE
    assert str(error) == "insufficient credits"
    assert fallback.category is ErrorCategory.API_FAILURE
    assert str(fallback) == "fallback"
    assert shape.category is ErrorCategory.FORMAT
