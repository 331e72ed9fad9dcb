import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from music_test_utils import BACKUP, PRIMARY, make_config, task_payload, track  # noqa: E402

from music_api import service as service_module  # noqa: E402
from music_api.errors import ErrorCategory, MusicTaskError  # noqa: E402
from music_api.service import MusicApiService, get_default_service, reset_default_service  # noqa: E402


def _service(delays: list[float], *base_urls: str, **overrides) -> MusicApiService:
    return MusicApiService(make_config(*base_urls, **overrides), sleep=delays.append)


def test_generate_and_wait_end_to_end(requests_mock):
    requests_mock.post(f"{PRIMARY}/suno/submit/music", json={"code": "success", "data": "task-123"})
    requests_mock.get(
        f"{PRIMARY}/suno/fetch/task-123",
        response_list=[
            {"json": task_payload("QUEUED")},
            {"status_code": 502},
            {"json": task_payload("PROCESSING", progress="40%")},
            {"json": task_payload("SUCCESS", tracks=[track("a"), track("b")])},
        ],
    )
    events: list[str] = []
    delays: list[float] = []

    tracks = _service(delays).generate_and_wait("lofi beat", on_progress=lambda p, s, d: events.append(p))

    assert [item.id for item in tracks] == ["a", "b"]
    assert events == ["0%", "40%", "10%", "100%"]
    # the 502 is retried inside the transport, the poll loop never sees it
    assert delays == [2.0, 2.0, 2.0]
    assert requests_mock.call_count == 5


def test_generate_and_wait_uses_backup_endpoint(requests_mock):
    requests_mock.post(f"{PRIMARY}/suno/submit/music", status_code=403)
    requests_mock.post(f"{BACKUP}/suno/submit/music", json={"code": "success", "data": "task-123"})
    requests_mock.get(f"{PRIMARY}/suno/fetch/task-123", status_code=404)
    requests_mock.get(f"{BACKUP}/suno/fetch/task-123", json=task_payload("SUCCESS", tracks=[track()]))

    tracks = _service([], PRIMARY, BACKUP).generate_and_wait("lofi beat")

    assert len(tracks) == 1


def test_generate_and_wait_surfaces_task_failure(requests_mock):
    requests_mock.post(f"{PRIMARY}/suno/submit/music", json={"code": "success", "data": "task-123"})
    requests_mock.get(f"{PRIMARY}/suno/fetch/task-123", json=task_payload("FAILED", fail_reason="lyrics rejected"))

    with pytest.raises(MusicTaskError) as exc:
        _service([]).generate_and_wait("lofi beat")

    assert exc.value.category is ErrorCategory.TASK_FAILED
    assert str(exc.value) == "lyrics rejected"


def test_poll_uses_configured_limits(requests_mock):
    requests_mock.get(f"{PRIMARY}/suno/fetch/task-9", json=task_payload("RUNNING", task_id="task-9"))
    delays: list[float] = []

    with pytest.raises(MusicTaskError) as exc:
        _service(delays, poll_max_attempts=3, poll_interval=1.0).poll_task_until_complete("task-9")

    assert exc.value.category is ErrorCategory.POLL_TIMEOUT
    assert requests_mock.call_count == 3
    assert delays == [1.0, 1.0]


def test_passthrough_operations(requests_mock):
    requests_mock.head(f"{PRIMARY}/", status_code=200)
    requests_mock.head("https://cdn.example/a.mp3", status_code=200)
    requests_mock.get(f"{PRIMARY}/suno/fetch/task-1", json=task_payload("PENDING", task_id="task-1"))
    service = _service([])

    assert service.health_check() is True
    assert service.validate_audio_url("https://cdn.example/a.mp3") is True
    assert service.fetch_task("task-1").status == "PENDING"


def test_default_service_is_shared(monkeypatch):
    created: list[MusicApiService] = []

    def _factory():
        instance = MusicApiService(make_config())
        created.append(instance)
        return instance

    reset_default_service()
    monkeypatch.setattr(service_module, "MusicApiService", _factory)
    try:
        first = get_default_service()
        second = get_default_service()
        assert first is second
        assert len(created) == 1

        reset_default_service()
        assert get_default_service() is not first
        assert len(created) == 2
    finally:
        reset_default_service()
