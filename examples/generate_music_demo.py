"""Minimal generate-and-wait demo against the configured music API endpoints."""
from __future__ import annotations

import os
import sys

from dotenv import load_dotenv

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from core.settings import reload_settings
from logging_utils import init_logging
from music_api import GenerationRequest, MusicApiConfig, MusicApiError, MusicApiService


def _print_progress(progress: str, status: str, tracks) -> None:
    print(f"[{status or '?'}] {progress} tracks={len(tracks or [])}")


def main() -> None:
    load_dotenv()
    settings = reload_settings()
    init_logging("music-api-demo", json_logs=False)
    service = MusicApiService(MusicApiConfig.from_settings(settings))
    print("health:", service.health_check())
    prompt = " ".join(sys.argv[1:]) or "lofi beat"
    try:
        tracks = service.generate_and_wait(GenerationRequest(prompt=prompt), on_progress=_print_progress)
    except MusicApiError as exc:
        print(f"failed ({exc.category.value}):\n{exc.display_message}")
        return
    finally:
        service.close()
    for track in tracks:
        print(track.title, track.audio_url, track.duration)


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()
