"""Tests for player process wiring."""

from unittest.mock import patch

from loguru import logger

from storyline import main
from storyline.core.config import Config
from storyline.domain.playback import PlaybackSnapshot, PlaybackState, build_now_playing


def test_coordinator_logs_now_playing(catalog, title):
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="INFO")
    try:
        with patch.object(main, "MpvEngine"):
            coordinator = main.build_coordinator(Config(), catalog)
        coordinator.now_playing.publish(
            build_now_playing(title, PlaybackSnapshot(state=PlaybackState.PLAYING, duration=3600.0))
        )
    finally:
        logger.remove(handler_id)

    assert "Now playing: The Long Road by Ada Writer (playing)" in messages


def test_notifier_follows_config(catalog):
    cfg = Config()
    cfg.notifications.enabled = False
    with patch.object(main, "MpvEngine"):
        assert main.build_coordinator(cfg, catalog).notifier is None
