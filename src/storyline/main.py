"""
Storyline player process - wires config, logging, catalog, engine and
coordinator together and serves remote control commands until stopped.
"""

import signal
import threading
from functools import partial
from pathlib import Path
from typing import Optional

from loguru import logger

from storyline import notifications
from storyline.core import config
from storyline.core.console import get_console, print_result
from storyline.core.output import setup_loguru
from storyline.domain.library import Catalog
from storyline.domain.playback import (
    InterruptionMonitor,
    MpvEngine,
    NowPlayingCenter,
    NowPlayingLog,
    PlaybackCoordinator,
    PlaybackEvent,
    PositionStore,
    RemoteCommandCenter,
    check_mpv_available,
)
from storyline.ipc.server import IPCServer, process_ipc_command


def setup_logging(cfg: config.Config) -> None:
    setup_loguru(
        config.get_log_file_path(cfg),
        level=cfg.logging.level,
        max_file_size_mb=cfg.logging.max_file_size_mb,
        backup_count=cfg.logging.backup_count,
        console_output=cfg.logging.console_output,
    )


def open_catalog(cfg: config.Config) -> Catalog:
    return Catalog(config.get_database_path(cfg))


def build_coordinator(cfg: config.Config, catalog: Catalog) -> PlaybackCoordinator:
    """Create an mpv-backed coordinator (not yet started)."""
    notifier = notifications.notify_sleep_timer_elapsed if cfg.notifications.enabled else None
    now_playing = NowPlayingCenter()
    now_playing.add_sink(NowPlayingLog())
    return PlaybackCoordinator(
        MpvEngine(cfg.player),
        PositionStore(catalog, cfg.playback.finished_threshold),
        cfg.playback,
        now_playing=now_playing,
        notifier=notifier,
    )


def run_player(title_id: str, config_path: Optional[Path] = None) -> int:
    """
    Play a title and block until it is stopped by a signal or finishes.

    Args:
        title_id: Catalog id of the title to play
        config_path: Optional config.toml override

    Returns:
        Process exit code
    """
    cfg = config.load_config(config_path)
    config.ensure_directories()
    setup_logging(cfg)

    catalog = open_catalog(cfg)
    title = catalog.get(title_id)
    if title is None:
        return print_result(False, f"No title with id {title_id}")

    if not check_mpv_available(cfg.player.mpv_executable):
        return print_result(False, f"mpv not found ({cfg.player.mpv_executable}); install mpv first")

    coordinator = build_coordinator(cfg, catalog).start()
    remote = RemoteCommandCenter(coordinator)
    monitor = InterruptionMonitor(coordinator)
    console = get_console()
    done = threading.Event()

    def on_event(event: PlaybackEvent) -> None:
        if event is PlaybackEvent.FINISHED:
            console.print(f"[green]Finished {title.display_name}[/green]")
            done.set()
        elif event is PlaybackEvent.SLEEP_TIMER_ELAPSED:
            console.print("[yellow]Sleep timer elapsed, paused[/yellow]")

    coordinator.subscribe_events(on_event)

    def request_stop(signum, frame) -> None:
        logger.info(f"Received signal {signum}, shutting down")
        done.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    server: Optional[IPCServer] = None
    try:
        if not coordinator.load(title).result():
            return print_result(False, f"Could not open {title.resource_locator}")
        coordinator.play()

        if cfg.ipc.enabled:
            server = IPCServer(
                partial(process_ipc_command, coordinator, remote, catalog, monitor=monitor)
            )
            server.start()

        console.print(f"[bold]Playing[/bold] {title.display_name}  (Ctrl+C to stop)")
        while not done.wait(0.5):
            pass
    finally:
        if server:
            server.stop()
        coordinator.shutdown()

    return 0
