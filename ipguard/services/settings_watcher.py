"""Hot reload of the IPGUARD configuration file.

Uses the watchdog library to monitor the directory holding the YAML
configuration. Changes are debounced on the trailing edge: the reload
runs once changes have stopped for ``debounce_seconds``.

Usage:
    watcher = SettingsFileWatcher(provider)
    watcher.start()
    # ... application runs ...
    watcher.stop()
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ipguard.services.restriction_settings import SettingsProvider

logger = logging.getLogger(__name__)


class SettingsFileWatcher:
    """Reloads a SettingsProvider when its configuration file changes."""

    def __init__(
        self,
        provider: SettingsProvider,
        debounce_seconds: float = 1.0,
    ) -> None:
        self._provider = provider
        self._debounce_seconds = debounce_seconds
        self._observer: Observer | None = None
        self._handler: _SettingsChangeHandler | None = None
        logger.debug("SettingsFileWatcher initialized")

    @property
    def is_running(self) -> bool:
        """Check if the watcher is currently running."""
        return self._observer is not None

    def start(self) -> bool:
        """Start watching the configuration directory.

        Returns:
            True if the watcher started, False otherwise
        """
        path = self._provider.path
        if path is None or not path.parent.exists():
            logger.warning(f"No config directory to watch (path={path})")
            return False

        try:
            self._handler = _SettingsChangeHandler(
                self._provider, path, self._debounce_seconds
            )
            observer = Observer()
            observer.schedule(self._handler, str(path.parent), recursive=False)
            observer.start()
        except OSError as e:
            logger.error(f"Failed to start settings watcher (error={e})")
            return False

        self._observer = observer
        logger.info(f"Watching config for changes (path={path})")
        return True

    def stop(self) -> None:
        """Stop watching for file changes."""
        if self._handler is not None:
            self._handler.cancel()
            self._handler = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None
            logger.info("Settings watcher stopped")


class _SettingsChangeHandler(FileSystemEventHandler):
    """Debounces change events on one file into a single reload."""

    def __init__(
        self,
        provider: SettingsProvider,
        path: Path,
        debounce_seconds: float,
    ) -> None:
        super().__init__()
        self._provider = provider
        self._filename = path.name
        self._debounce_seconds = debounce_seconds
        self._pending_timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in ("modified", "created", "moved"):
            return
        paths = [str(event.src_path)]
        dest = getattr(event, "dest_path", None)
        if dest:
            paths.append(str(dest))
        if not any(Path(p).name == self._filename for p in paths):
            return
        self._schedule_reload()

    def _schedule_reload(self) -> None:
        with self._timer_lock:
            if self._pending_timer is not None:
                self._pending_timer.cancel()

            self._pending_timer = threading.Timer(self._debounce_seconds, self._do_reload)
            self._pending_timer.daemon = True
            self._pending_timer.start()

    def _do_reload(self) -> None:
        with self._timer_lock:
            self._pending_timer = None

        logger.info(f"Config file changed, reloading (file={self._filename})")
        self._provider.reload()

    def cancel(self) -> None:
        with self._timer_lock:
            if self._pending_timer is not None:
                self._pending_timer.cancel()
                self._pending_timer = None
