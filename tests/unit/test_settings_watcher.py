"""Unit tests for SettingsFileWatcher."""

import time
from unittest.mock import MagicMock

from watchdog.events import FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from ipguard.services.restriction_settings import SettingsProvider
from ipguard.services.settings_watcher import SettingsFileWatcher, _SettingsChangeHandler


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


class TestSettingsFileWatcher:
    """Tests for the watchdog-based watcher."""

    def test_watcher_init(self, tmp_path):
        """Test watcher initialization."""
        provider = SettingsProvider(path=tmp_path / "ipguard.yaml")
        watcher = SettingsFileWatcher(provider)

        assert watcher.is_running is False

    def test_watcher_start_stop(self, tmp_path):
        """Test watcher can start and stop."""
        provider = SettingsProvider(path=tmp_path / "ipguard.yaml")
        watcher = SettingsFileWatcher(provider)

        assert watcher.start() is True
        try:
            assert watcher.is_running is True
        finally:
            watcher.stop()

        assert watcher.is_running is False

    def test_watcher_without_path(self):
        """Test watcher refuses to start without a config path."""
        watcher = SettingsFileWatcher(SettingsProvider())

        assert watcher.start() is False
        assert watcher.is_running is False

    def test_watcher_missing_directory(self, tmp_path):
        """Test watcher refuses to start when the directory is missing."""
        provider = SettingsProvider(path=tmp_path / "missing" / "ipguard.yaml")

        assert SettingsFileWatcher(provider).start() is False

    def test_watcher_reloads_on_file_change(self, tmp_path):
        """Test that modifying the config file reloads settings."""
        path = tmp_path / "ipguard.yaml"
        path.write_text("restrictions:\n  max_join_per_ip: 1\n", encoding="utf-8")
        provider = SettingsProvider(path=path)
        watcher = SettingsFileWatcher(provider, debounce_seconds=0.1)
        watcher.start()

        try:
            time.sleep(0.2)
            path.write_text("restrictions:\n  max_join_per_ip: 4\n", encoding="utf-8")

            assert _wait_for(lambda: provider.current.max_join_per_ip == 4)
        finally:
            watcher.stop()


class TestSettingsChangeHandler:
    """Event filtering and debounce."""

    def setup_method(self):
        self.provider = MagicMock()

    def _handler(self, tmp_path, debounce=0.05):
        return _SettingsChangeHandler(self.provider, tmp_path / "ipguard.yaml", debounce)

    def test_modified_event_triggers_reload(self, tmp_path):
        handler = self._handler(tmp_path)
        handler.on_any_event(FileModifiedEvent(str(tmp_path / "ipguard.yaml")))

        assert _wait_for(lambda: self.provider.reload.call_count == 1)

    def test_other_files_ignored(self, tmp_path):
        handler = self._handler(tmp_path)
        handler.on_any_event(FileModifiedEvent(str(tmp_path / "other.yaml")))
        time.sleep(0.2)

        self.provider.reload.assert_not_called()

    def test_delete_ignored(self, tmp_path):
        handler = self._handler(tmp_path)
        handler.on_any_event(FileDeletedEvent(str(tmp_path / "ipguard.yaml")))
        time.sleep(0.2)

        self.provider.reload.assert_not_called()

    def test_atomic_replace_triggers_reload(self, tmp_path):
        """Editors writing a temp file then renaming it are handled."""
        handler = self._handler(tmp_path)
        handler.on_any_event(FileMovedEvent(
            str(tmp_path / ".ipguard.yaml.swp"), str(tmp_path / "ipguard.yaml")
        ))

        assert _wait_for(lambda: self.provider.reload.call_count == 1)

    def test_burst_is_debounced(self, tmp_path):
        """Several events close together produce one reload."""
        handler = self._handler(tmp_path, debounce=0.2)
        for _ in range(5):
            handler.on_any_event(FileCreatedEvent(str(tmp_path / "ipguard.yaml")))
            time.sleep(0.01)

        assert _wait_for(lambda: self.provider.reload.call_count >= 1)
        time.sleep(0.3)
        assert self.provider.reload.call_count == 1

    def test_cancel_drops_pending_reload(self, tmp_path):
        handler = self._handler(tmp_path, debounce=0.2)
        handler.on_any_event(FileModifiedEvent(str(tmp_path / "ipguard.yaml")))
        handler.cancel()
        time.sleep(0.4)

        self.provider.reload.assert_not_called()
