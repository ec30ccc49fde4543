"""Tests for settings persistence."""

import json

import pytest

from purerate.settings import Settings, SettingsManager, get_settings_manager


class TestSettings:
    """Settings dataclass conversion."""

    def test_defaults(self):
        settings = Settings()
        assert settings.enabled is True
        assert settings.notifications_enabled is False
        assert settings.target_device_id is None

    def test_from_dict(self):
        settings = Settings.from_dict(
            {"enabled": False, "notifications_enabled": True, "target_device_id": 73}
        )
        assert settings == Settings(enabled=False, notifications_enabled=True, target_device_id=73)

    def test_from_dict_ignores_wrong_types(self):
        settings = Settings.from_dict(
            {"enabled": "no", "notifications_enabled": 1, "target_device_id": True}
        )
        assert settings == Settings()

    def test_to_dict_round_trip(self):
        settings = Settings(enabled=False, target_device_id=5)
        assert Settings.from_dict(settings.to_dict()) == settings


class TestSettingsManager:
    """Loading, updating and saving."""

    @pytest.mark.asyncio
    async def test_missing_file_gives_defaults(self, tmp_path):
        manager = await get_settings_manager(tmp_path)
        assert manager.settings_file == tmp_path / "settings.json"
        assert manager.enabled is True
        assert not manager.settings_file.exists()

    @pytest.mark.asyncio
    async def test_string_config_dir(self, tmp_path):
        manager = await get_settings_manager(str(tmp_path / "conf"))
        assert manager.settings_file == tmp_path / "conf" / "settings.json"

    @pytest.mark.asyncio
    async def test_update_flush_and_reload(self, tmp_path):
        manager = await get_settings_manager(tmp_path)
        assert manager.update(enabled=False, target_device_id=88) is True
        await manager.flush()

        reloaded = await get_settings_manager(tmp_path)
        assert reloaded.enabled is False
        assert reloaded.notifications_enabled is False
        assert reloaded.target_device_id == 88

    @pytest.mark.asyncio
    async def test_update_without_change(self, tmp_path):
        manager = await get_settings_manager(tmp_path)
        assert manager.update(enabled=True) is False
        await manager.flush()
        assert not manager.settings_file.exists()

    @pytest.mark.asyncio
    async def test_clear_target_device(self, tmp_path):
        manager = await get_settings_manager(tmp_path)
        manager.update(target_device_id=5)
        assert manager.update(target_device_id=None) is True
        assert manager.target_device_id is None
        await manager.flush()

    @pytest.mark.asyncio
    async def test_corrupt_file_gives_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text("{not json")
        manager = await get_settings_manager(tmp_path)
        assert manager.enabled is True

    @pytest.mark.asyncio
    async def test_non_object_file_gives_defaults(self, tmp_path):
        (tmp_path / "settings.json").write_text(json.dumps([1, 2, 3]))
        manager = await get_settings_manager(tmp_path)
        assert manager.notifications_enabled is False

    @pytest.mark.asyncio
    async def test_creates_missing_directory(self, tmp_path):
        manager = SettingsManager(tmp_path / "nested" / "dir" / "settings.json")
        manager.update(notifications_enabled=True)
        await manager.flush()
        assert json.loads(manager.settings_file.read_text())["notifications_enabled"] is True
