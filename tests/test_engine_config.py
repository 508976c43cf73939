import json

import pytest

from engine_config import DEFAULT_CONFIG, AppSettings, load_config, save_config


class TestEngineConfig:
    def test_defaults(self):
        assert DEFAULT_CONFIG.exclusion_window == 7
        assert DEFAULT_CONFIG.high_count == 4
        assert DEFAULT_CONFIG.confidence_cap == 99

    def test_overrides_ignore_unknown_keys(self):
        cfg = DEFAULT_CONFIG.with_overrides(top_k=10, warp_factor=9)
        assert cfg.top_k == 10
        assert not hasattr(cfg, "warp_factor")
        assert DEFAULT_CONFIG.top_k == 20

    def test_save_only_changed_then_load(self, tmp_path):
        path = str(tmp_path / "cfg" / "engine_config.json")
        save_config(DEFAULT_CONFIG.with_overrides(learning_rate=0.1), path)
        with open(path, encoding="utf-8") as f:
            assert json.load(f) == {"learning_rate": 0.1}
        assert load_config(path).learning_rate == pytest.approx(0.1)

    def test_load_falls_back_to_defaults(self, tmp_path):
        assert load_config(None) is DEFAULT_CONFIG
        assert load_config(str(tmp_path / "missing.json")) is DEFAULT_CONFIG
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2]", encoding="utf-8")
        assert load_config(str(bad)) is DEFAULT_CONFIG


class TestAppSettings:
    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TWOD_DATA_DIR", str(tmp_path / "store"))
        monkeypatch.setenv("GEMINI_API_KEY", "k-123")
        settings = AppSettings.from_env()
        assert settings.api_key == "k-123"
        assert settings.records_path.endswith("records.csv")
        assert settings.records_path.startswith(str(tmp_path / "store"))

    def test_explicit_data_dir_wins(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TWOD_DATA_DIR", "elsewhere")
        assert AppSettings.from_env(str(tmp_path)).data_dir == str(tmp_path)
