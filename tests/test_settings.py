import json

import pytest

from shipsync.settings import Settings, load_settings
from shipsync.suppliers import load_supplier_profiles


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.window_days == 7
        assert settings.order_name_prefix == "36"
        assert settings.shopify_configured is False
        assert settings.notifications_configured is False

    def test_dry_run_shortens_window(self):
        assert Settings(DRY_RUN=True).window_days == 1

    def test_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / "api.env"
        env_file.write_text("CRON_SECRET=from-file\nMAX_WORKERS=4\n", encoding="utf-8")
        monkeypatch.setenv("SHIPSYNC_ENV_FILE", str(env_file))
        monkeypatch.delenv("CRON_SECRET", raising=False)
        monkeypatch.delenv("MAX_WORKERS", raising=False)

        settings = load_settings()

        assert settings.cron_secret == "from-file"
        assert settings.max_workers == 4


class TestSupplierProfiles:
    def write(self, tmp_path, suppliers):
        path = tmp_path / "suppliers.json"
        path.write_text(json.dumps({"suppliers": suppliers}), encoding="utf-8")
        return str(path)

    def test_credentials_come_from_environment(self, tmp_path):
        path = self.write(
            tmp_path,
            [{"key": "dropxl", "name": "DropXL", "api_base_url": "https://b2b.example", "vendors": ["vidaXL"]}],
        )

        profiles = load_supplier_profiles(path, {"DROPXL_EMAIL": "ops@example.com", "DROPXL_API_TOKEN": "t"})

        assert profiles[0].email == "ops@example.com"
        assert profiles[0].api_token == "t"
        assert profiles[0].allowlist.allows("VIDAXL")

    def test_explicit_credentials_win(self, tmp_path):
        path = self.write(
            tmp_path,
            [
                {
                    "key": "dropxl",
                    "name": "DropXL",
                    "api_base_url": "https://b2b.example",
                    "vendors": ["vidaXL"],
                    "email": "json@example.com",
                }
            ],
        )

        profiles = load_supplier_profiles(path, {"DROPXL_EMAIL": "env@example.com"})

        assert profiles[0].email == "json@example.com"

    def test_profile_requires_vendors(self, tmp_path):
        path = self.write(
            tmp_path, [{"key": "dropxl", "name": "DropXL", "api_base_url": "https://b2b.example", "vendors": []}]
        )
        with pytest.raises(ValueError):
            load_supplier_profiles(path, {})

    def test_no_path(self):
        assert load_supplier_profiles(None) == []
