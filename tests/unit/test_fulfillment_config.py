"""Tests for FulfillmentConfig loading and validation."""

import pytest

from supply_kernel.config import FulfillmentConfig
from supply_kernel.db.engine import reset_engine
from supply_kernel.services.fulfillment_service import FulfillmentService


class TestDefaults:
    def test_with_defaults(self):
        config = FulfillmentConfig.with_defaults()
        assert config.database_url == "sqlite:///supply.db"
        assert config.max_persist_attempts == 3
        assert config.default_issue_on_create is True
        assert config.order_code_prefix == "PO"

    def test_initialization_is_logged(self, captured_logs):
        FulfillmentConfig(max_persist_attempts=5)
        records = [r for r in captured_logs() if r["message"] == "fulfillment_config_initialized"]
        assert records[-1]["max_persist_attempts"] == 5
        assert records[-1]["dialect"] == "sqlite"


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_persist_attempts": 0},
            {"retry_backoff_seconds": -0.1},
            {"order_code_prefix": "  "},
        ],
    )
    def test_rejected(self, overrides):
        with pytest.raises(ValueError):
            FulfillmentConfig(**overrides)


class TestFromDict:
    def test_known_keys(self):
        config = FulfillmentConfig.from_dict(
            {"database_url": "postgresql://supply@db/supply", "order_code_prefix": "PUR"}
        )
        assert config.database_url == "postgresql://supply@db/supply"
        assert config.order_code_prefix == "PUR"

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValueError, match="retries"):
            FulfillmentConfig.from_dict({"retries": 4})


class TestFromEnv:
    def test_reads_known_variables(self):
        config = FulfillmentConfig.from_env(
            {
                "DATABASE_URL": "sqlite:///other.db",
                "SUPPLY_LOG_LEVEL": "DEBUG",
                "SUPPLY_MAX_PERSIST_ATTEMPTS": "7",
                "UNRELATED": "x",
            }
        )
        assert config.database_url == "sqlite:///other.db"
        assert config.log_level == "DEBUG"
        assert config.max_persist_attempts == 7

    def test_empty_environment_gives_defaults(self):
        assert FulfillmentConfig.from_env({}) == FulfillmentConfig()


class TestFromYaml:
    def test_nested_under_fulfillment_key(self, tmp_path):
        path = tmp_path / "supply.yaml"
        path.write_text(
            "fulfillment:\n"
            "  database_url: sqlite:///yaml.db\n"
            "  max_persist_attempts: 4\n"
            "  default_issue_on_create: false\n",
            encoding="utf-8",
        )
        config = FulfillmentConfig.from_yaml(path)
        assert config.database_url == "sqlite:///yaml.db"
        assert config.max_persist_attempts == 4
        assert config.default_issue_on_create is False

    def test_flat_mapping(self, tmp_path):
        path = tmp_path / "supply.yaml"
        path.write_text("order_code_prefix: RQ\n", encoding="utf-8")
        assert FulfillmentConfig.from_yaml(path).order_code_prefix == "RQ"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "supply.yaml"
        path.write_text("", encoding="utf-8")
        assert FulfillmentConfig.from_yaml(path) == FulfillmentConfig()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "supply.yaml"
        path.write_text("- one\n- two\n", encoding="utf-8")
        with pytest.raises(ValueError):
            FulfillmentConfig.from_yaml(path)


class TestBootstrapFromConfig:
    def test_service_from_config_creates_schema(self, tmp_path):
        config = FulfillmentConfig(
            database_url=f"sqlite:///{tmp_path / 'boot.db'}", log_level="DEBUG",
        )
        try:
            service = FulfillmentService.from_config(config)
            location = service.create_location("BOOT-1", 5)
            assert service.get_location(location.id).code == "BOOT-1"
        finally:
            reset_engine()
