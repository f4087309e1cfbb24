"""
Configuration loading: YAML parsing, validation, environment overrides and
the bridge into the kernel's LedgerPolicy.
"""

import pytest
import yaml

from stock_config import get_active_config
from stock_config.bridges import build_ledger_policy
from stock_config.loader import compute_checksum, load_config_file, parse_config
from stock_config.schema import StockConfigurationSet
from stock_kernel.domain.policy import LedgerPolicy, NegativeStockPolicy, OverReceiptPolicy


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="stock.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv("STOCK_LEDGER_CONFIG", raising=False)
    monkeypatch.delenv("STOCK_LEDGER_DATABASE_URL", raising=False)


class TestDefaults:

    def test_packaged_defaults(self):
        config = get_active_config()
        assert config.config_id == "stock-ledger-default"
        assert config.negative_stock_policy == "strict"
        assert config.over_receipt_policy == "flag"
        assert config.max_movement_magnitude == 9999
        assert config.checksum

    def test_defaults_bridge_to_default_policy(self):
        assert build_ledger_policy(get_active_config()) == LedgerPolicy()


class TestParse:

    def test_minimal(self):
        config = parse_config({"config_id": "site-a", "version": 2})
        assert config.version == 2
        assert config.receipt_number_prefix == "RCP"

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            parse_config({"config_id": "x", "version": 1, "allow_negative": True})

    @pytest.mark.parametrize("missing", ["config_id", "version"])
    def test_required_keys(self, missing):
        data = {"config_id": "x", "version": 1}
        del data[missing]
        with pytest.raises(ValueError, match=missing):
            parse_config(data)

    @pytest.mark.parametrize(
        "key,value",
        [
            ("negative_stock_policy", "lenient"),
            ("over_receipt_policy", "ignore"),
            ("max_movement_magnitude", 0),
            ("max_movement_magnitude", "100"),
            ("version", True),
            ("default_min_stock_level", -1),
            ("sqlite_busy_timeout_seconds", 0),
        ],
    )
    def test_invalid_values(self, key, value):
        with pytest.raises(ValueError):
            parse_config({"config_id": "x", "version": 1, key: value})

    def test_not_a_mapping(self):
        with pytest.raises(ValueError):
            parse_config(["config_id", "x"])

    def test_checksum_identifies_content(self):
        a = {"config_id": "x", "version": 1}
        b = {"version": 1, "config_id": "x"}
        c = {"config_id": "x", "version": 2}
        assert compute_checksum(a) == compute_checksum(b)
        assert compute_checksum(a) != compute_checksum(c)
        assert parse_config(a).checksum == compute_checksum(a)

    def test_frozen(self):
        config = parse_config({"config_id": "x", "version": 1})
        with pytest.raises(AttributeError):
            config.version = 2


class TestFiles:

    def test_load_file(self, write_config):
        path = write_config(
            {
                "config_id": "warehouse-2",
                "version": 4,
                "negative_stock_policy": "clamp",
                "over_receipt_policy": "reject",
                "receipt_number_prefix": "GRN",
            }
        )
        config = load_config_file(path)
        policy = build_ledger_policy(config)
        assert policy.negative_stock is NegativeStockPolicy.CLAMP
        assert policy.over_receipt is OverReceiptPolicy.REJECT
        assert policy.receipt_number_prefix == "GRN"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_file(tmp_path / "absent.yaml")

    def test_env_path(self, write_config, monkeypatch):
        path = write_config({"config_id": "from-env", "version": 1})
        monkeypatch.setenv("STOCK_LEDGER_CONFIG", str(path))
        assert get_active_config().config_id == "from-env"

    def test_argument_beats_env(self, write_config, monkeypatch):
        env_path = write_config({"config_id": "from-env", "version": 1}, "env.yaml")
        arg_path = write_config({"config_id": "from-arg", "version": 1}, "arg.yaml")
        monkeypatch.setenv("STOCK_LEDGER_CONFIG", str(env_path))
        assert get_active_config(arg_path).config_id == "from-arg"

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("STOCK_LEDGER_DATABASE_URL", "sqlite:///override.db")
        assert get_active_config().database_url == "sqlite:///override.db"


def test_config_trace_logged(captured_logs):
    config = get_active_config()

    traces = [r for r in captured_logs() if r["message"] == "STOCK_CONFIG_TRACE"]
    assert traces
    assert traces[-1]["logger"] == "stock_kernel.config"
    assert traces[-1]["config_set_id"] == config.config_id
    assert traces[-1]["checksum"] == config.checksum


def test_schema_direct_construction_validates():
    with pytest.raises(ValueError):
        StockConfigurationSet(config_id="", version=1)
