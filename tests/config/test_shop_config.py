"""
Tests for shop configuration loading (pos_config).

Covers the packaged defaults, Decimal parsing, range validation,
channel lookup and the checksum emitted in the config trace.
"""

from decimal import Decimal

import pytest
import yaml

from pos_config import get_active_config
from pos_config.loader import compute_checksum, parse_decimal, parse_shop_config
from pos_config.schema import DEFAULT_DAILY_TARGET, ShopConfig
from pos_kernel.exceptions import InvalidConfigError


def _write(tmp_path, data):
    path = tmp_path / "shop.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_packaged_file_loads(self):
        config = get_active_config()
        assert config.fixed_costs.rent == Decimal("300")
        assert config.fee_for("grab") == Decimal("30")
        assert config.fee_for("ShopeeFood") == Decimal("25")
        assert len(config.checksum) == 64

    def test_empty_document(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = get_active_config(path)
        assert config.shop_name == "My Stall"
        assert config.delivery_channels == ()
        assert config.dashboard.daily_target == DEFAULT_DAILY_TARGET

    def test_trace_logged(self, tmp_path, captured_logs):
        path = _write(tmp_path, {"shop_name": "Noodle Cart"})
        config = get_active_config(path)
        (trace,) = [r for r in captured_logs() if r["message"] == "POS_CONFIG_TRACE"]
        assert trace["checksum"] == config.checksum
        assert trace["config_path"] == str(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")


class TestParsing:
    def test_money_parsed_exactly(self):
        config = parse_shop_config({"fixed_costs": {"rent": 0.1, "labor": "450.50"}})
        assert config.fixed_costs.rent == Decimal("0.1")
        assert config.fixed_costs.labor == Decimal("450.50")

    @pytest.mark.parametrize(
        "data, key",
        [
            ({"fixed_costs": {"rent": -1}}, "fixed_costs.rent"),
            ({"fixed_costs": {"rent": "a lot"}}, "fixed_costs.rent"),
            ({"hidden_costs": {"waste_percent": 101}}, "hidden_costs.waste_percent"),
            ({"delivery_channels": [{"fee_percent": 10}]}, "delivery_channels.name"),
            ({"dashboard": {"top_items": 0}}, "dashboard.top_items"),
        ],
    )
    def test_invalid_values(self, data, key):
        with pytest.raises(InvalidConfigError) as exc_info:
            parse_shop_config(data)
        assert exc_info.value.key == key

    def test_duplicate_channels(self):
        data = {"delivery_channels": [{"name": "Grab"}, {"name": " grab "}]}
        with pytest.raises(InvalidConfigError):
            parse_shop_config(data)

    def test_bool_is_not_a_number(self):
        with pytest.raises(InvalidConfigError):
            parse_decimal("fixed_costs.rent", True)


class TestChannels:
    def test_unknown_channel_costs_nothing(self):
        assert ShopConfig().fee_for("Grab") == Decimal("0")

    def test_lookup_ignores_case_and_spacing(self):
        config = parse_shop_config({"delivery_channels": [{"name": "LINE MAN", "fee_percent": 30}]})
        assert config.channel(" line man ").fee_percent == Decimal("30")


class TestChecksum:
    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_content_sensitive(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
