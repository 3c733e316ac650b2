"""
Catalog Feed Sync - Models Tests
Tests for Pydantic models and data validation.
"""

import pytest
from pathlib import Path
from datetime import datetime, timezone

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError

from feedsync.models import (
    CanonicalProduct,
    CategoryMapConfig,
    Delta,
    DeltaCounts,
    HistoryEntry,
    MarkupConfig,
    RawFeedRecord,
    SyncOutcome,
    SyncState,
    SyncSummary,
    TransformStats,
)


class TestRawFeedRecord:
    """Tests for RawFeedRecord coercion."""

    def test_hyphenated_aliases(self):
        record = RawFeedRecord.model_validate({
            "sku": "1", "name": "X", "retail-price": "12.50", "discounted-price": "9.90",
        })
        assert record.retail_price == 12.5
        assert record.discounted_price == 9.9

    def test_missing_text_becomes_empty(self):
        record = RawFeedRecord(sku=None, name=None, description=None)
        assert record.sku == ""
        assert record.name == ""
        assert record.description == ""

    def test_blank_optional_is_none(self):
        record = RawFeedRecord(color="  ", material="Oak ")
        assert record.color is None
        assert record.material == "Oak"

    @pytest.mark.parametrize("value,expected", [("", None), ("  ", None), ("abc", None), ("7", 7.0)])
    def test_discount_parsing(self, value, expected):
        assert RawFeedRecord(discounted_price=value).discounted_price == expected

    @pytest.mark.parametrize("value", ["nan", "NaN", "inf", "-Infinity", "1e400"])
    def test_non_finite_numbers(self, value):
        """NaN, infinities and overflowing values behave like unparsable input."""
        record = RawFeedRecord(quantity=value, retail_price=value, discounted_price=value)
        assert record.quantity == 0
        assert record.retail_price == 0.0
        assert record.discounted_price is None

    def test_negative_quantity_kept(self):
        """Negative stock is a skip reason downstream, not a parse error."""
        assert RawFeedRecord(quantity="-2").quantity == -2


class TestCanonicalProduct:
    """Tests for CanonicalProduct validation and serialization."""

    def make(self, **overrides):
        data = {"id": "liberta-1", "title": "Chair", "slug": "chair", "price": 10.0, "stock": 1}
        data.update(overrides)
        return CanonicalProduct(**data)

    def test_sale_price_must_be_below_price(self):
        with pytest.raises(ValidationError):
            self.make(sale_price=10.0)

    def test_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            self.make(price=0)

    @pytest.mark.parametrize("field", ["price", "sale_price"])
    def test_non_finite_prices_rejected(self, field):
        with pytest.raises(ValidationError):
            self.make(**{field: float("nan")})

    def test_stock_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            self.make(stock=-1)

    def test_catalog_dict_uses_camel_case(self):
        data = self.make(sale_price=8.0).to_catalog_dict()
        assert data["salePrice"] == 8.0
        assert data["inStock"] is True
        assert "sale_price" not in data
        assert "in_stock" not in data

    def test_catalog_dict_omits_absent_optionals(self):
        data = self.make().to_catalog_dict()
        for key in ("salePrice", "color", "dimensions", "material"):
            assert key not in data

    def test_accepts_alias_input(self):
        product = CanonicalProduct.model_validate(self.make(sale_price=5.0).to_catalog_dict())
        assert product.sale_price == 5.0


class TestPolicyModels:

    def test_markup_config_aliases(self):
        config = MarkupConfig.model_validate({
            "default": {"multiplier": 1.3, "roundTo": 1},
            "categoryOverrides": {"Lighting": {"multiplier": 2}},
        })
        assert config.default.round_to == 1
        assert config.category_overrides["Lighting"].round_to == 2
        assert config.sale_rules.use_discounted_price is True

    def test_markup_requires_positive_multiplier(self):
        with pytest.raises(ValidationError):
            MarkupConfig.model_validate({"default": {"multiplier": 0}})

    def test_category_map_defaults(self):
        config = CategoryMapConfig.model_validate({})
        assert config.mapping == {}
        assert config.exclude_categories == []
        assert config.passthrough is False


class TestStateModels:

    def test_delta_counts_from_delta(self):
        counts = DeltaCounts.from_delta(Delta(new=["a", "b"], removed=["c"], unchanged=4))
        assert counts.model_dump() == {"new": 2, "removed": 1, "changed": 0, "unchanged": 4}

    def test_empty_state(self):
        state = SyncState.empty()
        assert state.product_hash == {}
        assert state.delta.new == 0

    def test_state_dump_aliases(self):
        state = SyncState(last_sync=datetime(2026, 1, 2, tzinfo=timezone.utc), product_count=1)
        data = state.model_dump(mode="json", by_alias=True)
        assert data["lastSync"].startswith("2026-01-02T00:00:00")
        assert data["productCount"] == 1
        assert data["delta"]["newIds"] == []

    def test_history_entry_aliases(self):
        entry = HistoryEntry.model_validate({
            "timestamp": "2026-01-02T03:00:00Z",
            "productCount": 5,
            "delta": {"new": 1},
            "sampleNewIds": ["liberta-1"],
        })
        assert entry.product_count == 5
        assert entry.sample_new_ids == ["liberta-1"]
        assert entry.sample_removed_ids == []


class TestSyncSummary:

    def test_defaults_to_failed(self):
        summary = SyncSummary()
        assert summary.outcome == SyncOutcome.FAILED
        assert not summary.success

    @pytest.mark.parametrize("outcome", [SyncOutcome.NO_CHANGES, SyncOutcome.WRITTEN, SyncOutcome.DRY_RUN])
    def test_success_outcomes(self, outcome):
        assert SyncSummary(outcome=outcome).success

    def test_skipped_total(self):
        stats = TransformStats(
            total=11, accepted=6, out_of_stock=2, missing_identity=1, invalid_price=1, duplicate_sku=1
        )
        assert stats.skipped == 5
        assert SyncSummary(transform=stats).products_count == 6
