"""Unit tests for preference learning feedback

Tests the learning loop per user confirmation:
- Upserts increment frequency atomically
- Batch upserts are all-or-nothing
- Cleanup removes single-use stale preferences
- Write failures never reach the caller
"""

import logging
import threading
import pytest
from decimal import Decimal
from unittest.mock import Mock

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from errors import PreferenceStoreUnavailable, StoreUnavailable
from preferences.learning import PreferenceLearningService
from preferences.ports import PreferenceStore, SupplierPreferenceUpdate
from preferences.schemas import PreferenceRetentionSettings
from pricing.ports import SupplierPriceStore

USER_ID = 42


@pytest.fixture
def service(preference_store, price_store, clock):
    return PreferenceLearningService(preference_store, price_store, clock=clock)


@pytest.fixture
def failing_store():
    store = Mock(spec=PreferenceStore)
    error = PreferenceStoreUnavailable("connection refused")
    store.upsert_item_preference.side_effect = error
    store.upsert_supplier_preference.side_effect = error
    store.batch_upsert_supplier_preferences.side_effect = error
    store.cleanup.side_effect = error
    return store


class TestFrequency:

    def test_frequency_counts_confirmations(self, service, ids):
        """Given N upserts of the same key, then frequency is N"""
        for _ in range(5):
            preference = service.record_supplier_preference("Red Polish", ids.nail_supply, ids.opi_red)

        assert preference.frequency == 5

    def test_item_preference_frequency(self, service, ids):
        service.record_item_preference(USER_ID, "Red Polish", ids.opi_red)
        preference = service.record_item_preference(USER_ID, "RED POLISH", ids.opi_red)

        assert preference.frequency == 2
        assert preference.original_item == "RED POLISH"

    def test_last_used_advances_created_at_kept(self, service, clock, ids):
        first = service.record_supplier_preference("Red Polish", ids.nail_supply, ids.opi_red)
        clock.advance(days=3)
        second = service.record_supplier_preference("Red Polish", ids.nail_supply, ids.opi_red)

        assert second.created_at == first.created_at
        assert second.last_used == clock.now
        assert second.created_at <= second.last_used

    def test_last_used_never_moves_back(self, service, clock, ids):
        service.record_supplier_preference("Red Polish", ids.nail_supply, ids.opi_red)
        latest = clock.now
        clock.advance(days=-10)

        preference = service.record_supplier_preference("Red Polish", ids.nail_supply, ids.opi_red)

        assert preference.last_used == latest

    def test_supplier_keys_are_independent(self, service, ids):
        service.record_supplier_preference("Red Polish", ids.nail_supply, ids.opi_red)
        preference = service.record_supplier_preference("Red Polish", ids.nail_supply)

        assert preference.frequency == 1
        assert preference.product_id is None

    def test_concurrent_upserts_lose_nothing(self, preference_store, ids):
        """Given concurrent confirmations of one key, then every increment counts"""
        def confirm():
            for _ in range(25):
                preference_store.upsert_supplier_preference("Red Polish", ids.nail_supply, ids.opi_red)

        threads = [threading.Thread(target=confirm) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert preference_store.get_supplier_preference("Red Polish", ids.opi_red).frequency == 200


class TestBatchUpsert:

    def test_batch_applies_all(self, service, preference_store, ids):
        updates = [
            SupplierPreferenceUpdate("Red Polish", ids.nail_supply, ids.opi_red),
            SupplierPreferenceUpdate("Almond Oil", ids.pro_nail, ids.cuticle_oil),
            SupplierPreferenceUpdate("Red Polish", ids.nail_supply, ids.opi_red),
        ]

        results = service.record_supplier_preferences(updates)

        assert [p.frequency for p in results] == [1, 1, 2]
        assert preference_store.get_supplier_preference("Almond Oil", ids.cuticle_oil).supplier_id == ids.pro_nail

    def test_batch_rolls_back_on_failure(self, preference_store, ids):
        """Given a failing update in a batch, then no update is applied"""
        updates = [
            SupplierPreferenceUpdate("Red Polish", ids.nail_supply, ids.opi_red),
            SupplierPreferenceUpdate(None, ids.pro_nail, ids.cuticle_oil),
        ]

        with pytest.raises(AttributeError):
            preference_store.batch_upsert_supplier_preferences(updates)

        assert preference_store.get_supplier_preference("Red Polish", ids.opi_red) is None

    def test_empty_batch(self, service):
        assert service.record_supplier_preferences([]) == []


class TestOverride:

    def test_override_learns_both_kinds(self, service, preference_store, ids):
        result = service.record_override(USER_ID, "Almond Oil", ids.cuticle_oil, ids.salon_direct)

        assert result.supplier_name == "Salon Direct"
        assert result.price == Decimal("5.25")
        assert result.frequency == 1
        assert result.preference_updated is True
        assert preference_store.get_item_preference(USER_ID, "almond oil").supplier_id == ids.salon_direct
        assert preference_store.get_supplier_preference("Almond Oil", ids.cuticle_oil).supplier_id == ids.salon_direct

    def test_override_requires_product(self, service, ids):
        with pytest.raises(ValueError):
            service.record_override(USER_ID, "Almond Oil", None, ids.salon_direct)

    def test_override_supplier_without_offer(self, service, ids):
        result = service.record_override(USER_ID, "Dotting", ids.dotting_tool, ids.salon_direct)

        assert result.supplier_name == "Salon Direct"
        assert result.price is None

    def test_override_store_unavailable(self, failing_store, price_store, ids):
        service = PreferenceLearningService(failing_store, price_store)

        result = service.record_override(USER_ID, "Almond Oil", ids.cuticle_oil, ids.salon_direct)

        assert result.preference_updated is False
        assert result.frequency == 0

    def test_override_price_store_unavailable(self, preference_store, ids):
        """Given a failing price store, then the override is still learned"""
        price_store = Mock(spec=SupplierPriceStore)
        price_store.get_offers_for_product.side_effect = StoreUnavailable("price", "down")
        price_store.get_supplier_by_id.side_effect = StoreUnavailable("price", "down")
        service = PreferenceLearningService(preference_store, price_store)

        result = service.record_override(USER_ID, "Almond Oil", ids.cuticle_oil, ids.salon_direct)

        assert result.preference_updated is True
        assert result.frequency == 1
        assert result.supplier_name is None
        assert result.price is None
        assert preference_store.get_item_preference(USER_ID, "Almond Oil").supplier_id == ids.salon_direct
        assert preference_store.get_supplier_preference("Almond Oil", ids.cuticle_oil).supplier_id == ids.salon_direct


class TestNonFatalWrites:

    def test_item_write_failure(self, failing_store, ids):
        service = PreferenceLearningService(failing_store)
        assert service.record_item_preference(USER_ID, "Red Polish", ids.opi_red) is None

    def test_supplier_write_failure(self, failing_store, ids):
        service = PreferenceLearningService(failing_store)
        assert service.record_supplier_preference("Red Polish", ids.nail_supply) is None

    def test_batch_write_failure(self, failing_store, ids):
        service = PreferenceLearningService(failing_store)
        updates = [SupplierPreferenceUpdate("Red Polish", ids.nail_supply)]
        assert service.record_supplier_preferences(updates) == []

    def test_cleanup_failure(self, failing_store):
        assert PreferenceLearningService(failing_store).cleanup_stale_preferences() == 0

    def test_batch_timeout_reported_as_unknown_outcome(self, ids, caplog):
        """Given a batch write that timed out, then the log says the outcome is unknown"""
        store = Mock(spec=PreferenceStore)
        error = PreferenceStoreUnavailable("timed out after 5.0s")
        error.details["timed_out"] = True
        store.batch_upsert_supplier_preferences.side_effect = error
        service = PreferenceLearningService(store)

        with caplog.at_level(logging.WARNING, logger="preferences.learning"):
            result = service.record_supplier_preferences([SupplierPreferenceUpdate("Red Polish", ids.nail_supply)])

        assert result == []
        assert "unknown" in caplog.text

    def test_batch_failure_reported_as_failed(self, failing_store, ids, caplog):
        service = PreferenceLearningService(failing_store)

        with caplog.at_level(logging.WARNING, logger="preferences.learning"):
            service.record_supplier_preferences([SupplierPreferenceUpdate("Red Polish", ids.nail_supply)])

        assert "Failed to record batch preference" in caplog.text
        assert "unknown" not in caplog.text


class TestCleanup:

    def test_removes_stale_single_use(self, service, preference_store, clock, ids):
        service.record_item_preference(USER_ID, "Stale Item", ids.opi_red)
        service.record_supplier_preference("Stale Item", ids.nail_supply, ids.opi_red)
        service.record_supplier_preference("Popular Item", ids.pro_nail, ids.cuticle_oil)
        service.record_supplier_preference("Popular Item", ids.pro_nail, ids.cuticle_oil)
        clock.advance(days=400)
        service.record_item_preference(USER_ID, "Fresh Item", ids.opi_red)

        removed = service.cleanup_stale_preferences()

        assert removed == 2
        assert preference_store.get_item_preference(USER_ID, "Stale Item") is None
        assert preference_store.get_item_preference(USER_ID, "Fresh Item") is not None
        assert preference_store.get_supplier_preference("Popular Item", ids.cuticle_oil).frequency == 2

    def test_custom_window(self, service, clock, ids):
        service.record_item_preference(USER_ID, "Stale Item", ids.opi_red)
        clock.advance(days=40)

        assert service.cleanup_stale_preferences() == 0
        assert service.cleanup_stale_preferences(retention_days=30) == 1

    def test_invalid_window(self, service):
        with pytest.raises(ValueError):
            service.cleanup_stale_preferences(retention_days=0)

    def test_retention_settings_bounds(self):
        assert PreferenceRetentionSettings().retention_days == 365
        with pytest.raises(ValueError):
            PreferenceRetentionSettings(retention_days=5000)


class TestStatsAndSummary:

    def test_preference_stats(self, service, clock, ids):
        service.record_item_preference(USER_ID, "Red Polish", ids.opi_red, ids.nail_supply)
        service.record_item_preference(USER_ID, "Red Polish", ids.opi_red, ids.nail_supply)
        service.record_item_preference(USER_ID, "Brush", ids.kolinsky_brush)
        clock.advance(days=10)
        service.record_item_preference(USER_ID, "Almond Oil", ids.cuticle_oil, ids.pro_nail)

        stats = service.preference_stats(USER_ID)

        assert stats.total_preferences == 3
        assert stats.unique_products == 3
        assert stats.unique_suppliers == 2
        assert stats.avg_frequency == pytest.approx(1.33)
        assert stats.max_frequency == 2
        assert stats.recent_usage == 1

    def test_stats_without_preferences(self, service):
        assert service.preference_stats(USER_ID).total_preferences == 0

    def test_preferences_summary(self, service, ids):
        service.record_item_preference(USER_ID, "Red Polish", ids.opi_red)

        summary = service.preferences_summary(USER_ID, ["red polish", "Almond Oil", "Brush"])

        assert summary.total_items == 3
        assert summary.items_with_preferences == 1
        assert summary.coverage_percentage == 33.3
        assert summary.preferences["red polish"]["product_id"] == ids.opi_red
        assert summary.preferences["red polish"]["product_description"] == "OPI GelColor - Big Apple Red 0.5 oz"

    def test_summary_of_empty_order(self, service):
        assert service.preferences_summary(USER_ID, []).coverage_percentage == 0.0
