"""Unit tests for the preference-aware resolver

Tests that learned item preferences override automatic matching:
- Preferred product wins over a cheaper automatic match
- Lookup is case-insensitive but otherwise exact
- Preference store failures fall back to automatic matching
"""

import pytest
from decimal import Decimal
from unittest.mock import Mock

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from errors import PreferenceStoreUnavailable
from matching.catalog_matcher import CatalogMatcher
from matching.resolver import PREFERENCE_STRATEGY, PreferenceAwareResolver
from preferences.ports import PreferenceStore
from pricing.offer_cache import CachedOfferLookup

USER_ID = 42


@pytest.fixture
def offers(price_store):
    return CachedOfferLookup(price_store)


@pytest.fixture
def resolver(preference_store, catalog_store, offers):
    return PreferenceAwareResolver(preference_store, CatalogMatcher(catalog_store), offers)


class TestPreferencePrecedence:

    def test_preferred_product_beats_cheaper_match(self, catalog, preference_store, resolver):
        """Given a $10 preferred product and a $5 automatic match, then the preference wins"""
        cheap_id, _ = catalog.add_offer("Top Coat Glossy Shine", "Nail Supply Co", "5.00")
        preferred_id, _ = catalog.add_offer("Premium Sealant Gloss", "Beauty Wholesale", "10.00")
        preference_store.upsert_item_preference(USER_ID, "Top Coat Glossy", preferred_id)

        result = resolver.resolve("Top Coat Glossy", USER_ID)

        assert result.is_preference is True
        assert result.product_id == preferred_id
        assert result.offer.price == Decimal("10.00")
        assert result.frequency == 1
        assert result.strategy_name == PREFERENCE_STRATEGY

        automatic = resolver.resolve("Top Coat Glossy", USER_ID + 1)
        assert automatic.is_preference is False
        assert automatic.product_id == cheap_id

    def test_preference_uses_cheapest_current_offer(self, preference_store, resolver, ids):
        preference_store.upsert_item_preference(USER_ID, "oil", ids.cuticle_oil, ids.salon_direct)

        result = resolver.resolve("oil", USER_ID)

        assert result.offer.supplier_name == "Beauty Wholesale"
        assert result.offer.price == Decimal("4.50")

    def test_preference_frequency_reported(self, preference_store, resolver, ids):
        for _ in range(3):
            preference_store.upsert_item_preference(USER_ID, "Red Polish", ids.opi_red)

        assert resolver.resolve("Red Polish", USER_ID).frequency == 3

    def test_matcher_not_called_when_preference_found(self, preference_store, offers, ids):
        matcher = Mock()
        preference_store.upsert_item_preference(USER_ID, "Red Polish", ids.opi_red)

        PreferenceAwareResolver(preference_store, matcher, offers).resolve("Red Polish", USER_ID)

        matcher.match.assert_not_called()


class TestExactLookup:

    def test_case_insensitive(self, preference_store, resolver, ids):
        preference_store.upsert_item_preference(USER_ID, "OPI Red [SALE]", ids.opi_red)

        assert resolver.resolve("opi red [sale]", USER_ID).is_preference is True

    def test_no_normalization(self, preference_store, resolver, ids):
        """Given a preference for bracketed text, then the bare text doesn't hit it"""
        preference_store.upsert_item_preference(USER_ID, "Almond Oil [SALE]", ids.opi_red)

        result = resolver.resolve("Almond Oil", USER_ID)

        assert result.is_preference is False
        assert result.product_id == ids.cuticle_oil

    def test_preferences_are_per_user(self, preference_store, resolver, ids):
        preference_store.upsert_item_preference(USER_ID, "Red Polish", ids.cnd_wildfire)

        assert resolver.resolve("Red Polish", 7).is_preference is False


class TestFallback:

    def test_no_preference_uses_matcher(self, resolver, ids):
        result = resolver.resolve("OPI Gel Color - Red Hot", USER_ID)

        assert result.is_preference is False
        assert result.product_id == ids.opi_red
        assert result.strategy_name == "brand_category"
        assert result.match_score == 5

    def test_no_match(self, resolver):
        result = resolver.resolve("Unknown Widget", USER_ID)

        assert result.product is None
        assert result.offer is None
        assert result.is_preference is False

    def test_store_unavailable_falls_back(self, catalog_store, offers, ids):
        """Given a failing preference store, then automatic matching is used"""
        store = Mock(spec=PreferenceStore)
        store.get_item_preference.side_effect = PreferenceStoreUnavailable("connection refused")
        resolver = PreferenceAwareResolver(store, CatalogMatcher(catalog_store), offers)

        result = resolver.resolve("OPI Gel Color - Red Hot", USER_ID)

        assert result.is_preference is False
        assert result.product_id == ids.opi_red
