"""Unit tests for the catalog matcher and its strategies

Tests the ordered strategy chain:
- Exact substring on the leading characters
- Brand token within the item's category
- Weighted word-set overlap
- Single important word
"""

import pytest
from decimal import Decimal
from unittest.mock import Mock

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from errors import InvalidOrderItem, NoMatchFound
from matching.catalog_matcher import CatalogMatcher
from matching.config import MatchingConfig
from matching.ports import CatalogCandidate, CatalogStore
from matching.scorer import rank_descriptions, weighted_overlap
from matching.strategies import MatchQuery, WordSetStrategy


def candidate(product_id, price, supplier="Nail Supply Co", supplier_id=1, rank=0.0, description=None):
    return CatalogCandidate(
        product_id=product_id,
        description=description or f"Product {product_id}",
        supplier_id=supplier_id,
        supplier_name=supplier,
        price=Decimal(price),
        rank=rank,
    )


@pytest.fixture
def mock_store():
    store = Mock(spec=CatalogStore)
    store.search_exact_substring.return_value = []
    store.search_brand_category.return_value = []
    store.search_word_set.return_value = []
    store.search_single_word.return_value = []
    return store


class TestStrategyOrder:
    """Test that the first successful strategy wins"""

    def test_exact_substring_short_circuits(self, mock_store):
        """Given an exact-substring hit, then no later strategy is invoked"""
        mock_store.search_exact_substring.return_value = [candidate(7, "3.00")]

        result = CatalogMatcher(mock_store).find("Kolinsky Acrylic Brush Size 8")

        assert result.strategy_name == "exact_substring"
        assert result.match_score == 10
        mock_store.search_exact_substring.assert_called_once_with("kolinsky acryli")
        mock_store.search_brand_category.assert_not_called()
        mock_store.search_word_set.assert_not_called()
        mock_store.search_single_word.assert_not_called()

    def test_falls_through_to_brand(self, mock_store):
        mock_store.search_brand_category.return_value = [candidate(3, "19.50")]

        result = CatalogMatcher(mock_store).find("Kolinsky Brush 8")

        assert result.strategy_name == "brand_category"
        assert result.match_score == 5
        mock_store.search_brand_category.assert_called_once_with("kolinsky", ("brush", "tool", "file"))
        mock_store.search_word_set.assert_not_called()
        mock_store.search_single_word.assert_not_called()

    def test_falls_through_to_single_word(self, mock_store):
        mock_store.search_single_word.return_value = [candidate(4, "6.25")]

        result = CatalogMatcher(mock_store).find("Huge Dotting Kit")

        assert result.strategy_name == "single_word"
        assert result.match_score == 1
        mock_store.search_single_word.assert_called_once_with(["dotting"])

    def test_no_strategy_matches(self, mock_store):
        matcher = CatalogMatcher(mock_store)

        with pytest.raises(NoMatchFound):
            matcher.find("Unknown Widget Thing")
        assert matcher.match("Unknown Widget Thing") is None


class TestTieBreak:
    """Within one strategy the cheapest offer wins"""

    def test_cheaper_candidate_selected(self, mock_store):
        mock_store.search_exact_substring.return_value = [
            candidate(1, "12.00", supplier="Expensive"),
            candidate(2, "9.99", supplier="Cheap", supplier_id=2),
        ]

        result = CatalogMatcher(mock_store).find("Generic Gel Polish")

        assert result.product.id == 2
        assert result.chosen_offer.price == Decimal("9.99")
        assert result.chosen_offer.supplier_name == "Cheap"

    def test_equal_price_breaks_on_product_then_supplier(self, mock_store):
        mock_store.search_exact_substring.return_value = [
            candidate(5, "5.00", supplier="Zeta", supplier_id=9),
            candidate(5, "5.00", supplier="Alpha", supplier_id=8),
            candidate(6, "5.00", supplier="Aardvark", supplier_id=7),
        ]

        result = CatalogMatcher(mock_store).find("Generic Gel Polish")

        assert result.product.id == 5
        assert result.chosen_offer.supplier_name == "Alpha"

    def test_word_set_prefers_rank_over_price(self, mock_store):
        """Given two word-set rows, then higher rank wins even when pricier"""
        mock_store.search_word_set.return_value = [
            candidate(1, "2.00", rank=0.5),
            candidate(2, "9.00", rank=0.9),
        ]

        result = WordSetStrategy(MatchingConfig())(MatchQuery.from_text("organic cuticle almond oil"), mock_store)

        assert result.product.id == 2
        assert result.match_score == 0.9


class TestInvalidItems:

    @pytest.mark.parametrize("text", ["", "ab", "  a  ", "[promo] ab", "*x* ab"])
    def test_short_text_rejected(self, mock_store, text):
        """Given fewer than 3 normalized characters, then no strategy is attempted"""
        matcher = CatalogMatcher(mock_store)

        with pytest.raises(InvalidOrderItem):
            matcher.find(text)
        assert matcher.match(text) is None
        mock_store.search_exact_substring.assert_not_called()

    def test_short_brand_skipped(self, mock_store):
        CatalogMatcher(mock_store).match("ab gel polish")

        mock_store.search_brand_category.assert_not_called()


class TestCategoryClassification:

    def test_polish_item(self):
        assert MatchingConfig().classify("OPI Gel Color - Red Hot").name == "polish"

    def test_tool_item(self):
        assert MatchingConfig().classify("Dotting tool").name == "tool"

    def test_ambiguous_item_unclassified(self):
        """Given polish and tool keywords, then no category filter applies"""
        assert MatchingConfig().classify("Gel brush") is None

    def test_unclassified_item(self):
        assert MatchingConfig().classify("Cuticle oil") is None


class TestWordSetScoring:

    def test_weighted_overlap(self):
        rank, count = weighted_overlap(["organic", "cuticle", "almond"], "Cuticle Oil Almond 4 oz")
        assert count == 2
        assert rank == pytest.approx(13 / 20)

    def test_prefix_token_counts(self):
        rank, count = weighted_overlap(["color", "red"], "Big Apple Red Colors")
        assert count == 2
        assert rank == 1.0

    def test_min_matched_filter(self):
        ranks = rank_descriptions(
            ["organic", "cuticle", "almond"],
            [(1, "Cuticle Oil Almond"), (2, "Cuticle Pusher")],
            min_matched=2,
        )
        assert list(ranks) == [1]


class TestAgainstCatalog:
    """End-to-end matching against the in-memory catalog"""

    def test_brand_category_match(self, catalog_store, ids):
        result = CatalogMatcher(catalog_store).find("OPI Gel Color - Red Hot")

        assert result.strategy_name == "brand_category"
        assert result.product.id == ids.opi_red
        assert result.chosen_offer.price == Decimal("12.99")

    def test_exact_substring_picks_cheapest_supplier(self, catalog_store, ids):
        result = CatalogMatcher(catalog_store).find("CND Shellac Gel Polish - Wildfire")

        assert result.strategy_name == "exact_substring"
        assert result.product.id == ids.cnd_wildfire
        assert result.chosen_offer.supplier_name == "Beauty Wholesale"
        assert result.chosen_offer.price == Decimal("13.75")

    def test_tool_category_match(self, catalog_store, ids):
        result = CatalogMatcher(catalog_store).find("Kolinsky Brush #8")

        assert result.strategy_name == "brand_category"
        assert result.product.id == ids.kolinsky_brush
        assert result.chosen_offer.supplier_name == "Pro Nail Depot"

    def test_word_set_match(self, catalog_store, ids):
        result = CatalogMatcher(catalog_store).find("Organic Cuticle Almond Oil")

        assert result.strategy_name == "word_set"
        assert result.product.id == ids.cuticle_oil
        assert result.chosen_offer.price == Decimal("4.50")
        assert result.match_score == pytest.approx(13 / 20)

    def test_single_word_match(self, catalog_store, ids):
        result = CatalogMatcher(catalog_store).find("Huge Dotting Kit")

        assert result.strategy_name == "single_word"
        assert result.product.id == ids.dotting_tool

    def test_deterministic(self, catalog_store):
        matcher = CatalogMatcher(catalog_store)
        results = {matcher.find("Organic Cuticle Almond Oil") for _ in range(5)}
        assert len(results) == 1
