"""Catalog matcher running the ordered strategy chain."""

import logging
from typing import List, Optional

from errors import InvalidOrderItem, NoMatchFound
from observability.metrics import match_strategy_hits_total
from .config import MatchingConfig
from .ports import CatalogStore, MatchCandidate, MatcherPort
from .strategies import MatchQuery, MatchStrategy, default_strategies

logger = logging.getLogger(__name__)


class CatalogMatcher(MatcherPort):
    """Multi-strategy matcher over a product catalog.

    Pipeline:
    1. Normalize the item text; reject text shorter than min_item_text_length
    2. Exact-substring on the leading characters (score 10)
    3. Brand token within the item's category (score 5)
    4. Weighted word-set overlap (score = rank)
    5. Any single important word (score 1)

    The first strategy returning a candidate wins; later strategies are never
    invoked. Store errors propagate to the caller.
    """

    def __init__(
        self,
        store: CatalogStore,
        config: Optional[MatchingConfig] = None,
        strategies: Optional[List[MatchStrategy]] = None
    ):
        """Initialize catalog matcher.

        Args:
            store: Catalog store to search
            config: Matching tunables (defaults if omitted)
            strategies: Ordered strategies (default chain if omitted)
        """
        self.store = store
        self.config = config or MatchingConfig()
        self.strategies = strategies if strategies is not None else default_strategies(self.config)

    def find(self, raw_text: str) -> MatchCandidate:
        """Match raw item text, raising when nothing matches.

        Args:
            raw_text: Item text as it appeared on the order

        Returns:
            MatchCandidate of the first successful strategy

        Raises:
            InvalidOrderItem: If normalized text is too short
            NoMatchFound: If every strategy came back empty
        """
        query = MatchQuery.from_text(raw_text or "")
        if len(query.normalized) < self.config.min_item_text_length:
            raise InvalidOrderItem(raw_text or "", self.config.min_item_text_length)

        for strategy in self.strategies:
            candidate = strategy(query, self.store)
            if candidate is not None:
                logger.debug(
                    f"Strategy '{strategy.name}' matched product {candidate.product.id} "
                    f"at {candidate.chosen_offer.price}",
                    extra={"original_item": raw_text, "strategy": strategy.name},
                )
                match_strategy_hits_total.labels(strategy=strategy.name).inc()
                return candidate
            logger.debug(
                f"Strategy '{strategy.name}' found no candidate",
                extra={"original_item": raw_text, "strategy": strategy.name},
            )

        match_strategy_hits_total.labels(strategy="none").inc()
        raise NoMatchFound(raw_text)

    def match(self, raw_text: str) -> Optional[MatchCandidate]:
        """Match raw item text to a single catalog candidate.

        Args:
            raw_text: Item text as it appeared on the order

        Returns:
            Best MatchCandidate or None if the text is too short or nothing matched
        """
        try:
            return self.find(raw_text)
        except (InvalidOrderItem, NoMatchFound) as e:
            logger.info(e.message, extra={"original_item": raw_text})
            return None
