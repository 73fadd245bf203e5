"""
Tests for scope tag matrices and the trade/product catalogs
"""
import pytest

from src.tradeleads.classification.tag_matrix import (
    TAG_PRODUCT_MATRIX,
    TAG_TRADE_MATRIX,
    lookup_products_for_tags,
    split_tag,
    tag_component,
)
from src.tradeleads.classification.trades import (
    PRODUCT_GROUPS,
    TRADES,
    get_product_group_by_slug,
    get_trade_by_slug,
)


class TestTagParsing:
    """Tests for tag splitting and component folding."""

    @pytest.mark.parametrize("tag,expected", [
        ("new:deck", ("new", "deck")),
        ("alter:interior-alterations", ("alter", "interior-alterations")),
        ("deck", ("new", "deck")),
    ])
    def test_split_tag(self, tag, expected):
        assert split_tag(tag) == expected

    @pytest.mark.parametrize("tag,expected", [
        ("new:houseplex-4-unit", "houseplex"),
        ("new:2-storey-addition", "addition"),
        ("new:rear-addition", "addition"),
        ("alter:side-addition", "addition"),
        ("new:high-rise", "high-rise"),
        ("alter:kitchen", "kitchen"),
    ])
    def test_tag_component(self, tag, expected):
        assert tag_component(tag) == expected


class TestMatrices:
    """Tests that matrices only reference catalog entries."""

    def test_trade_matrix_slugs_exist(self):
        for entries in TAG_TRADE_MATRIX.values():
            for slug, confidence in entries:
                assert get_trade_by_slug(slug) is not None, slug
                assert 0.0 <= confidence <= 1.0

    def test_product_matrix_slugs_exist(self):
        for slugs in TAG_PRODUCT_MATRIX.values():
            for slug in slugs:
                assert get_product_group_by_slug(slug) is not None, slug

    def test_catalog_ids_unique(self):
        assert len({t.id for t in TRADES}) == len(TRADES) == 31
        assert len({p.id for p in PRODUCT_GROUPS}) == len(PRODUCT_GROUPS) == 16

    def test_lookup_products_keeps_best_confidence(self):
        products = lookup_products_for_tags(["new:garage", "new:sfd"])

        assert products["garage-doors"] == 0.80
        assert products["lighting"] == 0.80

    def test_unknown_tags_map_to_nothing(self):
        assert lookup_products_for_tags(["new:moat"]) == {}

    def test_high_rise_reaches_tower_trades(self):
        slugs = {slug for slug, _ in TAG_TRADE_MATRIX[tag_component("new:high-rise")]}

        assert {"elevator", "concrete", "structural-steel", "fire-protection", "glazing"} <= slugs

    def test_low_rise_adds_no_trades(self):
        assert "low-rise" not in TAG_TRADE_MATRIX
