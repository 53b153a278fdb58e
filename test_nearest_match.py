"""
カタログ最近傍検索のテスト
"""

import pandas as pd
import pytest

from color_space import rgb_to_lab
from nearest_match import NearestMatchIndex, paint_index, ral_index
from palettes import CATALOG_COLUMNS, load_paint_catalog, load_ral_catalog
from utils import delta_e_76


class TestNearest:
    def test_exact_match_has_zero_distance(self, small_catalog):
        index = NearestMatchIndex(small_catalog)
        match = index.nearest("#0000FF")
        assert match.color.identifier == "p4"
        assert match.distance == 0.0

    def test_tie_goes_to_first_entry(self, small_catalog):
        """同じ色が2件あれば、カタログで先のものを返す"""
        match = NearestMatchIndex(small_catalog).nearest((0, 250, 0))
        assert match.color.identifier == "p2"

    def test_top_n_order(self, small_catalog):
        matches = NearestMatchIndex(small_catalog).top_n((0, 255, 10), 3)
        assert [m.color.identifier for m in matches] == ["p2", "p3", "p4"]
        assert matches[0].distance <= matches[1].distance <= matches[2].distance

    def test_top_n_larger_than_catalog(self, small_catalog):
        assert len(NearestMatchIndex(small_catalog).top_n("#000000", 10)) == 4

    def test_empty_catalog_is_no_match(self):
        index = NearestMatchIndex(pd.DataFrame(columns=CATALOG_COLUMNS))
        assert len(index) == 0
        assert index.nearest("#FFFFFF") is None
        assert index.top_n("#FFFFFF") == []

    def test_lab_space(self, small_catalog):
        index = NearestMatchIndex(small_catalog, space="lab", metric="DE76")
        match = index.nearest((250, 10, 10))
        assert match.color.identifier == "p1"
        assert match.distance == pytest.approx(delta_e_76(rgb_to_lab(250, 10, 10), rgb_to_lab(255, 0, 0)))

    def test_nearest_lab(self, small_catalog):
        index = NearestMatchIndex(small_catalog, space="lab")
        match = index.nearest_lab((53.2, 80.1, 67.2))
        assert match.color.identifier == "p1"
        assert match.distance < 0.1

    def test_nearest_lab_requires_lab_index(self, small_catalog):
        with pytest.raises(ValueError):
            NearestMatchIndex(small_catalog).nearest_lab((50, 0, 0))

    def test_pluggable_metric(self, small_catalog):
        """任意の距離関数(ここではチェビシェフ距離)を使える"""
        index = NearestMatchIndex(small_catalog, metric=lambda u, v: float(abs(u - v).max()))
        match = index.nearest((200, 0, 100))
        assert match.color.identifier == "p1"
        assert match.distance == 100.0

    def test_de00_metric(self, small_catalog):
        index = NearestMatchIndex(small_catalog, space="lab", metric="DE00")
        assert index.nearest("#00FF00").distance == pytest.approx(0.0, abs=1e-6)

    def test_unknown_metric(self, small_catalog):
        with pytest.raises(ValueError):
            NearestMatchIndex(small_catalog, metric="manhattan-ish")

    @pytest.mark.parametrize("metric", ["DE76", "DE00"])
    def test_lab_metric_requires_lab_space(self, small_catalog, metric):
        """Labの色差式をRGB座標に適用しない"""
        with pytest.raises(ValueError):
            NearestMatchIndex(small_catalog, space="rgb", metric=metric)


class TestBundledCatalogs:
    def test_every_paint_matches_itself(self):
        catalog = load_paint_catalog()
        index = paint_index(catalog)
        for color in index.colors[:20]:
            match = index.nearest(color.hex)
            assert match.distance == 0.0
            assert match.color.hex == color.hex

    def test_ral_white(self):
        index = ral_index(load_ral_catalog())
        match = index.nearest("#FFFFFF")
        assert match.distance == pytest.approx(0.0, abs=1e-9)
        assert match.color.hex == "#FFFFFF"

    def test_ral_traffic_red(self):
        index = ral_index(load_ral_catalog())
        assert index.nearest("#CC0605").color.identifier == "RAL 3020"

    def test_paint_top3(self):
        matches = paint_index(load_paint_catalog()).top_n("#8D93AD")
        assert len(matches) == 3
