"""
色差・整形ユーティリティのテスト
"""

import pytest

from color_space import CMYK, rgb_to_lab
from mixing_solver import InverseMixSolver
from recipe import RecipeEntry, RecipeStrategy
from utils import (
    calculate_delta_e,
    delta_e_2000,
    delta_e_76,
    delta_e_verdict,
    format_cmyk_ratio,
    format_result_text,
    get_contrast_color,
    hsb_label,
    lab_distance,
    recipe_volumes,
)


class TestDeltaE:
    # Sharma らの CIEDE2000 検証データより
    @pytest.mark.parametrize("lab1, lab2, expected", [
        ((50.0, 2.6772, -79.7751), (50.0, 0.0, -82.7485), 2.0425),
        ((50.0, 3.1571, -77.2803), (50.0, 0.0, -82.7485), 2.8615),
        ((50.0, 0.0, 0.0), (50.0, -1.0, 2.0), 2.3669),
        ((50.0, 2.5, 0.0), (73.0, 25.0, -18.0), 27.1492),
        ((60.2574, -34.0099, 36.2677), (60.4626, -34.1751, 39.4387), 1.2644),
    ])
    def test_ciede2000_reference(self, lab1, lab2, expected):
        assert delta_e_2000(lab1, lab2) == pytest.approx(expected, abs=1e-4)

    def test_identity(self):
        assert delta_e_2000((40, 10, -20), (40, 10, -20)) == 0.0
        assert delta_e_76((40, 10, -20), (40, 10, -20)) == 0.0

    def test_symmetric(self):
        a, b = (61.3, 1.2, -14.0), (30.0, 40.0, 20.0)
        assert delta_e_2000(a, b) == pytest.approx(delta_e_2000(b, a))

    def test_de76_is_euclidean(self):
        assert delta_e_76((50, 0, 0), (53, 4, 0)) == pytest.approx(5.0)

    def test_method_switch(self):
        a, b = (50, 0, 0), (50, -1, 2)
        assert calculate_delta_e(a, b) == pytest.approx(delta_e_2000(a, b))
        assert calculate_delta_e(a, b, method="DE76") == pytest.approx(5 ** 0.5)

    def test_lab_distance(self):
        assert lab_distance((255, 255, 255), (0, 0, 0)) == pytest.approx(100.0, abs=0.01)
        assert lab_distance((10, 20, 30), (10, 20, 30)) == 0.0

    def test_verdict_bands(self):
        assert delta_e_verdict(1.0) == "非常に近い色です"
        assert delta_e_verdict(4.0) == "十分近い色です"
        assert delta_e_verdict(8.0) == "やや差がありますが使用可能"
        assert delta_e_verdict(12.0).startswith("差があります")


class TestFormatting:
    def test_cmyk_ratio(self):
        assert format_cmyk_ratio(CMYK(10, 20, 0, 5)) == "C:10 M:20 Y:0 K:5"

    def test_contrast_color(self):
        assert get_contrast_color("#FFFFFF") == "#000000"
        assert get_contrast_color("#000000") == "#FFFFFF"
        assert get_contrast_color("#FFD900") == "#000000"
        assert get_contrast_color("#004098") == "#FFFFFF"

    def test_recipe_volumes(self):
        entries = [
            RecipeEntry("Gloss White", "001", 62.5, "#FFFFFF"),
            RecipeEntry("Gloss Black", "002", 37.5, "#000000"),
        ]
        volumes = recipe_volumes(entries, 20.0)
        assert [v["ml"] for v in volumes] == [12.5, 7.5]
        assert volumes[0]["code"] == "001"

    def test_hsb_label(self):
        assert hsb_label((229, 18, 68)) == "H=229° S=18% B=68%"

    def test_result_text(self, basic5, linear_mixer):
        recipe = RecipeStrategy(InverseMixSolver(basic5, linear_mixer)).build((200, 200, 200))
        text = format_result_text(recipe, total_ml=10.0)
        assert text.startswith("【混色レシピ】")
        assert "#C8C8C8" in text
        assert "high-brightness" in text
        assert "合計: 10.0ml" in text
        assert "【手順】" in text
        assert "ΔE00" in text

    def test_lab_of_reference(self):
        assert rgb_to_lab(141, 147, 173).b < 0
