"""
パレット・カタログ読み込みのテスト
"""

import json

import numpy as np
import pytest

from palettes import (
    CATALOG_COLUMNS,
    HueSectorTable,
    PaletteRegistry,
    catalog_colors,
    light_reflectance_value,
    load_paint_catalog,
    load_palette_registry,
    load_ral_catalog,
)


class TestRegistry:
    def test_standard_palettes(self, registry):
        assert registry.names() == ["basic5", "extended8"]
        assert registry.get("basic5").ids == ["white", "black", "red", "blue", "yellow"]
        assert registry.get("extended8").ids == [
            "white", "black", "red", "magenta", "blue", "cyan", "yellow", "orange",
        ]

    def test_unknown_palette(self, registry):
        with pytest.raises(KeyError):
            registry.get("rainbow")

    def test_codes_stay_strings(self, registry):
        assert registry.pigment("red").code == "003"
        assert registry.pigment("red").label == "Gaia 003 Gloss Red"

    def test_indices(self, extended8):
        assert extended8.white_index == 0
        assert extended8.black_index == 1
        assert extended8.chromatic_ids == ["red", "magenta", "blue", "cyan", "yellow", "orange"]
        assert extended8.has_achromatic()

    def test_index_of_unknown(self, basic5):
        with pytest.raises(ValueError):
            basic5.index_of("magenta")

    def test_sector_counts(self, basic5, extended8):
        assert len(basic5.seed_sectors.rows) == 7
        assert len(extended8.seed_sectors.rows) == 12

    def test_palettes_are_immutable(self, basic5):
        with pytest.raises(AttributeError):
            basic5.name = "other"

    def test_unknown_pigment_reference(self):
        data = {
            "pigments": [{"id": "white", "brand": "T", "code": "1", "name": "W", "hex": "#ffffff"}],
            "palettes": {"bad": {"pigments": ["white", "black"]}},
        }
        with pytest.raises(ValueError):
            PaletteRegistry.from_dict(data)

    def test_sector_table_must_use_palette_pigments(self):
        data = {
            "pigments": [
                {"id": "white", "brand": "T", "code": "1", "name": "W", "hex": "#FFFFFF"},
                {"id": "black", "brand": "T", "code": "2", "name": "B", "hex": "#000000"},
                {"id": "red", "brand": "T", "code": "3", "name": "R", "hex": "#FF0000"},
            ],
            "palettes": {
                "bad": {
                    "pigments": ["white", "black", "red"],
                    "seed_sectors": [[0, {"blue": 1.0}]],
                },
            },
        }
        with pytest.raises(ValueError):
            PaletteRegistry.from_dict(data)

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "palettes.json"
        path.write_text(json.dumps({
            "pigments": [
                {"id": "white", "brand": "T", "code": "1", "name": "W", "hex": "#fff"},
                {"id": "black", "brand": "T", "code": "2", "name": "B", "hex": "#000"},
            ],
            "palettes": {"mono": {"label": "白黒", "pigments": ["white", "black"]}},
        }), encoding="utf-8")
        registry = load_palette_registry(path)
        assert registry.get("mono").label == "白黒"
        assert registry.pigment("white").hex == "#FFF"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_palette_registry(tmp_path / "missing.json")


class TestHueSectorTable:
    table = HueSectorTable.from_rows([
        [60, {"yellow": 1.0}],
        [-30, {"red": 1.0}],
        [180, {"blue": 0.5, "red": 0.5}],
    ])

    def test_rows_are_sorted(self):
        assert self.table.lower_bounds == [-30.0, 60.0, 180.0]

    def test_lookup(self):
        assert self.table.lookup(0) == {"red": 1.0}
        assert self.table.lookup(59.9) == {"red": 1.0}
        assert self.table.lookup(60) == {"yellow": 1.0}
        assert self.table.lookup(200) == {"blue": 0.5, "red": 0.5}

    def test_wraps_into_first_row(self):
        """330°以上は先頭(-30°〜)のセクター"""
        assert self.table.lookup(330) == {"red": 1.0}
        assert self.table.lookup(329) == {"blue": 0.5, "red": 0.5}
        assert self.table.lookup(360) == {"red": 1.0}

    def test_vector(self):
        np.testing.assert_allclose(self.table.vector(200, ["red", "blue", "yellow"]), [0.5, 0.5, 0.0])

    def test_empty_table(self):
        with pytest.raises(ValueError):
            HueSectorTable.from_rows([])


class TestCatalogs:
    def test_paint_catalog(self):
        catalog = load_paint_catalog()
        assert list(catalog.columns) == CATALOG_COLUMNS
        assert len(catalog) > 50
        first = catalog_colors(catalog)[0]
        assert (first.label, first.code, first.name, first.hex) == ("Mr.Hobby", "C1", "White", "#FFFFFF")
        assert first.lrv is None

    def test_ral_catalog(self):
        catalog = load_ral_catalog()
        assert list(catalog.columns) == CATALOG_COLUMNS
        assert catalog.iloc[0]["identifier"] == "RAL 1000"
        colors = catalog_colors(catalog)
        white = next(c for c in colors if c.code == "9010")
        assert white.lrv == pytest.approx(100.0)

    def test_lrv(self):
        assert light_reflectance_value("#000000") == 0.0
        assert light_reflectance_value("#808080") == pytest.approx(21.6, abs=0.1)

    def test_as_pigment(self):
        color = catalog_colors(load_paint_catalog())[0]
        pigment = color.as_pigment()
        assert pigment.id == "base-1"
        assert pigment.hex == color.hex

    def test_missing_catalog(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_paint_catalog(tmp_path / "missing.csv")
