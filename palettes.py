"""
GK-Mixer - 顔料パレットとカラーカタログ

- 混色用の標準パレット(5色 / 8色)と色相セクター表: data/palettes.json
- 既製塗料カタログ(Mr.Hobby / Gaia / Jumpwind / Gunze): data/paint_catalog.csv
- RAL Classic 色見本: data/ral_catalog.csv

いずれも起動時に一度だけ読み込み、以後は変更しない
"""

import json
import logging
from bisect import bisect_right
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from color_space import hex_to_rgb, rgb_to_xyz

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
PALETTES_PATH = DATA_DIR / "palettes.json"
PAINT_CATALOG_PATH = DATA_DIR / "paint_catalog.csv"
RAL_CATALOG_PATH = DATA_DIR / "ral_catalog.csv"

WHITE_ID = "white"
BLACK_ID = "black"

CATALOG_COLUMNS = ["identifier", "label", "code", "name", "hex", "lrv"]

PathLike = Union[str, Path]


@dataclass(frozen=True)
class Pigment:
    id: str
    brand: str
    code: str
    name: str
    hex: str

    @property
    def label(self) -> str:
        return f"{self.brand} {self.code} {self.name}"

    @property
    def rgb(self):
        return hex_to_rgb(self.hex)


@dataclass(frozen=True)
class HueSectorTable:
    """
    色相セクター表

    (下限角度, {顔料ID: 比率}) を下限角度の昇順に並べたもの。
    先頭の下限が負の場合(例: -15)、360+下限 以上の色相は先頭セクターに回り込む。
    """
    rows: Tuple[Tuple[float, Tuple[Tuple[str, float], ...]], ...]

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence]) -> "HueSectorTable":
        ordered = sorted(
            ((float(lower), tuple(dict(shares).items())) for lower, shares in rows),
            key=lambda row: row[0],
        )
        if not ordered:
            raise ValueError("色相セクター表が空です")
        return cls(rows=tuple(ordered))

    @property
    def lower_bounds(self) -> List[float]:
        return [lower for lower, _ in self.rows]

    def pigment_ids(self) -> set:
        return {pid for _, shares in self.rows for pid, _ in shares}

    def lookup(self, hue: float) -> Dict[str, float]:
        """色相に対応するセクターの比率を返す"""
        lowers = self.lower_bounds
        h = hue % 360.0
        if h >= lowers[0] + 360.0:
            h -= 360.0
        index = max(0, bisect_right(lowers, h) - 1)
        return dict(self.rows[index][1])

    def vector(self, hue: float, pigment_ids: Sequence[str]) -> np.ndarray:
        """セクターの比率を pigment_ids の並びに揃えたベクトル"""
        shares = self.lookup(hue)
        return np.array([shares.get(pid, 0.0) for pid in pigment_ids], dtype=float)


@dataclass(frozen=True)
class Palette:
    """
    固定長・順序付きの顔料リスト

    並び順が重みベクトルの添字を決める。白・黒と有彩色顔料で構成する
    """
    name: str
    label: str
    pigments: Tuple[Pigment, ...]
    seed_sectors: Optional[HueSectorTable] = None
    tint_sectors: Optional[HueSectorTable] = None

    def __post_init__(self):
        for table in (self.seed_sectors, self.tint_sectors):
            if table is None:
                continue
            unknown = table.pigment_ids() - set(self.chromatic_ids)
            if unknown:
                raise ValueError(
                    f"パレット {self.name} に存在しない有彩色顔料がセクター表にあります: {sorted(unknown)}"
                )

    def __len__(self) -> int:
        return len(self.pigments)

    @property
    def ids(self) -> List[str]:
        return [p.id for p in self.pigments]

    def index_of(self, pigment_id: str) -> int:
        try:
            return self.ids.index(pigment_id)
        except ValueError:
            raise ValueError(f"パレット {self.name} に顔料 {pigment_id} がありません") from None

    @property
    def white_index(self) -> int:
        return self.index_of(WHITE_ID)

    @property
    def black_index(self) -> int:
        return self.index_of(BLACK_ID)

    @property
    def chromatic_indices(self) -> List[int]:
        return [i for i, p in enumerate(self.pigments) if p.id not in (WHITE_ID, BLACK_ID)]

    @property
    def chromatic_ids(self) -> List[str]:
        return [self.pigments[i].id for i in self.chromatic_indices]

    def has_achromatic(self) -> bool:
        return WHITE_ID in self.ids and BLACK_ID in self.ids


class PaletteRegistry:
    """名前付きパレットの読み取り専用レジストリ"""

    def __init__(self, pigments: Mapping[str, Pigment], palettes: Mapping[str, Palette]):
        self._pigments = dict(pigments)
        self._palettes = dict(palettes)

    @classmethod
    def from_dict(cls, data: Mapping) -> "PaletteRegistry":
        pigments = {
            item["id"]: Pigment(
                id=item["id"],
                brand=item["brand"],
                code=str(item["code"]),
                name=item["name"],
                hex=item["hex"].upper(),
            )
            for item in data["pigments"]
        }

        palettes = {}
        for name, entry in data["palettes"].items():
            try:
                members = tuple(pigments[pid] for pid in entry["pigments"])
            except KeyError as e:
                raise ValueError(f"パレット {name} が未定義の顔料 {e.args[0]} を参照しています") from e
            palettes[name] = Palette(
                name=name,
                label=entry.get("label", name),
                pigments=members,
                seed_sectors=HueSectorTable.from_rows(entry["seed_sectors"]) if "seed_sectors" in entry else None,
                tint_sectors=HueSectorTable.from_rows(entry["tint_sectors"]) if "tint_sectors" in entry else None,
            )
        return cls(pigments, palettes)

    def get(self, name: str) -> Palette:
        try:
            return self._palettes[name]
        except KeyError:
            raise KeyError(f"未知のパレット: {name} (候補: {', '.join(self.names())})") from None

    def names(self) -> List[str]:
        return list(self._palettes)

    def pigment(self, pigment_id: str) -> Pigment:
        return self._pigments[pigment_id]

    def pigments(self) -> List[Pigment]:
        return list(self._pigments.values())


def load_palette_registry(json_path: Optional[PathLike] = None) -> PaletteRegistry:
    """パレット定義JSONを読み込む"""
    path = Path(json_path) if json_path is not None else PALETTES_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    registry = PaletteRegistry.from_dict(data)
    logger.info("パレット読み込み: %s (%d件)", path.name, len(registry.names()))
    return registry


# === カタログ ===

@dataclass(frozen=True)
class CatalogColor:
    identifier: str
    label: str
    code: str
    name: str
    hex: str
    lrv: Optional[float] = None

    @property
    def rgb(self):
        return hex_to_rgb(self.hex)

    def as_pigment(self) -> Pigment:
        """ベース塗料として混色に使うための変換"""
        return Pigment(id=f"base-{self.identifier}", brand=self.label, code=self.code,
                       name=self.name, hex=self.hex)


def light_reflectance_value(hex_color: str) -> float:
    """LRV(光反射率)をCIE Y(0-100)で近似"""
    return round(rgb_to_xyz(*hex_to_rgb(hex_color))[1], 1)


def load_paint_catalog(csv_path: Optional[PathLike] = None) -> pd.DataFrame:
    """既製塗料カタログCSVを読み込む"""
    path = Path(csv_path) if csv_path is not None else PAINT_CATALOG_PATH
    df = pd.read_csv(path, dtype=str)
    catalog = pd.DataFrame({
        "identifier": df["id"],
        "label": df["brand"],
        "code": df["code"],
        "name": df["name"],
        "hex": df["hex"].str.upper(),
        "lrv": np.nan,
    })
    logger.info("塗料カタログ読み込み: %d色", len(catalog))
    return catalog[CATALOG_COLUMNS]


def load_ral_catalog(csv_path: Optional[PathLike] = None) -> pd.DataFrame:
    """RAL色見本CSVを読み込む(LRV列が無ければHEXから算出)"""
    path = Path(csv_path) if csv_path is not None else RAL_CATALOG_PATH
    df = pd.read_csv(path, dtype={"ral": str})
    hexes = df["hex"].str.upper()
    if "lrv" in df.columns:
        lrv = df["lrv"].astype(float)
    else:
        lrv = hexes.map(light_reflectance_value)
    catalog = pd.DataFrame({
        "identifier": "RAL " + df["ral"],
        "label": "RAL",
        "code": df["ral"],
        "name": df["name"],
        "hex": hexes,
        "lrv": lrv,
    })
    logger.info("RAL色見本読み込み: %d色", len(catalog))
    return catalog[CATALOG_COLUMNS]


def catalog_colors(catalog: pd.DataFrame) -> Tuple[CatalogColor, ...]:
    return tuple(row_to_catalog_color(row) for _, row in catalog.iterrows())


def row_to_catalog_color(row: pd.Series) -> CatalogColor:
    lrv = row.get("lrv")
    return CatalogColor(
        identifier=str(row["identifier"]),
        label=str(row["label"]),
        code=str(row["code"]),
        name=str(row["name"]),
        hex=str(row["hex"]),
        lrv=None if lrv is None or pd.isna(lrv) else float(lrv),
    )
