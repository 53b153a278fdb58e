"""
GK-Mixer - カタログ最近傍検索

既製塗料カタログ・RAL色見本から、目標色に最も近い色を線形走査で探す。
距離関数は差し替え可能(RGBユークリッド / LabでのΔE76・ΔE00 / 任意の関数)
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.spatial.distance import cdist

from color_space import hex_to_rgb, rgb_to_lab, to_rgb
from palettes import CatalogColor, catalog_colors
from utils import delta_e_2000

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 3

DistanceFunction = Callable[[np.ndarray, np.ndarray], float]
ColorLike = Union[str, Sequence[int]]


@dataclass(frozen=True)
class CatalogMatch:
    color: CatalogColor
    distance: float

    @property
    def hex(self) -> str:
        return self.color.hex


LAB_METRICS = ("DE76", "DE00")


def _resolve_metric(metric: Union[str, DistanceFunction], space: str):
    if callable(metric):
        return metric
    if metric in LAB_METRICS and space != "lab":
        raise ValueError(f"{metric} は space='lab' の索引でのみ使えます")
    if metric in ("euclidean", "DE76"):
        return "euclidean"
    if metric == "DE00":
        return lambda u, v: delta_e_2000(u, v)
    raise ValueError(f"未知の距離関数: {metric}")


class NearestMatchIndex:
    """
    読み取り専用カタログに対する最近傍検索

    space="rgb" ならRGB座標、space="lab" ならLab座標で距離を測る。
    距離が同じ候補はカタログの並び順で先のものを返す
    """

    def __init__(self,
                 catalog: pd.DataFrame,
                 space: str = "rgb",
                 metric: Union[str, DistanceFunction] = "euclidean"):
        if space not in ("rgb", "lab"):
            raise ValueError(f"未知の座標系: {space}")
        self.space = space
        self.metric = _resolve_metric(metric, space)
        self.colors = catalog_colors(catalog)

        rgbs = [hex_to_rgb(c.hex) for c in self.colors]
        if space == "lab":
            points = [rgb_to_lab(*rgb) for rgb in rgbs]
        else:
            points = rgbs
        self._points = np.array(points, dtype=float).reshape(len(self.colors), 3)

    def __len__(self) -> int:
        return len(self.colors)

    def _query_point(self, color: ColorLike) -> np.ndarray:
        rgb = to_rgb(color)
        point = rgb_to_lab(*rgb) if self.space == "lab" else rgb
        return np.array([point], dtype=float)

    def distances(self, point: np.ndarray) -> np.ndarray:
        """問い合わせ点(この索引の座標系)から全エントリへの距離"""
        return cdist(np.asarray(point, dtype=float).reshape(1, 3), self._points, metric=self.metric)[0]

    def nearest(self, color: ColorLike) -> Optional[CatalogMatch]:
        """最も近い1色。カタログが空なら None"""
        if not self.colors:
            return None
        return self._nearest_point(self._query_point(color))

    def nearest_lab(self, lab: Sequence[float]) -> Optional[CatalogMatch]:
        """Lab値で問い合わせ(space="lab" の索引のみ)"""
        if self.space != "lab":
            raise ValueError("nearest_lab は space='lab' の索引でのみ使えます")
        if not self.colors:
            return None
        return self._nearest_point(np.array([lab], dtype=float))

    def _nearest_point(self, point: np.ndarray) -> CatalogMatch:
        d = self.distances(point)
        index = int(np.argmin(d))
        return CatalogMatch(color=self.colors[index], distance=float(d[index]))

    def top_n(self, color: ColorLike, n: int = DEFAULT_TOP_N) -> List[CatalogMatch]:
        """近い順に n 色"""
        if not self.colors or n <= 0:
            return []
        d = self.distances(self._query_point(color))
        order = np.argsort(d, kind="stable")[:n]
        return [CatalogMatch(color=self.colors[i], distance=float(d[i])) for i in order]


def paint_index(catalog: pd.DataFrame) -> NearestMatchIndex:
    """既製塗料用: RGBユークリッド距離"""
    index = NearestMatchIndex(catalog, space="rgb", metric="euclidean")
    logger.info("塗料索引: %d色", len(index))
    return index


def ral_index(catalog: pd.DataFrame) -> NearestMatchIndex:
    """RAL色見本用: LabでのΔE76"""
    index = NearestMatchIndex(catalog, space="lab", metric="DE76")
    logger.info("RAL索引: %d色", len(index))
    return index
