"""
GK-Mixer - 配合レシピ

5色パレットのソルバー結果を、明度帯域ごとの戦略で
「何を何%、どの順に混ぜるか」という手順付きレシピにまとめる

明度帯域(HSBのB):
- 高明度 (B > 70): 白ベース + 色相。有彩色の比率は純色相で解き直し、白は 100 - S
- 中明度 (30 < B <= 70): ソルバーの出力をそのまま使う
- 低明度 (B <= 30): 黒ベース + 色相。黒を60%以上にし、残りを比例配分
- 無彩色(彩度 < 5%)は上記に関係なく白・黒のみ
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np

from color_space import (
    CMYK, HSB, LAB, RGB,
    hsb_to_rgb, rgb_to_cmyk, rgb_to_hex, rgb_to_hsb, rgb_to_hsb_exact, rgb_to_lab,
    saturation_ratio, to_rgb,
)
from mixing_solver import InverseMixSolver, SaturationBand, classify_saturation
from utils import delta_e_2000, format_cmyk_ratio, hsb_label

logger = logging.getLogger(__name__)

HIGH_BRIGHTNESS_THRESHOLD = 70
LOW_BRIGHTNESS_THRESHOLD = 30
GRAYSCALE_SPLIT_BRIGHTNESS = 50
LOW_BRIGHTNESS_BLACK_FLOOR = 60.0

# これ未満の配合はレシピに載せない(%)
MIN_ENTRY_PERCENT = 0.5

RECIPE_PALETTE_SIZE = 5

ColorLike = Union[str, Sequence[int]]


class BrightnessRegime(str, Enum):
    HIGH = "high-brightness"
    MID = "mid-brightness"
    LOW = "low-brightness"


def classify_brightness(brightness: float) -> BrightnessRegime:
    if brightness > HIGH_BRIGHTNESS_THRESHOLD:
        return BrightnessRegime.HIGH
    if brightness > LOW_BRIGHTNESS_THRESHOLD:
        return BrightnessRegime.MID
    return BrightnessRegime.LOW


@dataclass(frozen=True)
class SolveStrategy:
    """彩度帯域 × 明度帯域"""
    band: SaturationBand
    regime: BrightnessRegime

    @property
    def tag(self) -> str:
        return self.regime.value

    def describe(self) -> str:
        return f"{self.band.value} / {self.regime.value}"


@dataclass(frozen=True)
class RecipeEntry:
    label: str
    code: str
    percentage: float
    hex: str


@dataclass(frozen=True)
class Recipe:
    target: RGB
    strategy: SolveStrategy
    hsb: HSB
    lab: LAB
    cmyk: CMYK
    entries: Tuple[RecipeEntry, ...]
    steps: Tuple[str, ...]
    predicted_rgb: Optional[RGB] = None
    delta_e: Optional[float] = None
    degraded: bool = False
    diagnostics: Dict[str, str] = field(default_factory=dict)

    @property
    def hex(self) -> str:
        return rgb_to_hex(*self.target)

    @property
    def predicted_hex(self) -> Optional[str]:
        return None if self.predicted_rgb is None else rgb_to_hex(*self.predicted_rgb)

    @property
    def total(self) -> float:
        return float(sum(e.percentage for e in self.entries))


class RecipeStrategy:
    """
    目標色 → 手順付きレシピ

    5色パレット(白・黒・赤・青・黄)のソルバーにのみ対応
    """

    def __init__(self, solver: InverseMixSolver):
        if len(solver.palette) != RECIPE_PALETTE_SIZE:
            raise ValueError(
                f"レシピは{RECIPE_PALETTE_SIZE}色パレットのみ対応です"
                f"(指定: {solver.palette.name}, {len(solver.palette)}色)"
            )
        self.solver = solver
        self.palette = solver.palette
        self.mixer = solver.mixer

    def build(self, target: ColorLike) -> Recipe:
        rgb = to_rgb(target)
        hsb = rgb_to_hsb_exact(*rgb)
        saturation = saturation_ratio(*rgb)
        band = classify_saturation(saturation)

        if not self.mixer.is_available():
            logger.warning("潜在空間ミキサーが利用できないため、中性グレーを提案します")
            return self._neutral_fallback(rgb, hsb, band)

        if band is SaturationBand.GRAYSCALE:
            regime = (BrightnessRegime.HIGH if hsb.b > GRAYSCALE_SPLIT_BRIGHTNESS
                      else BrightnessRegime.LOW)
            weights = np.zeros(len(self.palette))
            weights[self.palette.white_index] = hsb.b
            weights[self.palette.black_index] = 100 - hsb.b
        else:
            regime = classify_brightness(hsb.b)
            if regime is BrightnessRegime.HIGH:
                weights = self._white_base_weights(hsb)
            elif regime is BrightnessRegime.MID:
                weights = np.array(self.solver.solve(rgb).weights)
            else:
                weights = self._black_base_weights(np.array(self.solver.solve(rgb).weights))

        strategy = SolveStrategy(band=band, regime=regime)
        logger.debug("レシピ戦略 %s: %s", rgb_to_hex(*rgb), strategy.describe())

        entries = self._entries(weights)
        steps = self._steps(strategy, entries, rgb_to_hsb(*rgb))
        return self._recipe(rgb, strategy, entries, steps)

    def validate_weights(self, weights: Sequence[float]) -> np.ndarray:
        weights = np.asarray(weights, dtype=float)
        if len(weights) != len(self.palette):
            raise ValueError(f"重みの長さ {len(weights)} がパレット長 {len(self.palette)} と一致しません")
        return weights

    def _white_base_weights(self, hsb: HSB) -> np.ndarray:
        """白ベース: 純色相で有彩色の比率を求め、彩度で縮小する"""
        pure = self.solver.solve(hsb_to_rgb(hsb.h, 100, 100))
        chroma = np.array([pure.weights[i] for i in self.palette.chromatic_indices])
        total = chroma.sum()
        if total > 0:
            chroma = chroma / total
        weights = np.zeros(len(self.palette))
        weights[self.palette.chromatic_indices] = chroma * hsb.s
        weights[self.palette.white_index] = 100 - hsb.s
        return weights

    def _black_base_weights(self, weights: Sequence[float]) -> np.ndarray:
        """黒ベース: 黒を下限まで引き上げ、白と有彩色を比例して縮める"""
        weights = self.validate_weights(weights).copy()
        black = self.palette.black_index
        if weights[black] >= LOW_BRIGHTNESS_BLACK_FLOOR:
            return weights

        others = [i for i in range(len(weights)) if i != black]
        rest = weights[others].sum()
        weights[black] = LOW_BRIGHTNESS_BLACK_FLOOR
        if rest > 0:
            weights[others] = weights[others] * (100 - LOW_BRIGHTNESS_BLACK_FLOOR) / rest
        else:
            weights[black] = 100.0
        return weights

    def _entries(self, weights: Sequence[float]) -> Tuple[RecipeEntry, ...]:
        weights = self.validate_weights(weights)
        entries = [
            RecipeEntry(label=p.name, code=p.code, percentage=round(float(w), 1), hex=p.hex)
            for p, w in zip(self.palette.pigments, weights)
            if w >= MIN_ENTRY_PERCENT
        ]
        entries.sort(key=lambda e: e.percentage, reverse=True)
        return tuple(entries)

    def _steps(self, strategy: SolveStrategy, entries: Sequence[RecipeEntry], shown: HSB) -> Tuple[str, ...]:
        """手順の説明文(HSBは表示用の丸めた値)"""
        if not entries:
            return ()
        base = entries[0]
        steps = []
        if strategy.band is SaturationBand.GRAYSCALE:
            steps.append(f"無彩色({hsb_label(shown)}): 白と黒だけで調色します")
        elif strategy.regime is BrightnessRegime.HIGH:
            steps.append(f"明るい色({hsb_label(shown)}): 白をベースに色相を足します")
        elif strategy.regime is BrightnessRegime.LOW:
            steps.append(f"暗い色({hsb_label(shown)}): 黒をベースに色相を足します")
        else:
            steps.append(f"中間の明るさ({hsb_label(shown)}): 計算した比率どおりに混ぜます")

        steps.append(f"{base.label} ({base.code}) を {base.percentage:.1f}% 入れる")
        for entry in entries[1:]:
            steps.append(f"{entry.label} ({entry.code}) を {entry.percentage:.1f}% 少しずつ加えて混ぜる")
        steps.append("よく撹拌し、試し塗りで目標色と比較する")
        return tuple(steps)

    def _recipe(self, rgb: RGB, strategy: SolveStrategy, entries: Tuple[RecipeEntry, ...],
                steps: Tuple[str, ...], degraded: bool = False) -> Recipe:
        lab = rgb_to_lab(*rgb)
        cmyk = rgb_to_cmyk(*rgb)

        predicted = None
        delta_e = None
        if not degraded and entries:
            predicted = self.mixer.blend([(e.hex, e.percentage) for e in entries])
            if predicted is not None:
                delta_e = delta_e_2000(lab, rgb_to_lab(*predicted))

        return Recipe(
            target=rgb,
            strategy=strategy,
            hsb=rgb_to_hsb(*rgb),
            lab=lab,
            cmyk=cmyk,
            entries=entries,
            steps=steps,
            predicted_rgb=predicted,
            delta_e=delta_e,
            degraded=degraded,
            diagnostics={
                "hsb": hsb_label(rgb_to_hsb(*rgb)),
                "lab": f"L={lab.l:.1f} a={lab.a:.1f} b={lab.b:.1f}",
                "cmyk": format_cmyk_ratio(cmyk),
            },
        )

    def _neutral_fallback(self, rgb: RGB, hsb: HSB, band: SaturationBand) -> Recipe:
        weights = np.zeros(len(self.palette))
        weights[self.palette.white_index] = 50.0
        weights[self.palette.black_index] = 50.0
        strategy = SolveStrategy(band=band, regime=classify_brightness(hsb.b))
        entries = self._entries(weights)
        steps = ("混色モデルが利用できないため、中性グレー(白50% / 黒50%)を目安にしてください",)
        return self._recipe(rgb, strategy, entries, steps, degraded=True)

