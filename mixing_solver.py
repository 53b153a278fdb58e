"""
GK-Mixer - 混色逆問題ソルバー

目標色を、5色または8色パレットの配合比率(合計≈100%)に変換する

アルゴリズム:
1. 彩度 (max - min) / max で4つの帯域に分類
2. 無彩色: 白・黒のみ
3. 低彩度: 色相セクター表から有彩色を1〜2色選ぶだけ(最適化なし)
4. 中彩度: 灰色成分(最小チャンネル)を除いた色度を255に拡大して目標にする
   (純色相への投影では消えてしまう微妙な色相の傾きを保つ)
5. 高彩度: 同じ色相の純色(S=100, B=100)を目標にする
6. 4・5は潜在空間での勾配降下で有彩色の比率を求め、白・黒と再結合する
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np

from color_space import HSB, RGB, hsb_to_rgb, rgb_to_hsb_exact, saturation_ratio, to_rgb
from latent_mixer import LatentMixer
from palettes import Palette

logger = logging.getLogger(__name__)

# 彩度帯域の閾値((max - min) / max)
GRAYSCALE_THRESHOLD = 0.05
LOW_SATURATION_THRESHOLD = 0.12
HIGH_SATURATION_THRESHOLD = 0.40

# 勾配降下のパラメータ
#
# 学習率は0.2から始め、20反復目以降は毎回0.95倍に減衰(下限0.01)
# 潜在空間での二乗誤差が1e-4未満になったら打ち切る
MAX_ITERATIONS = 100
LEARNING_RATE = 0.2
LEARNING_RATE_DECAY = 0.95
DECAY_START_ITERATION = 20
MIN_LEARNING_RATE = 0.01
CONVERGENCE_ERROR = 1e-4

ColorLike = Union[str, Sequence[int]]


class SaturationBand(str, Enum):
    GRAYSCALE = "grayscale"
    LOW = "low-saturation"
    MEDIUM = "medium-saturation"
    HIGH = "high-saturation"


def classify_saturation(saturation: float) -> SaturationBand:
    if saturation < GRAYSCALE_THRESHOLD:
        return SaturationBand.GRAYSCALE
    if saturation < LOW_SATURATION_THRESHOLD:
        return SaturationBand.LOW
    if saturation < HIGH_SATURATION_THRESHOLD:
        return SaturationBand.MEDIUM
    return SaturationBand.HIGH


def chromatic_target(rgb: Sequence[int]) -> RGB:
    """
    灰色成分を除いた色度を、最大チャンネル=255に拡大した色

    例: #8D93AD (141, 147, 173) → 色度 (0, 6, 32) → (0, 48, 255)
    """
    gray = min(rgb)
    chroma = [c - gray for c in rgb]
    peak = max(chroma)
    if peak == 0:
        return RGB(0, 0, 0)
    scale = 255 / peak
    return to_rgb([c * scale for c in chroma])


@dataclass(frozen=True)
class DescentResult:
    weights: np.ndarray
    iterations: int
    error: float
    converged: bool


@dataclass(frozen=True)
class MixSolution:
    """
    ソルバーの結果

    weights はパレットの並びに対応する百分率。
    中・高彩度では有彩色の縮小後に再正規化しないため、合計は100から
    わずかにずれることがある
    """
    palette: Palette
    weights: Tuple[float, ...]
    band: SaturationBand
    saturation: float
    hsb: HSB
    target: RGB
    iterations: int = 0
    latent_error: Optional[float] = None
    degraded: bool = False

    @property
    def total(self) -> float:
        return float(sum(self.weights))

    def as_dict(self) -> Dict[str, float]:
        return {p.id: w for p, w in zip(self.palette.pigments, self.weights)}

    def weight_of(self, pigment_id: str) -> float:
        return self.weights[self.palette.index_of(pigment_id)]

    def chromatic_weights(self) -> Dict[str, float]:
        return {self.palette.pigments[i].id: self.weights[i] for i in self.palette.chromatic_indices}

    def predicted_rgb(self, mixer: LatentMixer) -> Optional[RGB]:
        """この配合で実際に混ぜた場合の予測色"""
        if self.degraded or not mixer.is_available():
            return None
        return mixer.blend([(p.hex, w) for p, w in zip(self.palette.pigments, self.weights)])


class InverseMixSolver:
    """
    目標色 → パレット配合比率

    パレットとミキサーはコンストラクタで受け取る(グローバル参照しない)
    """

    def __init__(self,
                 palette: Palette,
                 mixer: LatentMixer,
                 max_iterations: Optional[int] = None,
                 learning_rate: Optional[float] = None):
        if not palette.has_achromatic():
            raise ValueError(f"パレット {palette.name} には白と黒が必要です")
        if palette.seed_sectors is None or palette.tint_sectors is None:
            raise ValueError(f"パレット {palette.name} に色相セクター表がありません")

        self.palette = palette
        self.mixer = mixer
        self.max_iterations = MAX_ITERATIONS if max_iterations is None else max_iterations
        self.learning_rate = LEARNING_RATE if learning_rate is None else learning_rate

        self._chromatic_ids = palette.chromatic_ids
        self._basis = None
        if mixer.is_available():
            self._basis = mixer.latents([palette.pigments[i].hex for i in palette.chromatic_indices])

    def solve(self, target: ColorLike) -> MixSolution:
        rgb = to_rgb(target)
        hsb = rgb_to_hsb_exact(*rgb)
        saturation = saturation_ratio(*rgb)
        band = classify_saturation(saturation)
        n = len(self.palette)

        if not self.mixer.is_available():
            logger.warning("潜在空間ミキサーが利用できません。ゼロ配合を返します")
            return MixSolution(self.palette, (0.0,) * n, band, saturation, hsb, rgb, degraded=True)

        logger.debug("目標 %s: 彩度=%.3f 帯域=%s", rgb, saturation, band.value)

        weights = np.zeros(n)
        white = self.palette.white_index
        black = self.palette.black_index

        if band is SaturationBand.GRAYSCALE:
            weights[white] = hsb.b
            weights[black] = 100 - hsb.b
            return self._solution(weights, band, saturation, hsb, rgb)

        if band is SaturationBand.LOW:
            for pigment_id, share in self.palette.tint_sectors.lookup(hsb.h).items():
                weights[self.palette.index_of(pigment_id)] += saturation * 100 * share
            weights[white] = hsb.b * (1 - saturation)
            weights[black] = (100 - hsb.b) * (1 - saturation)
            return self._solution(weights, band, saturation, hsb, rgb)

        if band is SaturationBand.MEDIUM:
            target_rgb = chromatic_target(rgb)
            # 除去した灰色成分(最小チャンネル)が白、残りの暗さが黒
            chroma_fraction = (max(rgb) - min(rgb)) / 255
            white_fraction = min(rgb) / 255
            black_fraction = 1 - max(rgb) / 255
        else:
            target_rgb = hsb_to_rgb(hsb.h, 100, 100)
            s = hsb.s / 100
            v = hsb.b / 100
            chroma_fraction = s * v
            white_fraction = (1 - s) * v
            black_fraction = 1 - v

        seed = self.seed_weights(hsb.h)
        descent = self.descend(target_rgb, seed)

        weights[self.palette.chromatic_indices] = descent.weights * chroma_fraction * 100
        weights[white] = white_fraction * 100
        weights[black] = black_fraction * 100
        return self._solution(weights, band, saturation, hsb, rgb,
                              iterations=descent.iterations, latent_error=descent.error)

    def seed_weights(self, hue: float) -> np.ndarray:
        """色相セクター表から有彩色のみの初期比率を作る(合計1)"""
        seed = self.palette.seed_sectors.vector(hue, self._chromatic_ids)
        total = seed.sum()
        if total <= 0:
            return np.full(len(self._chromatic_ids), 1.0 / len(self._chromatic_ids))
        return seed / total

    def descend(self, target_rgb: ColorLike, seed: np.ndarray) -> DescentResult:
        """
        潜在空間での勾配降下

        誤差 = Σ_j (mix_j - target_j)^2
        勾配_i = Σ_j 2 × error_j × basis_ij
        更新後は0以上にクランプして合計1に正規化する
        """
        target_latent = self.mixer.rgb_to_latent(target_rgb)
        basis = self._basis
        weights = np.asarray(seed, dtype=float).copy()
        learning_rate = self.learning_rate

        iterations = 0
        for iteration in range(1, self.max_iterations + 1):
            diff = weights @ basis - target_latent
            if float(diff @ diff) < CONVERGENCE_ERROR:
                break

            gradient = 2 * basis @ diff
            candidate = np.clip(weights - learning_rate * gradient, 0.0, None)
            total = candidate.sum()
            if total <= 0:
                break
            weights = candidate / total
            iterations = iteration

            if iteration > DECAY_START_ITERATION:
                learning_rate = max(learning_rate * LEARNING_RATE_DECAY, MIN_LEARNING_RATE)

        diff = weights @ basis - target_latent
        error = float(diff @ diff)
        converged = error < CONVERGENCE_ERROR
        logger.debug("勾配降下: 反復=%d 誤差=%.6f 収束=%s", iterations, error, converged)
        return DescentResult(weights=weights, iterations=iterations, error=error, converged=converged)

    def _solution(self, weights: np.ndarray, band: SaturationBand, saturation: float,
                  hsb: HSB, rgb: RGB, iterations: int = 0,
                  latent_error: Optional[float] = None) -> MixSolution:
        return MixSolution(
            palette=self.palette,
            weights=tuple(float(w) for w in weights),
            band=band,
            saturation=saturation,
            hsb=hsb,
            target=rgb,
            iterations=iterations,
            latent_error=latent_error,
        )
