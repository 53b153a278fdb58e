"""
GK-Mixer - 汎用パレット最適化(山登り法)

任意の顔料リストに対して配合比率を求める。色相セクター表を使わないので、
既製塗料をベースに選んだ場合(ベース塗料モード)に使う
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from color_space import RGB, rgb_distance, to_rgb
from latent_mixer import LatentMixer
from palettes import WHITE_ID, CatalogColor, Palette, Pigment

logger = logging.getLogger(__name__)

# 山登り法のパラメータ
#
# ステップ幅は0.1から始め、50反復ごとに0.9倍
# 0.5%未満の顔料は最後に取り除く
MAX_ITERATIONS = 500
STEP_SIZE = 0.1
STEP_DECAY = 0.9
STEP_DECAY_INTERVAL = 50
MIN_RATIO = 0.005

BASE_START_WEIGHT = 0.8
WHITE_START_WEIGHT = 0.5

ColorLike = Union[str, Sequence[int]]


@dataclass(frozen=True)
class SolvedIngredient:
    pigment: Pigment
    ratio: float  # 0〜1


@dataclass(frozen=True)
class OptimizationResult:
    """
    ingredients は比率の降順。errors は採用された誤差の履歴
    (先頭は初期値の誤差、以降は各反復後の誤差)
    """
    ingredients: Tuple[SolvedIngredient, ...]
    error: float
    errors: Tuple[float, ...]
    accepted: int
    degraded: bool = False

    def as_percentages(self) -> List[Tuple[str, float]]:
        return [(item.pigment.label, round(item.ratio * 100, 1)) for item in self.ingredients]

    def predicted_rgb(self, mixer: LatentMixer) -> Optional[RGB]:
        """この配合の予測色"""
        if self.degraded or not self.ingredients or not mixer.is_available():
            return None
        return mixer.blend([(item.pigment.hex, item.ratio) for item in self.ingredients])


def _normalize(weights: np.ndarray) -> np.ndarray:
    total = weights.sum()
    return weights if total == 0 else weights / total


class GenericPaletteOptimizer:
    """
    確率的山登り法によるパレット最適化

    乱数源(numpy.random.Generator)を注入できるので、
    シードを固定すれば同じ軌跡を再現できる
    """

    def __init__(self,
                 mixer: LatentMixer,
                 rng: Optional[np.random.Generator] = None,
                 max_iterations: Optional[int] = None,
                 step_size: Optional[float] = None):
        self.mixer = mixer
        self.rng = rng if rng is not None else np.random.default_rng()
        self.max_iterations = MAX_ITERATIONS if max_iterations is None else max_iterations
        self.step_size = STEP_SIZE if step_size is None else step_size

    def initial_weights(self, pigments: Sequence[Pigment], base: Optional[Pigment] = None) -> np.ndarray:
        weights = np.zeros(len(pigments))
        if base is not None:
            weights[[p.id for p in pigments].index(base.id)] = BASE_START_WEIGHT
        else:
            ids = [p.id for p in pigments]
            start = ids.index(WHITE_ID) if WHITE_ID in ids else 0
            weights[start] = WHITE_START_WEIGHT
        return _normalize(weights)

    def optimize(self,
                 target: ColorLike,
                 pigments: Sequence[Pigment],
                 base: Optional[Pigment] = None) -> OptimizationResult:
        """
        Args:
            target: 目標色(16進数または RGB)
            pigments: 使用する顔料(並び順は任意)
            base: 固定するベース顔料。pigments に含まれていなければ先頭に加える
                (結果でもベースを先頭に置き、残りを比率の降順に並べる)
        """
        if not self.mixer.is_available():
            logger.warning("潜在空間ミキサーが利用できません。空の配合を返します")
            return OptimizationResult(ingredients=(), error=float("inf"), errors=(), accepted=0, degraded=True)

        pigments = list(pigments)
        if base is not None and base.id not in [p.id for p in pigments]:
            pigments.insert(0, base)
        if not pigments:
            return OptimizationResult(ingredients=(), error=float("inf"), errors=(), accepted=0)

        target_rgb = to_rgb(target)
        latents = self.mixer.latents([p.hex for p in pigments])

        def calculate_error(weights: np.ndarray) -> float:
            mixed = self.mixer.latent_to_rgb(self.mixer.mix(latents, weights))
            return rgb_distance(mixed, target_rgb)

        weights = self.initial_weights(pigments, base)
        current_error = calculate_error(weights)
        errors = [current_error]
        accepted = 0
        step = self.step_size

        for i in range(self.max_iterations):
            idx = int(self.rng.integers(len(weights)))
            change = (self.rng.random() - 0.5) * step

            candidate = weights.copy()
            candidate[idx] = min(1.0, max(0.0, candidate[idx] + change))
            candidate = _normalize(candidate)

            new_error = calculate_error(candidate)
            if new_error < current_error:
                weights = candidate
                current_error = new_error
                accepted += 1
            errors.append(current_error)

            if i % STEP_DECAY_INTERVAL == 0:
                step *= STEP_DECAY

        logger.debug("山登り法: 採用=%d/%d 誤差=%.2f", accepted, self.max_iterations, current_error)

        kept = [(p, w) for p, w in zip(pigments, weights) if w > MIN_RATIO]
        kept.sort(key=lambda item: item[1], reverse=True)
        if base is not None:
            # ベース顔料は比率によらず先頭
            kept.sort(key=lambda item: item[0].id != base.id)
        total = sum(w for _, w in kept)
        ingredients = tuple(SolvedIngredient(pigment=p, ratio=float(w / total)) for p, w in kept)

        return OptimizationResult(
            ingredients=ingredients,
            error=float(current_error),
            errors=tuple(errors),
            accepted=accepted,
        )


def mix_from_base(target: ColorLike,
                  base_paint: Union[CatalogColor, Pigment],
                  palette: Palette,
                  mixer: LatentMixer,
                  rng: Optional[np.random.Generator] = None) -> OptimizationResult:
    """
    ベース塗料モード

    選んだ既製塗料をベースとして先頭に置き、パレットの白を除いた顔料で調色する
    """
    base = base_paint.as_pigment() if isinstance(base_paint, CatalogColor) else base_paint
    tints = [p for p in palette.pigments if p.id != WHITE_ID]
    optimizer = GenericPaletteOptimizer(mixer, rng=rng)
    return optimizer.optimize(target, [base] + tints, base=base)

