"""
GK-Mixer - 潜在空間ミキサー

Mixbox(pymixbox)の潜在ベクトル表現をラップする。
潜在空間での線形結合は、RGB平均よりも実際の顔料混色(減法混色)に近い
(例: 青+黄 → 灰色ではなく緑)
"""

from typing import Optional, Sequence, Tuple, Union

import mixbox
import numpy as np

from color_space import RGB, to_rgb

ColorLike = Union[str, Sequence[int]]


class LatentMixer:
    """
    潜在空間での混色プリミティブ

    backend に None を渡すと「利用不可」として振る舞い、
    ソルバーは縮退結果(ゼロベクトル)を返す
    """

    def __init__(self, backend=mixbox):
        self._backend = backend

    def is_available(self) -> bool:
        return self._backend is not None

    @property
    def latent_size(self) -> int:
        return int(self._backend.LATENT_SIZE)

    def rgb_to_latent(self, color: ColorLike) -> np.ndarray:
        r, g, b = to_rgb(color)
        return np.asarray(self._backend.rgb_to_latent((r, g, b)), dtype=float)

    def latent_to_rgb(self, latent: Sequence[float]) -> RGB:
        r, g, b = self._backend.latent_to_rgb([float(v) for v in latent])[:3]
        return RGB(int(r), int(g), int(b))

    def lerp(self, color_a: ColorLike, color_b: ColorLike, t: float) -> RGB:
        """2色の混色(t=0でA, t=1でB)"""
        r, g, b = self._backend.lerp(tuple(to_rgb(color_a)), tuple(to_rgb(color_b)), float(t))[:3]
        return RGB(int(r), int(g), int(b))

    def latents(self, colors: Sequence[ColorLike]) -> np.ndarray:
        """色のリストを (色数, 潜在次元) の行列に変換"""
        return np.vstack([self.rgb_to_latent(c) for c in colors])

    @staticmethod
    def mix(latents: np.ndarray, weights: Sequence[float]) -> np.ndarray:
        """潜在ベクトルの重み付き和"""
        return np.asarray(weights, dtype=float) @ latents

    def blend(self, color_weights: Sequence[Tuple[ColorLike, float]]) -> Optional[RGB]:
        """
        複数色の混色

        重みは合計で正規化する。有効な重みが無ければ None
        """
        active = [(c, float(w)) for c, w in color_weights if w > 0]
        total = sum(w for _, w in active)
        if not active or total <= 0:
            return None
        latents = self.latents([c for c, _ in active])
        weights = np.array([w for _, w in active]) / total
        return self.latent_to_rgb(self.mix(latents, weights))
