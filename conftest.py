"""
テスト共通のフィクスチャ

LinearBackend は RGB/255 をそのまま3次元の潜在ベクトルとみなす決定的な混色モデル。
ソルバーの仕組み(分岐・正規化・履歴)の確認に使い、
実際の混色結果は mixbox を使うテストで確認する
"""

import numpy as np
import pandas as pd
import pytest

from latent_mixer import LatentMixer
from palettes import load_palette_registry


class LinearBackend:
    LATENT_SIZE = 3

    @staticmethod
    def rgb_to_latent(rgb):
        return [c / 255.0 for c in rgb]

    @staticmethod
    def latent_to_rgb(latent):
        return tuple(int(min(255, max(0, round(v * 255)))) for v in latent[:3])

    @staticmethod
    def lerp(a, b, t):
        return tuple(int(round(x + (y - x) * t)) for x, y in zip(a, b))


@pytest.fixture(scope="session")
def registry():
    return load_palette_registry()


@pytest.fixture
def basic5(registry):
    return registry.get("basic5")


@pytest.fixture
def extended8(registry):
    return registry.get("extended8")


@pytest.fixture
def linear_mixer():
    return LatentMixer(backend=LinearBackend())


@pytest.fixture
def mixbox_mixer():
    return LatentMixer()


@pytest.fixture
def unavailable_mixer():
    return LatentMixer(backend=None)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def small_catalog():
    return pd.DataFrame({
        "identifier": ["p1", "p2", "p3", "p4"],
        "label": ["Test", "Test", "Test", "Test"],
        "code": ["1", "2", "3", "4"],
        "name": ["赤", "緑", "緑(重複)", "青"],
        "hex": ["#FF0000", "#00FF00", "#00FF00", "#0000FF"],
        "lrv": [np.nan] * 4,
    })
