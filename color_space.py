"""
GK-Mixer - 色空間変換
RGB / HSB / XYZ / Lab / CMYK の相互変換と、作業色空間(sRGB)への変換

すべての関数は入力を範囲内にクランプしてから計算する(例外は投げない)
"""

import math
import re
from typing import NamedTuple, Sequence, Tuple, Union

import numpy as np


# D65 基準白色(XYZ, 0-100スケール)
REF_X = 95.047
REF_Y = 100.0
REF_Z = 108.883

# Lab 変換の閾値(CIE標準値)
LAB_EPSILON = 0.008856
LAB_KAPPA = 7.787

# sRGB(線形) → XYZ (D65)
SRGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])

# XYZ (D65) → sRGB(線形)
XYZ_TO_SRGB = np.array([
    [3.2404542, -1.5371385, -0.4985314],
    [-0.9692660, 1.8760108, 0.0415560],
    [0.0556434, -0.2040259, 1.0572252],
])

# Display P3 ⇔ XYZ (D65)
P3_TO_XYZ = np.array([
    [0.4865709, 0.2656677, 0.1982173],
    [0.2289746, 0.6917385, 0.0792869],
    [0.0000000, 0.0451134, 1.0439444],
])
XYZ_TO_P3 = np.array([
    [2.4934969, -0.9313836, -0.4027108],
    [-0.8294890, 1.7626641, 0.0236247],
    [0.0358458, -0.0761724, 0.9568845],
])

# Adobe RGB (1998) ⇔ XYZ (D65)
ADOBE_RGB_TO_XYZ = np.array([
    [0.5767309, 0.1855540, 0.1881852],
    [0.2973769, 0.6273491, 0.0752741],
    [0.0270343, 0.0706872, 0.9911085],
])
XYZ_TO_ADOBE_RGB = np.array([
    [2.0413690, -0.5649464, -0.3446944],
    [-0.9692660, 1.8760108, 0.0415560],
    [0.0134474, -0.1183897, 1.0154096],
])

# Adobe RGB のガンマ(563/256)
ADOBE_RGB_GAMMA = 2.19921875

WORKING_SPACES = ("srgb", "display-p3", "adobe-rgb")

_HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")


class RGB(NamedTuple):
    r: int
    g: int
    b: int


class HSB(NamedTuple):
    """色相 0-360°, 彩度・明度 0-100%"""
    h: float
    s: float
    b: float


class LAB(NamedTuple):
    l: float
    a: float
    b: float


class CMYK(NamedTuple):
    c: int
    m: int
    y: int
    k: int


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    # Python の round() は偶数丸めなので使わない
    return int(math.floor(value + 0.5))


def _channel(value: float) -> int:
    return _round_half_up(clamp(value, 0.0, 255.0))


def hex_to_rgb(hex_color: str) -> RGB:
    """16進数カラーコードをRGBに変換(不正な入力は黒)"""
    match = _HEX_PATTERN.match(hex_color.strip()) if hex_color else None
    if match is None:
        return RGB(0, 0, 0)
    h = match.group(1)
    if len(h) == 3:
        h = h[0] * 2 + h[1] * 2 + h[2] * 2
    return RGB(int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))


def rgb_to_hex(r: float, g: float, b: float) -> str:
    return "#{:02X}{:02X}{:02X}".format(_channel(r), _channel(g), _channel(b))


def to_rgb(color: Union[str, Sequence[float]]) -> RGB:
    """16進数文字列または(r, g, b)をクランプ済みのRGBに揃える"""
    if isinstance(color, str):
        return hex_to_rgb(color)
    r, g, b = list(color)[:3]
    return RGB(_channel(r), _channel(g), _channel(b))


# === HSB ===

def rgb_to_hsb_exact(r: float, g: float, b: float) -> HSB:
    """
    RGB → HSB(丸めなし)

    ソルバーの分岐判定やシード選択はこちらを使う。
    彩度0のとき色相は0とする。
    """
    r = clamp(r, 0, 255) / 255.0
    g = clamp(g, 0, 255) / 255.0
    b = clamp(b, 0, 255) / 255.0

    max_c = max(r, g, b)
    min_c = min(r, g, b)
    diff = max_c - min_c

    h = 0.0
    if diff != 0:
        if max_c == r:
            h = ((g - b) / diff + (6 if g < b else 0)) * 60
        elif max_c == g:
            h = ((b - r) / diff + 2) * 60
        else:
            h = ((r - g) / diff + 4) * 60

    s = 0.0 if max_c == 0 else diff / max_c * 100
    return HSB(h % 360.0, s, max_c * 100)


def rgb_to_hsb(r: float, g: float, b: float) -> HSB:
    """
    RGB → HSB(表示用に整数へ丸める)

    丸めた値を hsb_to_rgb に戻すと ±1 を超えてずれることがある。
    往復や分岐判定には rgb_to_hsb_exact を使う
    """
    exact = rgb_to_hsb_exact(r, g, b)
    return HSB(
        _round_half_up(exact.h) % 360,
        _round_half_up(exact.s),
        _round_half_up(exact.b),
    )


def hsb_to_rgb(h: float, s: float, b: float) -> RGB:
    """HSB → RGB(p, q, t によるセクター補間)"""
    h = h % 360.0
    s = clamp(s, 0, 100) / 100.0
    v = clamp(b, 0, 100) / 100.0

    sector = int(math.floor(h / 60.0)) % 6
    f = h / 60.0 - math.floor(h / 60.0)
    p = v * (1 - s)
    q = v * (1 - f * s)
    t = v * (1 - (1 - f) * s)

    r, g, b_ = [
        (v, t, p),
        (q, v, p),
        (p, v, t),
        (p, q, v),
        (t, p, v),
        (v, p, q),
    ][sector]
    return RGB(_channel(r * 255), _channel(g * 255), _channel(b_ * 255))


def saturation_ratio(r: float, g: float, b: float) -> float:
    """(max - min) / max を0-1で返す。HSB.sより直接的で、分岐判定に使う"""
    max_c = max(clamp(r, 0, 255), clamp(g, 0, 255), clamp(b, 0, 255))
    min_c = min(clamp(r, 0, 255), clamp(g, 0, 255), clamp(b, 0, 255))
    if max_c == 0:
        return 0.0
    return (max_c - min_c) / max_c


# === XYZ / Lab ===

def srgb_to_linear(value: float) -> float:
    if value <= 0.04045:
        return value / 12.92
    return ((value + 0.055) / 1.055) ** 2.4


def linear_to_srgb(value: float) -> float:
    if value <= 0.0031308:
        return value * 12.92
    return 1.055 * value ** (1 / 2.4) - 0.055


def rgb_to_xyz(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """sRGB(0-255) → XYZ(0-100, D65)"""
    linear = np.array([srgb_to_linear(clamp(c, 0, 255) / 255.0) for c in (r, g, b)])
    x, y, z = SRGB_TO_XYZ @ linear * 100.0
    return (float(x), float(y), float(z))


def xyz_to_rgb(x: float, y: float, z: float) -> RGB:
    linear = XYZ_TO_SRGB @ (np.array([x, y, z]) / 100.0)
    r, g, b = [linear_to_srgb(clamp(float(c))) * 255 for c in linear]
    return RGB(_channel(r), _channel(g), _channel(b))


def _lab_f(t: float) -> float:
    if t > LAB_EPSILON:
        return t ** (1 / 3)
    return LAB_KAPPA * t + 16 / 116


def _lab_f_inverse(f: float) -> float:
    cube = f ** 3
    if cube > LAB_EPSILON:
        return cube
    return (f - 16 / 116) / LAB_KAPPA


def xyz_to_lab(x: float, y: float, z: float) -> LAB:
    fx = _lab_f(x / REF_X)
    fy = _lab_f(y / REF_Y)
    fz = _lab_f(z / REF_Z)
    return LAB(116 * fy - 16, 500 * (fx - fy), 200 * (fy - fz))


def lab_to_xyz(l: float, a: float, b: float) -> Tuple[float, float, float]:
    fy = (l + 16) / 116
    fx = fy + a / 500
    fz = fy - b / 200
    return (
        _lab_f_inverse(fx) * REF_X,
        _lab_f_inverse(fy) * REF_Y,
        _lab_f_inverse(fz) * REF_Z,
    )


def rgb_to_lab(r: float, g: float, b: float) -> LAB:
    """RGB値(0-255)をLab値に変換。表示・色差計算専用"""
    return xyz_to_lab(*rgb_to_xyz(r, g, b))


def lab_to_rgb(l: float, a: float, b: float) -> RGB:
    """Lab値をRGB値に変換(0-255にクランプ)"""
    return xyz_to_rgb(*lab_to_xyz(clamp(l, 0, 100), a, b))


# === CMYK ===

def rgb_to_cmyk(r: float, g: float, b: float) -> CMYK:
    r = clamp(r, 0, 255) / 255.0
    g = clamp(g, 0, 255) / 255.0
    b = clamp(b, 0, 255) / 255.0

    k = min(1 - r, 1 - g, 1 - b)
    if k == 1:
        # 純黒: ゼロ除算を避ける
        return CMYK(0, 0, 0, 100)

    c = (1 - r - k) / (1 - k)
    m = (1 - g - k) / (1 - k)
    y = (1 - b - k) / (1 - k)
    return CMYK(
        _round_half_up(c * 100),
        _round_half_up(m * 100),
        _round_half_up(y * 100),
        _round_half_up(k * 100),
    )


# === 距離 ===

def rgb_distance(c1: Sequence[float], c2: Sequence[float]) -> float:
    """RGBユークリッド距離(高速版)"""
    return math.sqrt(sum((float(a) - float(b)) ** 2 for a, b in zip(c1, c2)))


# === 作業色空間 ===

def _gamut_matrices(space: str):
    if space == "display-p3":
        return P3_TO_XYZ, XYZ_TO_P3, srgb_to_linear, linear_to_srgb
    if space == "adobe-rgb":
        return (
            ADOBE_RGB_TO_XYZ,
            XYZ_TO_ADOBE_RGB,
            lambda v: v ** ADOBE_RGB_GAMMA,
            lambda v: v ** (1 / ADOBE_RGB_GAMMA),
        )
    return None


def convert_to_working_space(rgb: Sequence[float], source_space: str) -> RGB:
    """
    任意の色空間のRGBを作業色空間(sRGB)に変換

    source → 線形 → XYZ (D65) → sRGB線形 → sRGB
    """
    rgb = RGB(*(_channel(c) for c in rgb))
    matrices = _gamut_matrices(source_space)
    if matrices is None:
        return rgb

    to_xyz, _, decode, _ = matrices
    linear = np.array([decode(c / 255.0) for c in rgb])
    srgb_linear = XYZ_TO_SRGB @ (to_xyz @ linear)
    r, g, b = [linear_to_srgb(clamp(float(v))) * 255 for v in srgb_linear]
    return RGB(_channel(r), _channel(g), _channel(b))


def convert_from_working_space(rgb: Sequence[float], target_space: str) -> RGB:
    """作業色空間(sRGB)のRGBを目標の色空間に変換"""
    rgb = RGB(*(_channel(c) for c in rgb))
    matrices = _gamut_matrices(target_space)
    if matrices is None:
        return rgb

    _, from_xyz, _, encode = matrices
    srgb_linear = np.array([srgb_to_linear(c / 255.0) for c in rgb])
    target_linear = from_xyz @ (SRGB_TO_XYZ @ srgb_linear)
    r, g, b = [encode(clamp(float(v))) * 255 for v in target_linear]
    return RGB(_channel(r), _channel(g), _channel(b))


def is_in_gamut(rgb: Sequence[float], color_space: str, tolerance: float = 0.001) -> bool:
    """sRGBの色が目標色空間の色域内か(裁切されないか)を判定"""
    matrices = _gamut_matrices(color_space)
    if matrices is None:
        return True

    _, from_xyz, _, _ = matrices
    srgb_linear = np.array([srgb_to_linear(clamp(c, 0, 255) / 255.0) for c in rgb])
    target_linear = from_xyz @ (SRGB_TO_XYZ @ srgb_linear)
    return bool(np.all((target_linear >= -tolerance) & (target_linear <= 1 + tolerance)))
