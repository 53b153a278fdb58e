"""
GK-Mixer - 共通ユーティリティ
色差(ΔE76 / ΔE00)、配合の容量換算、結果テキスト整形
"""

import math
from typing import Dict, List, Sequence, Tuple

import numpy as np

from color_space import CMYK, hex_to_rgb, rgb_to_lab


def delta_e_76(lab1: Sequence[float], lab2: Sequence[float]) -> float:
    """ΔE*76(ユークリッド距離)"""
    L1, a1, b1 = lab1
    L2, a2, b2 = lab2
    return float(np.sqrt((L1 - L2) ** 2 + (a1 - a2) ** 2 + (b1 - b2) ** 2))


def delta_e_2000(lab1: Sequence[float], lab2: Sequence[float],
                 kL: float = 1.0, kC: float = 1.0, kH: float = 1.0) -> float:
    """
    ΔE00(CIEDE2000)

    人の知覚に最も近い色差。DE76より計算は重いが、
    青・紫域や低彩度域での評価が改善される
    """
    L1, a1, b1 = (float(v) for v in lab1)
    L2, a2, b2 = (float(v) for v in lab2)

    C1 = math.hypot(a1, b1)
    C2 = math.hypot(a2, b2)
    C_avg7 = ((C1 + C2) / 2.0) ** 7
    G = 0.5 * (1.0 - math.sqrt(C_avg7 / (C_avg7 + 25.0 ** 7)))

    a1p = (1.0 + G) * a1
    a2p = (1.0 + G) * a2
    C1p = math.hypot(a1p, b1)
    C2p = math.hypot(a2p, b2)

    def hue_prime(ap: float, bv: float) -> float:
        if ap == 0 and bv == 0:
            return 0.0
        return math.degrees(math.atan2(bv, ap)) % 360.0

    h1p = hue_prime(a1p, b1)
    h2p = hue_prime(a2p, b2)

    dLp = L2 - L1
    dCp = C2p - C1p

    if C1p * C2p == 0:
        dhp = 0.0
    else:
        dhp = h2p - h1p
        if dhp > 180.0:
            dhp -= 360.0
        elif dhp < -180.0:
            dhp += 360.0
    dHp = 2.0 * math.sqrt(C1p * C2p) * math.sin(math.radians(dhp / 2.0))

    Lp_avg = (L1 + L2) / 2.0
    Cp_avg = (C1p + C2p) / 2.0

    if C1p * C2p == 0:
        hp_avg = h1p + h2p
    elif abs(h1p - h2p) <= 180.0:
        hp_avg = (h1p + h2p) / 2.0
    elif h1p + h2p < 360.0:
        hp_avg = (h1p + h2p + 360.0) / 2.0
    else:
        hp_avg = (h1p + h2p - 360.0) / 2.0

    T = (1
         - 0.17 * math.cos(math.radians(hp_avg - 30))
         + 0.24 * math.cos(math.radians(2 * hp_avg))
         + 0.32 * math.cos(math.radians(3 * hp_avg + 6))
         - 0.20 * math.cos(math.radians(4 * hp_avg - 63)))

    d_theta = 30.0 * math.exp(-(((hp_avg - 275.0) / 25.0) ** 2))
    Cp_avg7 = Cp_avg ** 7
    R_C = 2.0 * math.sqrt(Cp_avg7 / (Cp_avg7 + 25.0 ** 7))
    S_L = 1 + (0.015 * (Lp_avg - 50) ** 2) / math.sqrt(20 + (Lp_avg - 50) ** 2)
    S_C = 1 + 0.045 * Cp_avg
    S_H = 1 + 0.015 * Cp_avg * T
    R_T = -math.sin(math.radians(2 * d_theta)) * R_C

    l_term = dLp / (kL * S_L)
    c_term = dCp / (kC * S_C)
    h_term = dHp / (kH * S_H)
    return float(math.sqrt(l_term ** 2 + c_term ** 2 + h_term ** 2 + R_T * c_term * h_term))


def calculate_delta_e(target_lab: Sequence[float],
                      result_lab: Sequence[float],
                      method: str = "DE00") -> float:
    """
    色差を計算

    Args:
        method: "DE00"(CIEDE2000, 既定) または "DE76"(ユークリッド距離)
    """
    if method == "DE76":
        return delta_e_76(target_lab, result_lab)
    return delta_e_2000(target_lab, result_lab)


def lab_distance(rgb1: Sequence[float], rgb2: Sequence[float]) -> float:
    """RGB同士のΔE76(Lab経由)。RGB距離の高精度版として差し替え可能"""
    return delta_e_76(rgb_to_lab(*rgb1), rgb_to_lab(*rgb2))


def format_cmyk_ratio(cmyk: CMYK) -> str:
    return f"C:{cmyk.c} M:{cmyk.m} Y:{cmyk.y} K:{cmyk.k}"


def get_contrast_color(hex_color: str) -> str:
    """背景色に対して読みやすい文字色(YIQ式)"""
    r, g, b = hex_to_rgb(hex_color)
    yiq = (r * 299 + g * 587 + b * 114) / 1000
    return "#000000" if yiq >= 128 else "#FFFFFF"


def recipe_volumes(entries, total_ml: float) -> List[Dict]:
    """
    配合比率(%)を容量(ml)に換算

    volume_i = weight_i / 100 × 総量
    """
    return [
        {
            "label": entry.label,
            "code": entry.code,
            "percentage": entry.percentage,
            "ml": round(entry.percentage / 100 * total_ml, 1),
        }
        for entry in entries
    ]


def delta_e_verdict(delta_e: float) -> str:
    if delta_e < 3.0:
        return "非常に近い色です"
    if delta_e < 6.0:
        return "十分近い色です"
    if delta_e < 10.0:
        return "やや差がありますが使用可能"
    return "差があります(中間色を追加すると精度向上)"


def format_result_text(recipe, total_ml: float = 20.0) -> str:
    """結果を見やすいテキストに整形"""
    lines = []
    lines.append("【混色レシピ】")
    lines.append(f"目標色: {recipe.hex}  ({recipe.strategy.tag})")
    lines.append("")

    for item in recipe_volumes(recipe.entries, total_ml):
        lines.append(f"  {item['code']} {item['label']}")
        lines.append(f"    → {item['percentage']:.1f}% ({item['ml']}ml)")

    lines.append("")
    lines.append(f"合計: {total_ml:.1f}ml")

    if recipe.delta_e is not None:
        lines.append("")
        lines.append(f"色差 ΔE00 = {recipe.delta_e:.1f}")
        lines.append(f"→ {delta_e_verdict(recipe.delta_e)}")

    lines.append("")
    lines.append("【手順】")
    for i, step in enumerate(recipe.steps, start=1):
        lines.append(f"  {i}. {step}")

    return "\n".join(lines)


def hsb_label(hsb: Tuple[float, float, float]) -> str:
    h, s, b = hsb
    return f"H={h:.0f}° S={s:.0f}% B={b:.0f}%"
