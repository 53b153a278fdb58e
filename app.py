"""
GK-Mixer - ガレージキット塗装用の混色ツール
目標色を、手持ちの基本色(5色 / 8色)の配合レシピに変換する
"""

import logging

import streamlit as st

from color_space import hex_to_rgb, rgb_to_hex
from latent_mixer import LatentMixer
from mixing_solver import InverseMixSolver
from nearest_match import paint_index, ral_index
from palette_optimizer import mix_from_base
from palettes import load_paint_catalog, load_palette_registry, load_ral_catalog
from recipe import RecipeEntry, RecipeStrategy
from utils import (
    delta_e_verdict,
    format_result_text,
    get_contrast_color,
    lab_distance,
    recipe_volumes,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

# ページ設定
st.set_page_config(
    page_title="GK-Mixer - 混色レシピ",
    page_icon="🎨",
    layout="wide"
)

st.title("🎨 GK-Mixer")
st.subheader("目標色を基本色の配合レシピに変換")
st.markdown("---")


# データ読み込み(キャッシュ)
@st.cache_resource
def load_data():
    registry = load_palette_registry()
    paints = load_paint_catalog()
    ral = load_ral_catalog()
    return registry, paints, ral, paint_index(paints), ral_index(ral)


try:
    registry, paint_catalog, ral_catalog, paints, rals = load_data()
except (OSError, ValueError, KeyError) as e:
    st.error(f"データファイルの読み込みに失敗しました: {e}")
    st.stop()

mixer = LatentMixer()


def swatch(hex_color: str, height: int = 60) -> str:
    text = get_contrast_color(hex_color)
    return (
        f'<div style="background-color: {hex_color}; color: {text}; width: 100%; height: {height}px; '
        f'border: 1px solid #333; border-radius: 5px; padding: 4px;">{hex_color}</div>'
    )


def show_entries(entries, total_ml: float):
    for item in recipe_volumes(entries, total_ml):
        st.markdown(f"**{item['code']}** {item['label']}  \n→ **{item['percentage']:.1f}%** ({item['ml']}ml)")


# セッションステート初期化
if "recipe" not in st.session_state:
    st.session_state.recipe = None

# サイドバー: 設定
st.sidebar.header("⚙️ 設定")

st.sidebar.subheader("1️⃣ 目標色")
hex_input = st.sidebar.text_input("16進数カラーコード", "#8D93AD")
target_rgb = hex_to_rgb(hex_input)
target_hex = rgb_to_hex(*target_rgb)
st.sidebar.markdown(swatch(target_hex), unsafe_allow_html=True)

st.sidebar.markdown("---")
st.sidebar.subheader("2️⃣ パレット")
palette_name = st.sidebar.selectbox(
    "基本色",
    registry.names(),
    format_func=lambda name: registry.get(name).label,
)
palette = registry.get(palette_name)

use_base = st.sidebar.checkbox("既製塗料をベースにする", value=False)
base_paint = None
if use_base:
    options = list(paints.colors)
    proposed = paints.nearest(target_rgb)
    default_index = options.index(proposed.color) if proposed is not None else 0
    base_paint = st.sidebar.selectbox(
        "ベース塗料",
        options,
        index=default_index,
        format_func=lambda c: f"{c.label} {c.code} {c.name}",
        help="初期値は目標色に最も近い既製塗料",
    )

st.sidebar.markdown("---")
st.sidebar.subheader("3️⃣ 作る量")
total_ml = st.sidebar.slider("総量(ml)", min_value=5, max_value=100, value=20, step=5)

st.sidebar.markdown("---")
calculate_button = st.sidebar.button("🔍 配合を計算", type="primary", use_container_width=True)

col1, col2 = st.columns([1, 1])

with col1:
    st.header("📋 目標色")
    st.markdown(swatch(target_hex, height=100), unsafe_allow_html=True)

    st.markdown("### 🏷️ 近い既製塗料")
    for match in paints.top_n(target_rgb, 3):
        st.markdown(
            f"{match.color.label} **{match.color.code}** {match.color.name} "
            f"({match.hex}, 距離 {match.distance:.1f}, ΔE {lab_distance(target_rgb, match.color.rgb):.1f})"
        )

    ral_match = rals.nearest(target_rgb)
    if ral_match is not None:
        st.markdown("### 📇 近いRAL色")
        st.markdown(
            f"**{ral_match.color.identifier}** {ral_match.color.name} "
            f"(ΔE {ral_match.distance:.1f}, LRV {ral_match.color.lrv})"
        )

with col2:
    st.header("✨ 計算結果")

    if calculate_button:
        with st.spinner("配合を計算中..."):
            try:
                if base_paint is not None:
                    result = mix_from_base(target_rgb, base_paint, palette, mixer)
                    st.session_state.recipe = ("base", result)
                elif len(palette) == 5:
                    strategy = RecipeStrategy(InverseMixSolver(palette, mixer))
                    st.session_state.recipe = ("recipe", strategy.build(target_rgb))
                else:
                    solution = InverseMixSolver(palette, mixer).solve(target_rgb)
                    st.session_state.recipe = ("solution", solution)
            except ValueError as e:
                st.error(f"計算エラー: {e}")
                st.session_state.recipe = None

    if st.session_state.recipe is not None:
        kind, result = st.session_state.recipe

        if kind == "recipe":
            if result.degraded:
                st.warning("混色モデルが利用できないため、中性グレーを表示しています")
            elif result.delta_e is not None:
                st.info(f"ΔE00 = {result.delta_e:.1f}: {delta_e_verdict(result.delta_e)}")

            st.markdown(f"### 📝 配合レシピ (合計{total_ml}ml) `{result.strategy.tag}`")
            show_entries(result.entries, total_ml)

            if result.predicted_hex:
                st.markdown("### 🎨 混色結果プレビュー")
                st.markdown(swatch(result.predicted_hex), unsafe_allow_html=True)

            st.markdown("### 🧪 手順")
            for i, step in enumerate(result.steps, start=1):
                st.markdown(f"{i}. {step}")

            st.markdown("### 📄 テキスト出力")
            st.code(format_result_text(result, total_ml=total_ml), language="text")

            with st.expander("🔬 色の数値"):
                for key, value in result.diagnostics.items():
                    st.markdown(f"**{key.upper()}:** {value}")
                st.caption(result.strategy.describe())

        elif kind == "solution":
            if result.degraded:
                st.warning("混色モデルが利用できないため、配合を計算できませんでした")
            entries = [
                RecipeEntry(label=p.name, code=p.code, percentage=round(w, 1), hex=p.hex)
                for p, w in zip(result.palette.pigments, result.weights)
                if w >= 0.5
            ]
            st.markdown(f"### 📝 配合 (合計{total_ml}ml) `{result.band.value}`")
            show_entries(entries, total_ml)
            predicted = result.predicted_rgb(mixer)
            if predicted is not None:
                st.markdown("### 🎨 混色結果プレビュー")
                st.markdown(swatch(rgb_to_hex(*predicted)), unsafe_allow_html=True)

        else:
            if result.degraded:
                st.warning("混色モデルが利用できないため、配合を計算できませんでした")
            entries = [
                RecipeEntry(label=item.pigment.name, code=item.pigment.code,
                            percentage=round(item.ratio * 100, 1), hex=item.pigment.hex)
                for item in result.ingredients
            ]
            st.markdown(f"### 📝 ベース塗料からの配合 (合計{total_ml}ml)")
            show_entries(entries, total_ml)
            predicted = result.predicted_rgb(mixer)
            if predicted is not None:
                st.markdown("### 🎨 混色結果プレビュー")
                st.markdown(swatch(rgb_to_hex(*predicted)), unsafe_allow_html=True)
                st.caption(f"RGB誤差: {result.error:.1f}")
    else:
        st.info("「配合を計算」ボタンを押してください")

# フッター
st.markdown("---")
st.markdown(
    f"""
    <div style='text-align: center; color: #666;'>
    <p><strong>GK-Mixer</strong> - ガレージキット塗装用の混色ツール</p>
    <p>既製塗料 {len(paint_catalog)}色 / RAL {len(ral_catalog)}色</p>
    </div>
    """,
    unsafe_allow_html=True
)

with st.expander("📖 使い方"):
    st.markdown("""
    1. **目標色** を16進数で入力
    2. **パレット** を選ぶ(5色: 白・黒・赤・青・黄 / 8色: マゼンタ・シアン・オレンジを追加)
    3. 既製塗料をベースにする場合はチェックを入れる(目標色に最も近い塗料が自動で選ばれます)
    4. **配合を計算** を押す

    ### ΔE (色差)について
    - **0〜3**: 非常に近い
    - **3〜6**: 十分近い
    - **6〜10**: やや差がある
    - **10以上**: 差が大きい
    """)
