"""
Streamlit画面のスモークテスト
"""

from streamlit.testing.v1 import AppTest

TIMEOUT = 30


def run_app():
    at = AppTest.from_file("app.py", default_timeout=TIMEOUT)
    return at.run()


def test_page_loads():
    at = run_app()
    assert not at.exception
    assert at.title[0].value == "🎨 GK-Mixer"
    assert at.sidebar.text_input[0].value == "#8D93AD"


def test_calculate_five_color_recipe():
    at = run_app()
    at.sidebar.button[0].click().run()
    assert not at.exception
    assert len(at.code) == 1
    assert "【混色レシピ】" in at.code[0].value


def test_calculate_eight_color_palette():
    at = run_app()
    at.sidebar.selectbox[0].select("extended8").run()
    at.sidebar.button[0].click().run()
    assert not at.exception
    assert not at.code


def test_base_paint_mode():
    at = run_app()
    at.sidebar.checkbox[0].check().run()
    assert len(at.sidebar.selectbox) == 2
    at.sidebar.button[0].click().run()
    assert not at.exception
    assert any("ベース塗料からの配合" in md.value for md in at.markdown)
