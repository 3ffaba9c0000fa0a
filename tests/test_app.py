from __future__ import annotations

import runpy
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def test_entry_point_serves_the_single_home_page():
    namespace = runpy.run_path(str(PROJECT_ROOT / "streamlit_app.py"), run_name="entry")
    assert namespace["HOME_PATH"] == PROJECT_ROOT / "streamlit_app" / "Home.py"
    assert namespace["HOME_PATH"].is_file()
    assert not (PROJECT_ROOT / "streamlit_app" / "pages").exists()
