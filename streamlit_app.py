"""Streamlit entry point: ``streamlit run streamlit_app.py`` serves the atlas page."""
from __future__ import annotations

from pathlib import Path
import runpy

HOME_PATH = Path(__file__).parent / "streamlit_app" / "Home.py"

if __name__ == "__main__":
    runpy.run_path(str(HOME_PATH), run_name="__main__")
