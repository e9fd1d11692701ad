# tests/test_packaging.py

import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def test_project_metadata_points_at_existing_files():
    project = tomllib.loads((ROOT / "pyproject.toml").read_text(encoding="utf-8"))["project"]

    readme = project.get("readme")
    if readme is not None:
        assert (ROOT / readme).is_file()
        assert readme.lower().startswith("readme")
    assert project["name"] == "lessondeck"
