"""
Tests for the Sphinx configuration in docs/conf.py.
"""

import runpy
from pathlib import Path

import pyprognosis

DOCS = Path(__file__).resolve().parent.parent / "docs"


class TestSphinxConfig:

    def test_release_matches_package(self):
        conf = runpy.run_path(str(DOCS / "conf.py"))
        assert conf["project"] == "pyprognosis"
        assert conf["release"] == pyprognosis.__version__

    def test_only_existing_paths_referenced(self):
        conf = runpy.run_path(str(DOCS / "conf.py"))
        for key in ("templates_path", "html_static_path"):
            for entry in conf.get(key, []):
                assert (DOCS / entry).is_dir(), f"{key} entry {entry} missing"

    def test_intersphinx_covers_runtime_dependencies(self):
        conf = runpy.run_path(str(DOCS / "conf.py"))
        assert {"numpy", "scipy", "joblib"} <= set(conf["intersphinx_mapping"])
