# tests/test_fixtures.py
"""
Runs the full checker table over the annotated fixture corpus.

Each ``tests/fixtures/<checker>/{bad,good}/*.sexp`` file carries its
expected diagnostics as ``(want "message")`` annotations on the offending
statement; files under ``good/`` carry none.
"""

from collections import Counter

import pytest

from reinterp_shims.checkers import CheckerRunner
from reinterp_shims.unit_reader import load_fixture
from tests.conftest import FIXTURES_DIR

FIXTURES = sorted(FIXTURES_DIR.rglob("*.sexp"))


def _fixture_id(path):
    return path.relative_to(FIXTURES_DIR).as_posix()


class TestFixtureCorpus:

    def test_corpus_present(self):
        kinds = {p.parent.name for p in FIXTURES}
        assert kinds == {"bad", "good"}
        assert {p.parent.parent.name for p in FIXTURES} == {"header_misuse", "struct_cast"}

    @pytest.mark.parametrize("path", FIXTURES, ids=_fixture_id)
    def test_diagnostics_match_annotations(self, path):
        unit, wants = load_fixture(path)
        results = CheckerRunner().run(unit)
        got = Counter((d.location.line, d.message) for d in results.diagnostics)
        expected = Counter((w.line, w.message) for w in wants)
        assert got == expected

    @pytest.mark.parametrize("path", FIXTURES, ids=_fixture_id)
    def test_annotations_follow_directory(self, path):
        _, wants = load_fixture(path)
        if path.parent.name == "good":
            assert wants == []
        else:
            assert wants
