"""Tests for the versioned pattern library."""
import json

import pytest

from safeguard.services.content_service import (
    ContentRiskAnalyzer,
    PatternLibrary,
    load_pattern_library,
    DEFAULT_PATTERN_VERSION,
)
from safeguard.shared.models import RiskTolerance


class TestPatternLibrary:
    def test_defaults(self):
        library = load_pattern_library()

        assert library.version == DEFAULT_PATTERN_VERSION
        assert "stupid" in library.direct_harassment_terms
        assert library.privacy_base_scores["ssn"] == 0.8

    def test_from_dict_keeps_unspecified_defaults(self):
        library = PatternLibrary.from_dict({
            "version": "2026.05.01",
            "direct_harassment_terms": ["clown"],
            "holidays": ["12-12"],
        })

        assert library.version == "2026.05.01"
        assert library.direct_harassment_terms == ("clown",)
        assert library.holidays == frozenset({"12-12"})
        assert library.threatening_terms == PatternLibrary().threatening_terms

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            PatternLibrary.from_dict({"version": "x", "slurs": []})

    def test_version_required(self):
        with pytest.raises(ValueError):
            PatternLibrary.from_dict({"direct_harassment_terms": ["clown"]})

    def test_load_from_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "patterns.json"
        path.write_text(json.dumps({
            "version": "2026.06.01",
            "direct_harassment_terms": ["clown"],
            "direct_harassment_weight": 0.5,
        }))
        monkeypatch.setenv("PATTERN_LIBRARY_PATH", str(path))

        library = load_pattern_library()
        analyzer = ContentRiskAnalyzer(library=library)

        assert library.version == "2026.06.01"
        result = analyzer.analyze_harassment("what a clown", RiskTolerance.MODERATE)
        assert result.score == pytest.approx(0.5)
