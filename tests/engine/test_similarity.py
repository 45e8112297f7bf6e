"""Tests for the SimilarityMatcher: keyword-overlap ranking."""

import pytest

from incident_pilot.engine.similarity import SimilarityMatcher, preview, score, tokenize


def _incident(id, title, description, status="new", resolved_at=None):
    return {
        "id": id,
        "title": title,
        "description": description,
        "status": status,
        "resolved_at": resolved_at,
    }


class TestTokenize:

    def test_lowercases_and_splits_on_any_whitespace(self):
        assert tokenize("VPN  drops\tagain\nToday") == ["vpn", "drops", "again", "today"]

    def test_min_length_drops_short_tokens_but_keeps_duplicates(self):
        assert tokenize("the server and the server is down", 4) == ["server", "server", "down"]


class TestScore:

    def test_full_overlap_is_capped(self):
        assert score(["server", "outage"], ["server", "outage"]) == pytest.approx(0.95)

    def test_substring_containment_counts(self):
        # "server" is contained in "servers"
        assert score(["server", "printer"], ["servers", "down"]) == pytest.approx(0.75)

    def test_no_keywords_scores_zero(self):
        assert score([], ["anything"]) == 0.0


class TestFindSimilar:

    def test_excludes_target_and_zero_overlap(self):
        matcher = SimilarityMatcher()
        corpus = [
            _incident("a", "Email server down", "Email server is not responding"),
            _incident("b", "Printer jam", "Paper stuck in printer tray"),
        ]

        results = matcher.find_similar("a", "Email server is not responding", corpus)

        assert results == []

    def test_scores_and_previews(self):
        matcher = SimilarityMatcher()
        long_text = "email outage " * 30
        corpus = [_incident("x", "Email outage", long_text, status="resolved", resolved_at="2026-01-01T00:00:00+00:00")]

        results = matcher.find_similar("target", "email outage", corpus)

        assert len(results) == 1
        assert results[0]["similarity"] == pytest.approx(0.95)
        assert results[0]["description"] == long_text[:150] + "..."
        assert results[0]["status"] == "resolved"
        assert results[0]["resolved_at"] == "2026-01-01T00:00:00+00:00"

    def test_threshold_is_strict(self):
        # 1 of 10 keywords matches: raw 0.1, boosted 0.15, not above the threshold
        matcher = SimilarityMatcher()
        target = "alpha bravo charlie delta echo foxtrot golf hotel india juliet"
        corpus = [_incident("x", "alpha", "unrelated words only")]

        assert matcher.find_similar("t", target, corpus) == []
        assert len(matcher.find_similar("t", target, corpus, threshold=0.14)) == 1

    def test_orders_by_score_then_id_and_limits(self):
        matcher = SimilarityMatcher(limit=3)
        target = "alpha bravo charlie delta echo foxtrot golf hotel india juliet"
        corpus = [
            _incident("d", "alpha bravo", "charlie delta echo"),           # 5/10
            _incident("c", "alpha bravo charlie", "delta echo foxtrot"),   # 6/10
            _incident("b", "alpha bravo", "charlie delta echo"),           # 5/10
            _incident("a", "alpha bravo", "charlie delta"),                # 4/10
            _incident("e", "alpha bravo", "charlie delta echo"),           # 5/10
        ]

        results = matcher.find_similar("t", target, corpus)

        assert [r["id"] for r in results] == ["c", "b", "d"]
        assert results[0]["similarity"] == pytest.approx(0.9)
        assert results[1]["similarity"] == pytest.approx(0.75)

    def test_empty_description_matches_nothing(self):
        matcher = SimilarityMatcher()
        assert matcher.find_similar("t", "a an the", [_incident("x", "a", "the")]) == []

    def test_scores_stay_in_range(self):
        matcher = SimilarityMatcher(limit=10)
        corpus = [_incident(str(i), f"disk {i}", "disk full warning on host " * i) for i in range(1, 6)]

        for result in matcher.find_similar("t", "disk full warning host storage", corpus):
            assert 0.15 < result["similarity"] <= 0.95


def test_preview_always_appends_ellipsis():
    assert preview("short") == "short..."
