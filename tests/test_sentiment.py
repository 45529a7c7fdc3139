"""Tests for the sentiment normalizer."""

import pytest

from comment_insights.services.sentiment import normalize_sentiment


class TestNormalizeSentiment:
    @pytest.mark.parametrize("label", ["enthusiastic", "Positive", "very ENTHUSIASTIC tone"])
    def test_positive_markers(self, label):
        assert normalize_sentiment(label) == "positive"

    @pytest.mark.parametrize("label", ["critical", "NEGATIVE", "mostly critical remarks"])
    def test_negative_markers(self, label):
        assert normalize_sentiment(label) == "negative"

    @pytest.mark.parametrize("label", ["objective", "neutral", "", "mixed feelings"])
    def test_everything_else_is_neutral(self, label):
        assert normalize_sentiment(label) == "neutral"

    def test_positive_wins_when_both_markers_present(self):
        assert normalize_sentiment("critical but ultimately positive") == "positive"

    def test_none_is_neutral(self):
        assert normalize_sentiment(None) == "neutral"
