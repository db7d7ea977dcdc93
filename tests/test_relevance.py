# File: tests/test_relevance.py
import pytest

from domain_scout.config import DiscoveryOptions
from domain_scout.relevance import RelevanceFilter, classify_url, score_url

TIERS = DiscoveryOptions().keyword_tiers


@pytest.mark.parametrize(
    "url,score,category",
    [
        ("https://example.org/living-with-diabetes", 0.9, "primary"),
        ("https://example.org/insulin/pumps", 0.9, "primary"),
        ("https://example.org/health-wellness", 0.7, "secondary"),
        ("https://example.org/food-nutrition/recipes", 0.7, "secondary"),
        ("https://example.org/community/events", 0.5, "general"),
        ("https://example.org/tools", 0.5, "general"),
        ("https://example.org/contact", 0.3, "default"),
        ("https://example.org/", 0.3, "default"),
    ],
)
def test_classify_url(url, score, category):
    assert classify_url(url, TIERS) == (score, category)


def test_strongest_tier_wins():
    # "diabetes" (primary) and "community" (general) in one path
    assert score_url("https://example.org/community/diabetes-camp", TIERS) == 0.9


def test_scoring_ignores_host_and_query():
    assert score_url("https://diabetes.example.org/contact?topic=insulin", TIERS) == 0.3


def test_blocked_paths_never_pass():
    flt = RelevanceFilter.from_options(DiscoveryOptions())
    assert not flt.is_relevant("https://example.org/admin/diabetes")
    assert not flt.is_relevant("https://example.org/wp-content/uploads/x")
    assert not flt.is_relevant("https://example.org/diabetes/guide.pdf")
    assert flt.is_relevant("https://example.org/diabetes/guide")


def test_threshold_filters_low_scores():
    flt = RelevanceFilter.from_options(DiscoveryOptions(relevance_threshold=0.6))
    assert flt.is_relevant("https://example.org/health")
    assert not flt.is_relevant("https://example.org/tools")
    assert not flt.is_relevant("https://example.org/contact")


def test_allowed_patterns_admit_low_scoring_sections():
    flt = RelevanceFilter.from_options(
        DiscoveryOptions(relevance_threshold=0.6, allowed_path_patterns=["/about"])
    )
    assert flt.is_relevant("https://example.org/about/team")
    assert flt.is_relevant("https://example.org/")
    assert flt.is_relevant("https://example.org/insulin")
    assert not flt.is_relevant("https://example.org/contact")
