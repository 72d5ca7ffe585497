import random

from journalflow.matching import has_capacity, matched_keywords, rank, score_candidate

PROPOSAL = {"research_area": "Memory & Learning", "keywords": ["working memory", "fMRI"]}


def profile(**overrides):
    base = {
        "research_areas": [],
        "keywords": [],
        "h_index": None,
        "years_experience": None,
        "current_reviews_count": 0,
        "max_concurrent_reviews": 3,
    }
    base.update(overrides)
    return base


def test_worked_example_scores():
    a = profile(
        research_areas=["Memory & Learning"],
        keywords=["working memory", "eeg"],
        h_index=12,
        years_experience=6,
    )
    b = profile(research_areas=["Perception"], keywords=["psychophysics"], h_index=3)

    ranked = rank(PROPOSAL, [b, a])

    assert [r.candidate for r in ranked] == [a, b]
    assert ranked[0].score == 75
    assert ranked[0].reasons == [
        "Research area: Memory & Learning",
        "Keywords: working memory",
        "h-index: 12",
        "6 years experience",
    ]
    assert ranked[0].has_capacity is True
    assert ranked[1].score == 0
    assert ranked[1].reasons == []


def test_keyword_match_is_case_insensitive_substring_both_ways():
    assert matched_keywords(["Working Memory", "fmri"], ["memory", "fMRI imaging"]) == ["Working Memory", "fmri"]
    assert matched_keywords(["eeg"], ["EEG"]) == ["eeg"]
    assert matched_keywords(["attention"], ["memory"]) == []


def test_keyword_points_are_capped():
    proposal = {"research_area": "X", "keywords": ["a1", "b2", "c3", "d4"]}
    candidate = profile(keywords=["a1", "b2", "c3", "d4"])
    result = score_candidate(proposal, candidate)
    assert result.score == 30
    assert result.reasons == ["Keywords: a1, b2, c3, d4"]


def test_thresholds_are_inclusive():
    result = score_candidate(PROPOSAL, profile(h_index=10, years_experience=5))
    assert result.score == 20
    result = score_candidate(PROPOSAL, profile(h_index=9, years_experience=4))
    assert result.score == 0


def test_capacity_penalty_and_flag():
    under = profile(research_areas=["Memory & Learning"], current_reviews_count=2)
    at = profile(research_areas=["Memory & Learning"], current_reviews_count=3)

    under_result = score_candidate(PROPOSAL, under)
    at_result = score_candidate(PROPOSAL, at)

    assert under_result.has_capacity is True
    assert at_result.has_capacity is False
    assert under_result.score - at_result.score == 20
    assert at_result.reasons[-1] == "At capacity"


def test_capacity_penalty_floors_at_zero():
    result = score_candidate(PROPOSAL, profile(h_index=15, current_reviews_count=5, max_concurrent_reviews=2))
    assert result.score == 0
    assert result.has_capacity is False
    assert result.reasons == ["h-index: 15", "At capacity"]


def test_missing_capacity_fields_default_to_three():
    assert has_capacity({}) is True
    assert has_capacity({"current_reviews_count": 3}) is False
    assert has_capacity({"current_reviews_count": 2, "max_concurrent_reviews": None}) is True


def test_absent_fields_never_raise():
    result = score_candidate({}, {})
    assert result.score == 0
    assert result.has_capacity is True

    class Bare:
        pass

    assert score_candidate(Bare(), Bare()).score == 0


def test_non_string_keywords_are_skipped():
    assert matched_keywords(["eeg", None, 3, "fMRI"], [None, "EEG", 7]) == ["eeg"]
    assert matched_keywords([None], ["eeg"]) == []

    result = score_candidate({"keywords": ["working memory", None]}, profile(keywords=[None, "memory"]))
    assert result.score == 15
    assert result.reasons == ["Keywords: working memory"]


def test_empty_pool():
    assert rank(PROPOSAL, []) == []


def test_ties_keep_pool_order_and_ranking_is_deterministic():
    pool = [profile(h_index=20 + i) for i in range(5)] + [profile(research_areas=["Memory & Learning"])]
    first = rank(PROPOSAL, pool)
    second = rank(PROPOSAL, list(pool))

    assert [r.candidate for r in first] == [r.candidate for r in second]
    assert first[0].candidate is pool[-1]
    assert [r.candidate for r in first[1:]] == pool[:5]


def test_ranking_is_descending_for_random_pools():
    rng = random.Random(7)
    areas = ["Memory & Learning", "Perception", "Language"]
    words = ["working memory", "fmri", "eeg", "attention", "memory"]
    pool = [
        profile(
            research_areas=rng.sample(areas, rng.randint(0, 2)),
            keywords=rng.sample(words, rng.randint(0, 3)),
            h_index=rng.choice([None, 4, 10, 25]),
            years_experience=rng.choice([None, 2, 5, 12]),
            current_reviews_count=rng.randint(0, 4),
        )
        for _ in range(40)
    ]
    positions = {id(candidate): i for i, candidate in enumerate(pool)}
    ranked = rank(PROPOSAL, pool)
    scores = [r.score for r in ranked]
    assert scores == sorted(scores, reverse=True)
    assert all(r.score == score_candidate(PROPOSAL, r.candidate).score for r in ranked)
    for earlier, later in zip(ranked, ranked[1:]):
        if earlier.score == later.score:
            assert positions[id(earlier.candidate)] < positions[id(later.candidate)]
