import pytest

from conftest import make_pitch
from pitchhub.domain import AnalysisStatus, Keyword, Theme
from pitchhub.pipelines.recommendation import build_profile, build_reason, recommend


@pytest.fixture
def user_pitches():
    p1 = make_pitch(1, owner_id=7, theme=Theme.TECHNOLOGY)
    p1.keywords = [Keyword("ai", 1.0), Keyword("startup", 0.5)]
    p2 = make_pitch(2, owner_id=7, theme=Theme.TECHNOLOGY)
    p2.keywords = [Keyword("AI", 0.5), Keyword("design", 1.0)]
    p3 = make_pitch(3, owner_id=7, theme=Theme.HEALTH)
    p3.keywords = [Keyword("care", 1.0)]
    return [p1, p2, p3]


class TestBuildProfile:
    def test_user_without_analyzed_pitches_has_empty_profile(self):
        pool = [make_pitch(1, ["ai"], owner_id=7, status=AnalysisStatus.PENDING)]

        profile = build_profile(7, pool)

        assert profile.is_empty
        assert profile.preferred_themes == []
        assert profile.aggregate_keywords == []

    def test_aggregates_themes_and_keywords(self, user_pitches):
        others = [make_pitch(9, ["cooking"], owner_id=8, theme=Theme.COOKING)]

        profile = build_profile(7, user_pitches + others)

        assert profile.pitch_count == 3
        assert profile.preferred_themes == ["technology", "health"]
        assert profile.terms == ["ai", "care", "design", "startup"]
        ai = profile.aggregate_keywords[0]
        assert ai.weight == pytest.approx(1.5 / 3)
        assert ai.frequency == 2
        assert profile.aggregate_keywords[-1].weight == pytest.approx(0.5 / 3)


class TestRecommend:
    def test_empty_profile_returns_empty_page(self):
        profile = build_profile(7, [])
        page = recommend(profile, [make_pitch(1, ["ai"])])

        assert page.items == []
        assert page.total == 0

    def test_scores_overlap_plus_theme_boost(self, user_pitches):
        profile = build_profile(7, user_pitches)
        pool = user_pitches + [
            make_pitch(10, ["ai", "design"], owner_id=1, theme=Theme.TECHNOLOGY),
            make_pitch(11, ["ai", "design"], owner_id=2, theme=Theme.COOKING),
            make_pitch(12, ["cooking"], owner_id=3, theme=Theme.HEALTH),
            make_pitch(13, ["cooking"], owner_id=4, theme=Theme.SPORT),
        ]

        page = recommend(profile, pool)

        # 12 scores exactly the theme boost, which does not clear min_score
        assert [r.pitch_id for r in page.items] == [10, 11]
        assert page.items[0].score == pytest.approx(2 / 4 + 0.1)
        assert page.items[1].score == pytest.approx(2 / 4)

    def test_own_and_unanalyzed_pitches_are_skipped(self, user_pitches):
        profile = build_profile(7, user_pitches)
        pool = user_pitches + [
            make_pitch(20, ["ai"], owner_id=1, status=AnalysisStatus.PENDING),
        ]
        assert recommend(profile, pool).items == []

    def test_reasons(self, user_pitches):
        profile = build_profile(7, user_pitches)
        pool = [
            make_pitch(10, ["ai", "design"], owner_id=1, theme=Theme.TECHNOLOGY),
            make_pitch(11, ["ai", "design"], owner_id=2, theme=Theme.COOKING),
        ]

        items = recommend(profile, pool).items

        assert items[0].reason == "shares theme technology and keywords ai, design"
        assert items[1].reason == "shares keywords ai, design"

    def test_pagination(self, user_pitches):
        profile = build_profile(7, user_pitches)
        pool = [make_pitch(i, ["ai"], owner_id=i) for i in range(10, 15)]

        first = recommend(profile, pool, page=1, page_size=2)
        last = recommend(profile, pool, page=3, page_size=2)

        assert first.total == 5
        assert [r.pitch_id for r in first.items] == [10, 11]
        assert [r.pitch_id for r in last.items] == [14]


def test_build_reason_fallbacks():
    assert build_reason("sport", []) == "shares theme sport"
    assert build_reason(None, []) == "related to your pitches"
    assert build_reason(None, ["a", "b", "c", "d"]) == "shares keywords a, b, c"
