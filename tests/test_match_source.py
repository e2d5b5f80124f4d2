"""
tests/test_match_source.py: match status rules, mock fixtures and both sources
"""

from datetime import datetime, timezone

import pytest

from predictor.errors import InvalidMatchError
from predictor.models import MatchStatus
from predictor.services.match_source import (
    MOCK_FIXTURES,
    DatabaseMatchSource,
    MockMatch,
    MockMatchSource,
    create_match_source,
    generate_mock_api_response,
)


def _mock(status="SCHEDULED", home_score=None, away_score=None):
    return MockMatch(
        "mock-x", "Qatar", "Ecuador", datetime(2024, 12, 20, 16, tzinfo=timezone.utc),
        status=status, home_score=home_score, away_score=away_score,
    )


# Status and score rules


def test_going_live_starts_at_nil_nil():
    match = _mock()
    match.set_status("live")
    assert match.status == "LIVE"
    assert (match.home_score, match.away_score) == (0, 0)
    assert not match.is_scoreable


def test_leaving_scored_statuses_clears_scores():
    match = _mock(status="LIVE", home_score=1, away_score=0)
    match.set_status(MatchStatus.CANCELLED)
    assert (match.home_score, match.away_score) == (None, None)


def test_finished_without_scores_is_not_scoreable():
    match = _mock()
    match.set_status("FINISHED")
    assert match.home_score is None
    assert not match.is_scoreable


def test_scores_rejected_before_kickoff():
    with pytest.raises(InvalidMatchError):
        _mock().set_score(1, 0)


@pytest.mark.parametrize("home, away", [(-1, 0), (1.0, 0), (True, 0)])
def test_invalid_scores_rejected(home, away):
    with pytest.raises(InvalidMatchError):
        _mock(status="LIVE", home_score=0, away_score=0).set_score(home, away)


def test_unknown_status_rejected():
    with pytest.raises(InvalidMatchError):
        _mock().set_status("POSTPONED")


def test_apply_update_reports_new_final_result():
    match = _mock(status="LIVE", home_score=1, away_score=1)

    assert match.apply_update(home_score=2) is False
    assert (match.home_score, match.away_score) == (2, 1)

    assert match.apply_update(status="FINISHED") is True
    assert match.is_scoreable

    # Already final: a correction is not a new result
    assert match.apply_update(away_score=2) is False


# Mock source


def test_mock_fixture_list():
    source = MockMatchSource()
    ids = [m.id for m in source.all()]
    assert ids == [f"mock-{n}" for n in range(1, 9)]
    assert [m.id for m in source.live_matches()] == ["mock-3"]


def test_mock_sources_do_not_share_state():
    first, second = MockMatchSource(), MockMatchSource()
    first.set_status(first.get("mock-1"), "LIVE")

    assert first.get("mock-1").status == "LIVE"
    assert second.get("mock-1").status == "SCHEDULED"
    assert MOCK_FIXTURES[0].status == "SCHEDULED"


def test_mock_list_filters_and_orders_by_kickoff():
    source = MockMatchSource()

    matches, total = source.list_matches(status="FINISHED")
    assert total == 2
    assert [m.id for m in matches] == ["mock-4", "mock-6"]

    matches, total = source.list_matches(round="Round of 16")
    assert [m.id for m in matches] == ["mock-7", "mock-8"]

    matches, _ = source.list_matches(team="BRAZ")
    assert [m.id for m in matches] == ["mock-7"]

    matches, total = source.list_matches(
        date_from=datetime(2024, 12, 22, tzinfo=timezone.utc),
        date_to=datetime(2024, 12, 23, tzinfo=timezone.utc),
    )
    assert [m.id for m in matches] == ["mock-6", "mock-5"]

    matches, total = source.list_matches(page=2, limit=3)
    assert total == 8
    assert len(matches) == 3


def test_mock_get_unknown():
    assert MockMatchSource().get("mock-99") is None


def test_mock_to_dict():
    data = MockMatchSource().get("mock-3").to_dict()
    assert data["home_team"] == "England"
    assert data["status"] == "LIVE"
    assert (data["home_score"], data["away_score"]) == (2, 0)
    assert data["kickoff_time"] == "2024-12-21T13:00:00+00:00"


def test_api_football_shape():
    source = MockMatchSource()
    response = generate_mock_api_response(source.all())

    assert response["get"] == "fixtures"
    assert response["results"] == 8
    assert response["paging"] == {"current": 1, "total": 1}

    live = next(r for r in response["response"] if r["fixture"]["id"] == "mock-3")
    assert live["fixture"]["status"] == {"long": "LIVE", "short": "1H", "elapsed": 45}
    assert live["goals"] == {"home": 2, "away": 0}
    assert live["score"]["halftime"] == {"home": 1, "away": 0}
    assert live["teams"]["home"]["winner"] is True
    assert live["teams"]["away"]["winner"] is False

    draw = next(r for r in response["response"] if r["fixture"]["id"] == "mock-6")
    assert draw["fixture"]["status"]["short"] == "FT"
    assert draw["score"]["fulltime"] == {"home": 0, "away": 0}
    assert draw["teams"]["home"]["winner"] is None

    scheduled = response["response"][0]
    assert scheduled["fixture"]["status"]["short"] == "NS"
    assert scheduled["goals"] == {"home": None, "away": None}
    assert scheduled["fixture"]["timestamp"] == 1734710400


# Database source and selection


def test_database_source_lists_and_filters(app_ctx, make_match):
    later = make_match(
        home_team="Argentina", away_team="Australia",
        kickoff_time=datetime(2026, 7, 1, 20, tzinfo=timezone.utc), round="Round of 16",
    )
    earlier = make_match(kickoff_time=datetime(2026, 6, 20, 20, tzinfo=timezone.utc))
    live = make_match(
        home_team="England", away_team="Iran", status="LIVE", home_score=0, away_score=0,
        kickoff_time=datetime(2026, 6, 21, 13, tzinfo=timezone.utc),
    )
    source = DatabaseMatchSource()

    matches, total = source.list_matches()
    assert total == 3
    assert [m.id for m in matches] == [earlier, live, later]

    matches, _ = source.list_matches(team="austral")
    assert [m.id for m in matches] == [later]

    matches, _ = source.list_matches(date_from=datetime(2026, 6, 21, tzinfo=timezone.utc))
    assert [m.id for m in matches] == [live, later]

    assert [m.id for m in source.live_matches()] == [live]
    assert source.get(str(earlier)).id == earlier
    assert source.get("mock-1") is None


def test_database_source_apply_update_commits(app_ctx, make_match):
    match_id = make_match(status="LIVE", home_score=0, away_score=0)
    source = DatabaseMatchSource()
    match = source.get(match_id)

    assert source.apply_score(match, 1, 0) is False
    assert source.set_status(match, "FINISHED") is True
    assert source.get(match_id).is_scoreable


def test_create_match_source(app):
    assert isinstance(create_match_source(app), DatabaseMatchSource)

    app.config["MATCH_SOURCE"] = "mock"
    assert isinstance(create_match_source(app), MockMatchSource)

    app.config["MATCH_SOURCE"] = "something-else"
    assert isinstance(create_match_source(app), DatabaseMatchSource)
