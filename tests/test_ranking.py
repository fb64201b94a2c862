import copy
from datetime import datetime, timedelta, timezone

from prode.records import MatchRecord, PredictionRecord
from prode.services.ranking import RankingService, compute_ranking

START = datetime(2025, 6, 14, 22, 0, tzinfo=timezone.utc)


def match(match_id, home_score=None, away_score=None):
    return MatchRecord(
        id=match_id,
        home_team=f"Home {match_id}",
        away_team=f"Away {match_id}",
        match_date=START + timedelta(days=match_id),
        stage="Grupo A",
        home_score=home_score,
        away_score=away_score,
    )


_ids = iter(range(1, 10_000))


def prediction(user_id, match_id, home, away):
    return PredictionRecord(
        id=next(_ids),
        user_id=user_id,
        match_id=match_id,
        predicted_home_score=home,
        predicted_away_score=away,
        created_at=START,
    )


MATCHES = [
    match(1, 2, 0),
    match(2, 1, 1),
    match(3, 0, 3),
    match(4, 4, 2),
    match(5, 1, 0),
    match(6, 0, 1),
    match(7),
]


def test_orders_by_points():
    predictions = [
        prediction("low", 1, 0, 2),  # wrong
        prediction("high", 1, 2, 0),  # exact
        prediction("mid", 1, 1, 0),  # winner
    ]

    ranking = compute_ranking(predictions, MATCHES)

    assert [e.user_id for e in ranking] == ["high", "mid", "low"]
    assert [e.points for e in ranking] == [3, 1, 0]
    assert [e.position for e in ranking] == [1, 2, 3]


def test_equal_points_broken_by_exact_count():
    predictions = [
        # B: six correct winners, no exact result -> 6 points
        prediction("B", 1, 1, 0),
        prediction("B", 2, 0, 0),
        prediction("B", 3, 1, 2),
        prediction("B", 4, 3, 1),
        prediction("B", 5, 2, 0),
        prediction("B", 6, 1, 3),
        # A: two exact results and a miss -> 6 points
        prediction("A", 1, 2, 0),
        prediction("A", 2, 1, 1),
        prediction("A", 3, 2, 0),
    ]

    ranking = compute_ranking(predictions, MATCHES)

    assert [(e.user_id, e.points, e.exact_predictions) for e in ranking] == [
        ("A", 6, 2),
        ("B", 6, 0),
    ]


def test_exacts_outrank_winners_at_equal_points():
    predictions = [
        # X: one exact and two misses, 3 points
        prediction("X", 1, 2, 0),
        prediction("X", 2, 1, 0),
        prediction("X", 3, 1, 0),
        # Y: three correct winners, 3 points
        prediction("Y", 1, 1, 0),
        prediction("Y", 2, 2, 2),
        prediction("Y", 3, 0, 1),
        # Z: one exact, 3 points
        prediction("Z", 4, 4, 2),
    ]

    ranking = compute_ranking(predictions, MATCHES)

    # X and Z tie on every key and keep input order; Y has no exacts
    assert [e.user_id for e in ranking] == ["X", "Z", "Y"]
    assert [e.winner_predictions for e in ranking] == [0, 0, 3]


def test_full_ties_keep_first_appearance_order():
    predictions = [
        prediction("first", 1, 0, 1),
        prediction("second", 1, 0, 3),
        prediction("third", 7, 1, 0),
    ]

    ranking = compute_ranking(predictions, MATCHES)

    assert [e.user_id for e in ranking] == ["first", "second", "third"]
    assert [e.position for e in ranking] == [1, 2, 3]


def test_prediction_for_unknown_match_counts_but_scores_nothing():
    predictions = [prediction("ana", 1, 2, 0), prediction("ana", 99, 1, 0)]

    (entry,) = compute_ranking(predictions, MATCHES)

    assert entry.points == 3
    assert entry.exact_predictions == 1
    assert entry.total_predictions == 2


def test_pending_matches_count_as_predictions_only():
    (entry,) = compute_ranking([prediction("ana", 7, 1, 0)], MATCHES)

    assert entry.points == 0
    assert entry.exact_predictions == 0
    assert entry.winner_predictions == 0
    assert entry.total_predictions == 1


def test_display_names_fall_back_to_user_id():
    predictions = [prediction(1, 1, 2, 0), prediction(2, 1, 0, 0)]

    ranking = compute_ranking(predictions, MATCHES, {1: "Ana Perez"})

    assert [e.display_name for e in ranking] == ["Ana Perez", "2"]


def test_deterministic_and_does_not_mutate_inputs():
    predictions = [
        prediction(u, m, h, a)
        for u, m, h, a in [
            (3, 1, 2, 0),
            (1, 2, 1, 1),
            (2, 3, 0, 3),
            (1, 4, 1, 0),
            (3, 5, 0, 0),
            (2, 6, 0, 1),
        ]
    ]
    snapshot = copy.deepcopy(predictions)

    first = compute_ranking(predictions, MATCHES)
    second = compute_ranking(predictions, MATCHES)

    assert first == second
    assert predictions == snapshot


def test_empty_input():
    assert compute_ranking([], MATCHES) == []


def test_ranking_service_reads_from_store(store, make_user, make_match):
    ana = make_user("ana", first_name="Ana", last_name="Perez")
    beto = make_user("beto")
    final = make_match(kickoff=START, home_score=3, away_score=2)
    pending = make_match(kickoff=START + timedelta(days=1))

    store.upsert_prediction(beto, final, 2, 1)
    store.upsert_prediction(ana, final, 3, 2)
    store.upsert_prediction(ana, pending, 0, 0)

    ranking = RankingService(store).get_ranking()

    assert [e.to_dict() for e in ranking] == [
        {
            "position": 1,
            "user_id": ana,
            "display_name": "Ana Perez",
            "points": 3,
            "exact_predictions": 1,
            "winner_predictions": 0,
            "total_predictions": 2,
        },
        {
            "position": 2,
            "user_id": beto,
            "display_name": "beto",
            "points": 1,
            "exact_predictions": 0,
            "winner_predictions": 1,
            "total_predictions": 1,
        },
    ]
