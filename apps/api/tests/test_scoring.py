import random

import pytest

from cinevibe_core.errors import UnknownVibe
from cinevibe_core.types import EraBucket, Film, RuntimePref, Series
from cinevibe_ranking.scoring import (
    ANTI_GENRE_PENALTY,
    era_match,
    normalize_rating,
    paginate,
    rank,
    score_and_rank,
    score_item,
    shuffle_top,
)
from cinevibe_ranking.types import ScoringParams
from cinevibe_ranking.vibes import VIBES, get_vibe, random_vibe_id

CHILL = VIBES["chill"]  # primary 35/10751, anti 27/53/80


def _film(id_, **kw):
    base = dict(
        id=id_,
        title=f"Film {id_}",
        genre_ids=(35,),
        popularity=40.0,
        vote_average=7.0,
        vote_count=400,
        release_date="2019-05-01",
        poster_path="/x.jpg",
    )
    base.update(kw)
    return Film(**base)


def _params(**kw):
    kw.setdefault("vibe", CHILL)
    kw.setdefault("current_year", 2024)
    return ScoringParams(**kw)


def test_anti_genre_scores_lower_than_neutral():
    neutral = score_item(_film(1, genre_ids=(99,)), _params())
    anti = score_item(_film(2, genre_ids=(27,)), _params())
    assert anti.score < neutral.score
    assert anti.breakdown.features["anti_genre"].contribution == -ANTI_GENRE_PENALTY


def test_primary_overlap_beats_secondary_overlap():
    primary = score_item(_film(1, genre_ids=(35, 10751)), _params())
    secondary = score_item(_film(2, genre_ids=(10749, 16)), _params())
    assert primary.score > secondary.score


def test_score_is_pure():
    item = _film(5, genre_ids=(35, 16))
    assert score_item(item, _params()).score == score_item(item, _params()).score


def test_rank_ties_break_on_popularity_then_id():
    items = [
        _film(3, popularity=10.0),
        _film(1, popularity=10.0),
        _film(2, popularity=90.0),
    ]
    params = _params(want_hidden_gems=False)
    ranked = rank(score_item(i, params) for i in items)
    scores = [r.score for r in ranked]
    assert scores == sorted(scores, reverse=True)
    same = [r for r in ranked if r.item.popularity == 10.0]
    assert [r.item.id for r in same] == [1, 3]


def test_rank_is_idempotent_and_order_independent():
    rng = random.Random(3)
    items = [
        _film(i, genre_ids=tuple(rng.sample([35, 10751, 27, 18, 16, 99], 2)),
              popularity=rng.choice([5.0, 30.0, 150.0]), vote_average=rng.choice([6.0, 7.5, 8.2]))
        for i in range(1, 31)
    ]
    ranked = score_and_rank(items, _params())
    assert rank(ranked) == ranked
    shuffled = list(items)
    rng.shuffle(shuffled)
    assert [r.item.id for r in score_and_rank(shuffled, _params())] == [r.item.id for r in ranked]


def test_exclusions_are_removed_before_scoring():
    items = [_film(i) for i in range(1, 6)]
    ranked = score_and_rank(items, _params(exclude_ids=frozenset({2, 4})))
    assert {r.item.id for r in ranked} == {1, 3, 5}


def test_duplicates_collapse_but_kinds_stay_distinct():
    items = [_film(1), _film(1), Series(id=1, title="Show 1", genre_ids=(35,))]
    ranked = score_and_rank(items, _params())
    assert sorted((r.media_type.value, r.item.id) for r in ranked) == [("movie", 1), ("tv", 1)]


def test_shuffle_top_is_a_permutation_of_the_head_only():
    ranked = score_and_rank([_film(i, popularity=float(i)) for i in range(1, 41)], _params())
    shuffled = shuffle_top(ranked, 30, random.Random(42))
    assert sorted(r.item.id for r in shuffled) == sorted(r.item.id for r in ranked)
    assert shuffled[30:] == ranked[30:]
    assert {r.item.id for r in shuffled[:30]} == {r.item.id for r in ranked[:30]}


def test_shuffle_top_is_reproducible_with_a_seed():
    ranked = score_and_rank([_film(i, popularity=float(i)) for i in range(1, 11)], _params())
    a = shuffle_top(ranked, 30, random.Random(9))
    b = shuffle_top(ranked, 30, random.Random(9))
    assert [r.item.id for r in a] == [r.item.id for r in b]


def test_paginate_accepts_any_positive_size():
    ranked = score_and_rank([_film(i) for i in range(1, 26)], _params())
    assert len(paginate(ranked)) == 20
    assert len(paginate(ranked, 7)) == 7
    with pytest.raises(ValueError):
        paginate(ranked, 0)


def test_era_term_only_when_era_requested():
    item = _film(1, release_date="1995-01-01")
    assert "era" not in score_item(item, _params()).breakdown.features
    assert "era" not in score_item(item, _params(era=EraBucket.ANY)).breakdown.features
    nineties = score_item(item, _params(era=EraBucket.NINETIES))
    assert nineties.breakdown.features["era"].value == 1.0
    assert "90s nostalgia" in nineties.reasons


def test_era_bands():
    assert era_match(2020, EraBucket.MODERN, 2024) == 1.0
    assert era_match(2012, EraBucket.MODERN, 2024) == 0.5
    assert era_match(2016, EraBucket.Y2K, 2024) == 0.5
    assert era_match(1970, EraBucket.Y2K, 2024) == 0.2
    assert era_match(1985, EraBucket.CLASSIC, 2024) == 1.0
    assert era_match(None, EraBucket.CLASSIC, 2024) == 0.5


def test_runtime_term_for_films_only():
    params = _params(runtime_pref=RuntimePref.SHORT)
    film = score_item(_film(1, runtime=85), params)
    assert film.breakdown.features["runtime"].value == 1.0
    series = score_item(Series(id=2, title="S", genre_ids=(35,)), params)
    assert "runtime" not in series.breakdown.features
    unknown = score_item(_film(3), params)
    assert "runtime" not in unknown.breakdown.features


def test_rating_confidence_pulls_toward_prior():
    assert normalize_rating(9.0, 1000) > normalize_rating(9.0, 10)
    assert normalize_rating(0.0, 0) == 0.5


def test_reasons_are_capped_at_two():
    item = _film(
        1, genre_ids=(35, 10751), vote_average=8.5, vote_count=2000,
        popularity=10.0, release_date="2021-01-01",
    )
    scored = score_item(item, _params(era=EraBucket.MODERN, want_hidden_gems=True))
    assert len(scored.reasons) == 2


def test_feelgood_example_top_twenty_match_runtime_and_genre():
    vibe = VIBES["chill"]
    matching = [_film(i, genre_ids=(35, 10751), runtime=100) for i in range(1, 21)]
    other = [_film(i, genre_ids=(99,), runtime=150) for i in range(21, 41)]
    params = _params(vibe=vibe, era=EraBucket.MODERN, runtime_pref=RuntimePref.STANDARD)
    top = paginate(score_and_rank(other + matching, params), 20)
    assert {r.item.id for r in top} == set(range(1, 21))
    for r in top:
        assert r.breakdown.features["genre"].contribution >= 0
        assert 90 <= r.item.runtime <= 120


def test_hidden_gems_example_prefers_obscure_high_rating():
    blockbuster = _film(1, popularity=500.0, vote_average=6.0, vote_count=5000)
    gem = _film(2, popularity=5.0, vote_average=8.5, vote_count=5000)
    ranked = score_and_rank([blockbuster, gem], _params(want_hidden_gems=True))
    assert [r.item.id for r in ranked] == [2, 1]


def test_vibe_lookup():
    assert get_vibe("dark").display_name == "Dark & Gritty"
    with pytest.raises(UnknownVibe):
        get_vibe("sleepy")
    assert random_vibe_id(random.Random(1)) in VIBES
