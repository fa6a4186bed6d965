"""Tests for co-occurrence analysis."""

import pytest

from basketrec.recommender.cooccurrence import compute_co_occurrence
from basketrec.recommender.models import CoOccurrenceOptions
from basketrec.recommender.utils import PLACEHOLDER_IMAGE


def test_always_bought_together_scores_one(product_factory, store_factory):
    """A product present in every order of the seed gets confidence 1.0."""
    store = store_factory(
        [product_factory("p1"), product_factory("p2")],
        [["p1", "p2"]] * 5,
    )

    result = compute_co_occurrence(store, "p1")

    assert result.order_count == 5
    assert result.has_signal
    assert [(r.id, r.score) for r in result.recommendations] == [("p2", 1.0)]


def test_min_confidence_filters_rare_pairs(product_factory, store_factory):
    """A pair seen in 1 of 10 orders is dropped at min_confidence=0.2."""
    products = [product_factory(pid) for pid in ["p1", "p2", "p3"]]
    baskets = [["p1", "p2"]] * 5 + [["p1", "p3"]] + [["p1"]] * 4
    store = store_factory(products, baskets)

    strict = compute_co_occurrence(store, "p1", CoOccurrenceOptions(min_co_occurrence=0, min_confidence=0.2))
    assert [(r.id, r.score) for r in strict.recommendations] == [("p2", 0.5)]

    loose = compute_co_occurrence(store, "p1", CoOccurrenceOptions(min_co_occurrence=0, min_confidence=0.1))
    assert [r.id for r in loose.recommendations] == ["p2", "p3"]
    assert loose.recommendations[1].score == pytest.approx(0.1)


def test_min_co_occurrence_is_strict(product_factory, store_factory):
    """A count equal to min_co_occurrence does not pass the threshold."""
    products = [product_factory(pid) for pid in ["p1", "p2", "p3"]]
    baskets = [["p1", "p2"]] * 2 + [["p1", "p3"]] * 3
    store = store_factory(products, baskets)

    result = compute_co_occurrence(store, "p1", CoOccurrenceOptions(min_co_occurrence=2))

    assert [r.id for r in result.recommendations] == ["p3"]
    assert result.recommendations[0].score == pytest.approx(3 / 5)


def test_confidence_is_directional(product_factory, store_factory):
    """Confidence is normalized by the seed's orders only."""
    products = [product_factory("p1"), product_factory("p2")]
    baskets = [["p1", "p2"]] * 3 + [["p1"]] + [["p2"]] * 6
    store = store_factory(products, baskets)

    from_p1 = compute_co_occurrence(store, "p1")
    from_p2 = compute_co_occurrence(store, "p2")

    assert from_p1.recommendations[0].score == pytest.approx(3 / 4)
    assert from_p2.recommendations[0].score == pytest.approx(3 / 9)


def test_seed_is_never_recommended(product_factory, store_factory):
    """Repeated lines of the seed do not make it its own candidate."""
    products = [product_factory("p1"), product_factory("p2")]
    store = store_factory(products, [["p1", "p1", "p2"]] * 4)

    result = compute_co_occurrence(store, "p1", CoOccurrenceOptions(min_co_occurrence=0))

    assert "p1" not in [r.id for r in result.recommendations]


def test_repeated_lines_count_once(product_factory, store_factory):
    """Quantity does not inflate confidence past 1.0."""
    products = [product_factory("p1"), product_factory("p2")]
    store = store_factory(products, [["p1", "p2", "p2"]] * 3)

    result = compute_co_occurrence(store, "p1")

    assert [(r.id, r.score) for r in result.recommendations] == [("p2", 1.0)]


def test_ranking_and_max_results(product_factory, store_factory):
    """Candidates are ordered by confidence and truncated to max_results."""
    products = [product_factory(pid) for pid in ["p1", "p2", "p3", "p4"]]
    baskets = [["p1", "p2", "p3", "p4"]] * 3 + [["p1", "p2", "p3"], ["p1", "p2"]]
    store = store_factory(products, baskets)

    full = compute_co_occurrence(store, "p1")
    assert [(r.id, r.score) for r in full.recommendations] == [
        ("p2", pytest.approx(1.0)),
        ("p3", pytest.approx(0.8)),
        ("p4", pytest.approx(0.6)),
    ]

    capped = compute_co_occurrence(store, "p1", CoOccurrenceOptions(max_results=2))
    assert [r.id for r in capped.recommendations] == ["p2", "p3"]


def test_ties_break_by_product_id(product_factory, store_factory):
    products = [product_factory(pid) for pid in ["p1", "p2", "p3"]]
    store = store_factory(products, [["p1", "p3", "p2"]] * 3)

    result = compute_co_occurrence(store, "p1")

    assert [r.id for r in result.recommendations] == ["p2", "p3"]


def test_inactive_candidates_are_dropped(product_factory, store_factory):
    products = [product_factory("p1"), product_factory("p2", is_active=False)]
    store = store_factory(products, [["p1", "p2"]] * 5)

    result = compute_co_occurrence(store, "p1")

    assert result.has_signal
    assert result.recommendations == []


def test_unknown_or_inactive_seed(product_factory, store_factory):
    """Missing and inactive seeds resolve to no seed and no results."""
    products = [product_factory("p1", is_active=False), product_factory("p2")]
    store = store_factory(products, [["p1", "p2"]] * 5)

    for seed_id in ["p1", "missing"]:
        result = compute_co_occurrence(store, seed_id)
        assert result.seed is None
        assert result.recommendations == []
        assert not result.has_signal


def test_never_ordered_seed(product_factory, store_factory):
    store = store_factory([product_factory("p1"), product_factory("p2")], [["p2"]])

    result = compute_co_occurrence(store, "p1")

    assert result.seed is not None
    assert result.order_count == 0
    assert not result.has_signal


def test_result_fields(product_factory, store_factory):
    """Missing images get the placeholder and prices become floats."""
    products = [
        product_factory("p1"),
        product_factory("p2", category="Snacks", image=None, price="19.99"),
        product_factory("p3", image="https://cdn.example.com/p3.jpg"),
    ]
    store = store_factory(products, [["p1", "p2", "p3"]] * 3)

    by_id = {r.id: r for r in compute_co_occurrence(store, "p1").recommendations}

    assert by_id["p2"].image == PLACEHOLDER_IMAGE
    assert by_id["p2"].price == pytest.approx(19.99)
    assert isinstance(by_id["p2"].price, float)
    assert by_id["p2"].category == "Snacks"
    assert by_id["p3"].image == "https://cdn.example.com/p3.jpg"
    assert by_id["p3"].category_label == "Uncategorized"


def test_options_are_validated():
    with pytest.raises(ValueError):
        CoOccurrenceOptions(min_confidence=1.5)
    with pytest.raises(ValueError):
        CoOccurrenceOptions(max_results=0)
    with pytest.raises(ValueError):
        CoOccurrenceOptions(min_co_occurrence=-1)
