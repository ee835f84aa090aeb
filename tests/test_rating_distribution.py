import pytest

from reviewtrust.rating_distribution import analyze_rating_distribution


@pytest.mark.parametrize(
    "histogram, expected",
    [
        ({5: 94, 4: 2, 3: 1, 2: 1, 1: 2}, 0.2),
        ({5: 85, 4: 8, 3: 4, 2: 2, 1: 1}, 0.4),
        ({5: 60, 4: 5, 3: 3, 2: 2, 1: 30}, 0.35),
        ({5: 55, 4: 20, 3: 10, 2: 5, 1: 10}, 0.8),
    ],
)
def test_histogram_shapes(histogram, expected):
    assert analyze_rating_distribution(histogram).score == expected


def test_detail_names_five_star_share():
    result = analyze_rating_distribution({5: 94.5, 4: 2, 1: 3.5})
    assert result.detail == "94.5% five-star reviews with almost no middle ratings"


@pytest.mark.parametrize("histogram", [None, {}, {5: 90, 1: 10}])
def test_sparse_histograms_are_unknown(histogram):
    assert analyze_rating_distribution(histogram) is None
