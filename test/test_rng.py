"""
Tests for the seeded random source.
"""

from sanguo.engine.rng import CountingRng, create_seeded_rng


def test_same_seed_same_sequence():
    rng1 = create_seeded_rng(42)
    rng2 = create_seeded_rng(42)
    assert [rng1() for _ in range(10)] == [rng2() for _ in range(10)]


def test_different_seed_different_sequence():
    rng1 = create_seeded_rng(42)
    rng2 = create_seeded_rng(99)
    assert [rng1() for _ in range(10)] != [rng2() for _ in range(10)]


def test_values_in_unit_interval():
    rng = create_seeded_rng(123)
    for _ in range(1000):
        v = rng()
        assert 0 <= v < 1


def test_counting_rng_resumes_where_it_left_off():
    uninterrupted = CountingRng(7)
    expected = [uninterrupted() for _ in range(8)]

    first = CountingRng(7)
    head = [first() for _ in range(5)]
    assert first.draws == 5

    resumed = CountingRng(7, draws=first.draws)
    assert resumed.draws == 5
    assert head + [resumed() for _ in range(3)] == expected
