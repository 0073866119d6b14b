import pytest
from types import SimpleNamespace

from wifimap.services.geo_solver import (
    DEFAULT_SIGNAL_DBM,
    best_signal,
    calculate_weighted_centroid,
    signal_weights,
)


def obs(lat, lon, signal):
    return SimpleNamespace(latitude=lat, longitude=lon, signal_strength=signal)


def test_centroid_of_empty_set_raises():
    with pytest.raises(ValueError):
        calculate_weighted_centroid([])


def test_single_observation_returned_verbatim():
    # Никакой арифметики: координаты те же самые, бит в бит
    position = calculate_weighted_centroid([obs(55.123456789, 37.987654321, -80)])
    assert position.latitude == 55.123456789
    assert position.longitude == 37.987654321


def test_equal_signals_give_midpoint():
    position = calculate_weighted_centroid([obs(10.0, 20.0, -60), obs(20.0, 40.0, -60)])
    assert position.latitude == pytest.approx(15.0)
    assert position.longitude == pytest.approx(30.0)


def test_weight_is_squared_signal_magnitude():
    # (0 * 2500 + 10 * 10000) / 12500
    position = calculate_weighted_centroid([obs(0.0, 0.0, -50), obs(10.0, 10.0, -100)])
    assert position.latitude == pytest.approx(8.0)
    assert position.longitude == pytest.approx(8.0)


def test_weights_ratio():
    weights = signal_weights([-50, -100])
    assert list(weights) == [2500.0, 10000.0]
    assert weights[1] / weights[0] == pytest.approx(4.0)


def test_zero_dbm_has_zero_weight():
    position = calculate_weighted_centroid([obs(0.0, 0.0, 0), obs(10.0, 10.0, -100)])
    assert position.latitude == pytest.approx(10.0)


def test_all_zero_dbm_falls_back_to_plain_mean():
    position = calculate_weighted_centroid([obs(0.0, 0.0, 0), obs(10.0, 20.0, 0)])
    assert position == pytest.approx((5.0, 10.0))


def test_missing_signal_uses_default():
    with_none = calculate_weighted_centroid([obs(0.0, 0.0, None), obs(10.0, 10.0, -50)])
    with_default = calculate_weighted_centroid([obs(0.0, 0.0, DEFAULT_SIGNAL_DBM), obs(10.0, 10.0, -50)])
    assert with_none == pytest.approx(with_default)


def test_best_signal_is_maximum():
    assert best_signal([obs(0, 0, -80), obs(0, 0, -45), obs(0, 0, None)]) == -45
    assert best_signal([obs(0, 0, None)]) is None
