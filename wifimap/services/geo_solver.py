import logging
from typing import NamedTuple, Sequence

import numpy as np

logger = logging.getLogger(__name__)

# Наблюдения без уровня сигнала считаем типичными
DEFAULT_SIGNAL_DBM = -70


class Position(NamedTuple):
    latitude: float
    longitude: float


def signal_weights(signals: Sequence[float]) -> np.ndarray:
    """
    Вес наблюдения: квадрат модуля RSSI (dBm хранится отрицательным).
    -100 dBm весит в (100/50)^2 = 4 раза больше, чем -50 dBm.
    """
    return np.abs(np.asarray(signals, dtype=float)) ** 2


def calculate_weighted_centroid(observations: Sequence) -> Position:
    """
    Взвешенный центроид координат всех наблюдений одной сети.

    observations: объекты с атрибутами latitude, longitude, signal_strength.

    Raises:
        ValueError: если наблюдений нет.
    """
    if len(observations) == 0:
        raise ValueError("Cannot calculate centroid with no observations")

    # Одно наблюдение возвращаем как есть, без арифметики
    if len(observations) == 1:
        only = observations[0]
        return Position(only.latitude, only.longitude)

    coords = np.array([(obs.latitude, obs.longitude) for obs in observations], dtype=float)
    signals = [
        obs.signal_strength if obs.signal_strength is not None else DEFAULT_SIGNAL_DBM
        for obs in observations
    ]
    weights = signal_weights(signals)

    # Все уровни 0 dBm: веса нулевые, берём простое среднее
    if not weights.any():
        weights = None

    lat, lon = np.average(coords, axis=0, weights=weights)
    logger.debug(f"Центроид по {len(observations)} наблюдениям: ({lat:.6f}, {lon:.6f})")
    return Position(float(lat), float(lon))


def best_signal(observations: Sequence) -> int | None:
    """
    Самый сильный (наибольший, т.е. наименее отрицательный) уровень сигнала.
    """
    signals = [obs.signal_strength for obs in observations if obs.signal_strength is not None]
    return max(signals) if signals else None
