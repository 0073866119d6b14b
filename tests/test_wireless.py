from datetime import datetime, timezone

import pytest

from wifimap.utils.wireless import (
    frequency_to_channel,
    normalize_encryption,
    normalize_network_type,
    parse_int,
    parse_timestamp,
)


@pytest.mark.parametrize(
    "frequency,channel",
    [(2412, 1), (2437, 6), (2472, 13), (2484, 14), (5170, 34), (5180, 36), (5825, 165), (900, 0), (6000, 0), (None, 0)],
)
def test_frequency_to_channel(frequency, channel):
    assert frequency_to_channel(frequency) == channel


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("[WPA2-PSK-CCMP][ESS]", "WPA2"),
        ("[WPA-PSK-TKIP][WPA2-PSK-CCMP][ESS]", "WPA2"),
        ("[WPA-PSK-TKIP][ESS]", "WPA"),
        ("[WPA3-SAE-CCMP][ESS]", "WPA3"),
        ("[RSN-PSK-CCMP]", "WPA2"),
        ("[WEP][ESS]", "WEP"),
        ("[ESS]", "Open"),
        ("none", "Open"),
        ("", "Open"),
        (None, "Open"),
        ("[IBSS]", "Unknown"),
    ],
)
def test_normalize_encryption(raw, expected):
    assert normalize_encryption(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("wifi", "WIFI"),
        ("Wi-Fi", "WIFI"),
        ("Bluetooth", "BLE"),
        ("btle", "BLE"),
        ("cell", "LTE"),
        ("GSM", "LTE"),
        ("E", "BLE"),
        (None, "WIFI"),
        ("zigbee", "WIFI"),
    ],
)
def test_normalize_network_type(raw, expected):
    assert normalize_network_type(raw) == expected


def test_parse_int_like_parse_int():
    assert parse_int("-67 dBm") == -67
    assert parse_int("6.0") == 6
    assert parse_int("abc") is None
    assert parse_int("") is None
    assert parse_int(-45) == -45


def test_parse_timestamp_variants():
    expected = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-15 10:30:00") == expected
    assert parse_timestamp("2024-01-15T10:30:00Z") == expected
    assert parse_timestamp(1705314600000) == expected
    assert parse_timestamp("1705314600") == expected
    assert parse_timestamp("garbage") is None
    assert parse_timestamp(None) is None
