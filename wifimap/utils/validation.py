import math
import re
from datetime import datetime, timedelta, timezone

from wifimap.exceptions import ValidationError

_BSSID_SEPARATORS = re.compile(r"[:-]")
_HEX12 = re.compile(r"^[0-9A-Fa-f]{12}$")

# 2.4 ГГц: 1-14; 5 ГГц: 36-64 и 100-144 шагом 4, 149-165 шагом 4
VALID_CHANNELS = frozenset(
    list(range(1, 15))
    + list(range(36, 65, 4))
    + list(range(100, 145, 4))
    + list(range(149, 166, 4))
)

# Wi-Fi в нынешнем виде появился в 1997
MIN_TIMESTAMP = datetime(1997, 1, 1, tzinfo=timezone.utc)

_TRAVERSAL_PATTERNS = ("../", "..\\", "%2e%2e", "%252e%252e")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_latitude(lat) -> bool:
    return _is_number(lat) and math.isfinite(lat) and -90 <= lat <= 90


def validate_longitude(lon) -> bool:
    return _is_number(lon) and math.isfinite(lon) and -180 <= lon <= 180


def validate_coordinates(lat, lon) -> None:
    """
    Проверяет пару координат WGS84.

    Raises:
        ValidationError: если широта или долгота вне диапазона.
    """
    if not validate_latitude(lat):
        raise ValidationError(
            f"Invalid latitude: {lat}. Must be between -90 and 90.",
            field="latitude",
            value=lat,
        )
    if not validate_longitude(lon):
        raise ValidationError(
            f"Invalid longitude: {lon}. Must be between -180 and 180.",
            field="longitude",
            value=lon,
        )


def validate_bssid(bssid) -> bool:
    """
    Принимает XX:XX:XX:XX:XX:XX, XX-XX-XX-XX-XX-XX и XXXXXXXXXXXX.
    """
    if not isinstance(bssid, str):
        return False
    return bool(_HEX12.match(_BSSID_SEPARATORS.sub("", bssid)))


def normalize_bssid(bssid) -> str:
    """
    Приводит BSSID к виду AA:BB:CC:DD:EE:FF (верхний регистр, двоеточия).

    Raises:
        ValidationError: если строка не похожа на MAC-адрес.
    """
    if not validate_bssid(bssid):
        raise ValidationError(
            f"Invalid BSSID format: {bssid}. Expected format: XX:XX:XX:XX:XX:XX",
            field="bssid",
            value=bssid,
        )
    cleaned = _BSSID_SEPARATORS.sub("", bssid).upper()
    return ":".join(cleaned[i:i + 2] for i in range(0, 12, 2))


def validate_signal_strength(signal) -> bool:
    if not _is_number(signal) or not math.isfinite(signal):
        return False
    return float(signal).is_integer() and -120 <= signal <= 0


def validate_channel(channel) -> bool:
    if not _is_number(channel) or not math.isfinite(channel):
        return False
    if not float(channel).is_integer():
        return False
    return int(channel) in VALID_CHANNELS


def validate_ssid(ssid) -> bool:
    # Пустой SSID допустим (скрытые сети)
    return isinstance(ssid, str) and len(ssid) <= 32


def validate_timestamp(timestamp) -> bool:
    """
    Время должно быть в диапазоне [1997-01-01, сейчас + 1 день].
    Принимает datetime, миллисекунды Unix или ISO-строку.
    """
    if isinstance(timestamp, datetime):
        moment = timestamp
    elif _is_number(timestamp):
        if not math.isfinite(timestamp):
            return False
        try:
            moment = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return False
    elif isinstance(timestamp, str):
        try:
            moment = datetime.fromisoformat(timestamp.strip().replace("Z", "+00:00"))
        except ValueError:
            return False
    else:
        return False

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    # Допуск в сутки на расхождение часов
    max_moment = datetime.now(timezone.utc) + timedelta(days=1)
    return MIN_TIMESTAMP <= moment <= max_moment


def sanitize_string(value, max_length: int = 255) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


def validate_file_path(file_path) -> bool:
    """
    Непустой путь без попыток выхода из каталога (../, ..\\, URL-кодирование).
    """
    if not isinstance(file_path, str) or not file_path:
        return False
    lowered = file_path.lower()
    return not any(pattern in lowered for pattern in _TRAVERSAL_PATTERNS)
