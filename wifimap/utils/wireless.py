import math
from datetime import datetime, timezone
from typing import Optional

from wifimap.schemas.network import EncryptionType, NetworkType

_TYPE_ALIASES = {
    "WIFI": NetworkType.WIFI,
    "WI-FI": NetworkType.WIFI,
    "IEEE80211": NetworkType.WIFI,
    "BLE": NetworkType.BLE,
    "BLUETOOTH": NetworkType.BLE,
    "BT": NetworkType.BLE,
    "BTLE": NetworkType.BLE,
    "LTE": NetworkType.LTE,
    "CELL": NetworkType.LTE,
    "GSM": NetworkType.LTE,
    "CDMA": NetworkType.LTE,
    # однобуквенные коды из базы приложения WiGLE
    "W": NetworkType.WIFI,
    "B": NetworkType.BLE,
    "E": NetworkType.BLE,
    "L": NetworkType.LTE,
    "G": NetworkType.LTE,
    "C": NetworkType.LTE,
}

# Форматы времени, встречающиеся в выгрузках WiGLE / Kismet
_TIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%a %b %d %H:%M:%S %Y",
    "%m/%d/%Y %H:%M:%S",
)


def normalize_encryption(value: Optional[str]) -> str:
    """
    Сводит строку возможностей/шифрования к EncryptionType.
    Порядок проверок важен: "WPA2" не должен попасть в "WPA".
    """
    enc = (value or "").upper()
    if "WPA3" in enc:
        return EncryptionType.WPA3.value
    if "WPA2" in enc or "RSN" in enc:
        return EncryptionType.WPA2.value
    if "WPA" in enc:
        return EncryptionType.WPA.value
    if "WEP" in enc:
        return EncryptionType.WEP.value
    if enc == "" or "OPEN" in enc or "NONE" in enc or "ESS" in enc:
        return EncryptionType.OPEN.value
    return EncryptionType.UNKNOWN.value


def normalize_network_type(value: Optional[str]) -> str:
    if not value:
        return NetworkType.WIFI.value
    return _TYPE_ALIASES.get(str(value).strip().upper(), NetworkType.WIFI).value


def frequency_to_channel(frequency) -> int:
    """
    Частота (МГц) -> номер канала 802.11. 0 означает «неизвестно».
    """
    try:
        freq = int(frequency)
    except (TypeError, ValueError):
        return 0
    if 2412 <= freq <= 2484:
        if freq == 2484:
            return 14
        return (freq - 2412) // 5 + 1
    if 5170 <= freq <= 5825:
        return (freq - 5170) // 5 + 34
    return 0


def parse_int(value) -> Optional[int]:
    """
    Аналог parseInt: "-67 dBm" -> -67, "6.0" -> 6; None для мусора.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    digits = ""
    for i, ch in enumerate(text):
        if ch.isdigit() or (i == 0 and ch in "+-"):
            digits += ch
        else:
            break
    try:
        return int(digits)
    except ValueError:
        return None


def parse_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(str(value).strip())
    except ValueError:
        return None
    return result if math.isfinite(result) else None


def parse_timestamp(value) -> Optional[datetime]:
    """
    Разбирает время из файла: datetime, Unix-время (сек или мс), ISO-строка
    или один из распространённых текстовых форматов. Результат в UTC.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return _from_epoch(value)

    text = str(value).strip()
    if not text:
        return None
    number = parse_float(text)
    if number is not None:
        return _from_epoch(number)
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        moment = None
        for fmt in _TIME_FORMATS:
            try:
                moment = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if moment is None:
        return None
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _from_epoch(value: float) -> Optional[datetime]:
    # Всё, что больше ~1e11, считаем миллисекундами (как WiGLE Android)
    seconds = value / 1000 if abs(value) > 1e11 else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
