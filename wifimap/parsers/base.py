import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional

from wifimap.core.config import settings
from wifimap.schemas.network import NetworkType, ParsedNetwork
from wifimap.utils.validation import (
    normalize_bssid,
    validate_bssid,
    validate_channel,
    validate_signal_strength,
    validate_timestamp,
)
from wifimap.utils.wireless import parse_int, parse_timestamp

logger = logging.getLogger(__name__)

# (процент 0-100, сообщение)
ProgressCallback = Callable[[float, str], None]


class FileParser(ABC):
    """
    Контракт парсера файла вардрайвинга.

    Парсер сам решает, может ли он разобрать файл (can_parse), и выдаёт
    записи ParsedNetwork порциями по chunk_size, чтобы вызывающий код мог
    отдавать управление и сообщать о прогрессе между порциями.
    """

    format_name: str = ""
    # True: parse() получает путь к файлу, а не его текст
    reads_path: bool = False

    def __init__(self, chunk_size: Optional[int] = None):
        self.chunk_size = chunk_size or settings.PARSE_CHUNK_SIZE

    @abstractmethod
    def can_parse(self, filename: str, content: str) -> bool:
        ...

    @abstractmethod
    def iter_chunks(
        self,
        source: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Iterator[List[ParsedNetwork]]:
        ...

    def parse(
        self,
        source: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[ParsedNetwork]:
        networks: List[ParsedNetwork] = []
        for chunk in self.iter_chunks(source, progress_callback):
            networks.extend(chunk)
        return networks

    def get_format_name(self) -> str:
        return self.format_name


def report(progress_callback: Optional[ProgressCallback], done: int, total: int, message: str) -> None:
    if progress_callback is None:
        return
    percent = 100.0 if total <= 0 else min(100.0, done / total * 100)
    progress_callback(percent, message)


def coerce_signal(raw, context: str = "") -> int:
    """
    Уровень сигнала из файла; отсутствующий или неверный заменяется на -70.
    """
    default = settings.DEFAULT_SIGNAL_DBM
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    signal = parse_int(raw)
    if signal is None or not validate_signal_strength(signal):
        logger.warning(f"Invalid signal strength {raw!r}{context}, using default {default}")
        return default
    return signal


def coerce_channel(raw, context: str = "") -> Optional[int]:
    """
    Канал из файла; неверный канал отбрасывается (None), а не подменяется.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    channel = parse_int(raw)
    if channel is None or not validate_channel(channel):
        logger.warning(f"Invalid channel {raw!r}{context}, ignoring")
        return None
    return channel


def coerce_timestamp(raw, context: str = "") -> datetime:
    """
    Время наблюдения; если его нет или оно неправдоподобно, берём текущее.
    """
    moment = parse_timestamp(raw)
    if moment is None or not validate_timestamp(moment):
        if raw not in (None, ""):
            logger.debug(f"Unusable timestamp {raw!r}{context}, using current time")
        return datetime.now(timezone.utc)
    return moment


def coerce_identifier(raw: str, network_type: str) -> str:
    """
    Идентификатор сети: MAC приводится к AA:BB:CC:DD:EE:FF, прочие строки
    в верхний регистр. Идентификатор LTE-соты сохраняется как есть.
    """
    identifier = str(raw).strip()
    if network_type == NetworkType.LTE.value:
        return identifier
    return normalize_bssid(identifier) if validate_bssid(identifier) else identifier.upper()
