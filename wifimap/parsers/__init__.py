# Пакет парсеров файлов вардрайвинга
# Порядок в PARSER_CLASSES задаёт приоритет автоопределения формата
from typing import List, Optional, Sequence

from .base import FileParser, ProgressCallback
from .wigle_csv import WigleCsvParser
from .kismet_csv import KismetCsvParser
from .kml import KmlParser
from .sqlite import SqliteParser

PARSER_CLASSES = (WigleCsvParser, KismetCsvParser, KmlParser, SqliteParser)


def build_parsers(chunk_size: Optional[int] = None) -> List[FileParser]:
    return [parser_cls(chunk_size) for parser_cls in PARSER_CLASSES]


def detect_parser(
    filename: str,
    content: str,
    parsers: Optional[Sequence[FileParser]] = None,
) -> Optional[FileParser]:
    """
    Первый парсер, который согласился разобрать файл, или None.
    """
    for parser in parsers if parsers is not None else build_parsers():
        if parser.can_parse(filename, content):
            return parser
    return None


def available_formats(parsers: Optional[Sequence[FileParser]] = None) -> List[str]:
    return [parser.get_format_name() for parser in (parsers if parsers is not None else build_parsers())]
