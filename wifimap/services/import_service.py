import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from wifimap.core.config import settings
from wifimap.exceptions import FileImportError, ParseError
from wifimap.parsers import FileParser, ProgressCallback, build_parsers, detect_parser
from wifimap.parsers.sqlite import SQLITE_MAGIC
from wifimap.schemas.network import ImportResult, NetworkUpsert, ParsedNetwork
from wifimap.services.network_repository import NetworkRepository
from wifimap.utils.validation import validate_file_path

logger = logging.getLogger(__name__)

# Доли общего прогресса: разбор 0-70 %, запись 70-100 %
PARSE_PROGRESS_SHARE = 70.0
IMPORT_PROGRESS_SHARE = 30.0

# Сколько байт читаем, чтобы узнать заголовок SQLite
HEADER_PROBE_BYTES = 100


class ImportState(str, Enum):
    IDLE = "idle"
    FORMAT_DETECTING = "format_detecting"
    PARSING = "parsing"
    IMPORTING = "importing"
    COMPLETE = "complete"
    FAILED = "failed"


def _log_progress(percent: float, message: str) -> None:
    logger.debug(f"Import progress {percent:.0f}%: {message}")


class ImportService:
    """
    Оркестратор импорта: определение формата -> разбор -> пакетная запись.

    Одновременно выполняется не больше одного импорта (asyncio.Lock).
    """

    def __init__(
        self,
        repository: NetworkRepository,
        parsers: Optional[Sequence[FileParser]] = None,
        batch_size: Optional[int] = None,
        progress_sink: Optional[ProgressCallback] = None,
    ):
        self.repository = repository
        self.parsers: List[FileParser] = list(parsers) if parsers is not None else build_parsers()
        self.batch_size = batch_size or settings.IMPORT_BATCH_SIZE
        self._progress_sink = progress_sink or _log_progress
        self._lock = asyncio.Lock()
        self.state = ImportState.IDLE

    def available_parsers(self) -> List[str]:
        return [parser.get_format_name() for parser in self.parsers]

    @staticmethod
    def _read_for_detection(path: Path) -> str:
        """
        Текст файла для can_parse. У базы SQLite читается только заголовок.
        """
        with path.open("rb") as f:
            head = f.read(HEADER_PROBE_BYTES)
            if head.startswith(SQLITE_MAGIC.encode("ascii")):
                return head.decode("latin-1")
            rest = f.read()
        return (head + rest).decode("utf-8", errors="replace")

    def _resolve(self, file_path: str) -> Tuple[Path, str, Optional[FileParser]]:
        if not validate_file_path(file_path):
            raise FileImportError("Invalid file path")
        path = Path(file_path)
        if not path.is_file():
            raise FileImportError(f"File not found: {file_path}")
        content = self._read_for_detection(path)
        return path, content, detect_parser(path.name, content, self.parsers)

    def detect_file_format(self, file_path: str) -> Optional[str]:
        """
        Имя формата файла или None, если ни один парсер не подошёл.
        """
        _, _, parser = self._resolve(file_path)
        return parser.get_format_name() if parser is not None else None

    async def import_file(
        self,
        file_path: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ImportResult:
        async with self._lock:
            return await self._run_import(file_path, progress_callback or self._progress_sink)

    async def _run_import(self, file_path: str, progress: ProgressCallback) -> ImportResult:
        result = ImportResult()
        try:
            self.state = ImportState.FORMAT_DETECTING
            progress(0, "Detecting file format...")
            path, content, parser = self._resolve(file_path)
            if parser is None:
                raise FileImportError("Unsupported file format. Unable to detect parser.")
            logger.info(f"Importing {path.name} as {parser.get_format_name()}")
            progress(5, f"Detected format: {parser.get_format_name()}")

            self.state = ImportState.PARSING
            source = str(path) if parser.reads_path else content
            # Освобождаем буфер: дальше он нужен только парсеру
            content = None
            networks = await self._parse(parser, source, progress)
            source = None

            if not networks:
                result.errors.append("No valid networks found in file")
                self.state = ImportState.COMPLETE
                progress(100, "Import complete")
                return result

            progress(PARSE_PROGRESS_SHARE, f"Parsed {len(networks)} networks. Starting import...")
            self.state = ImportState.IMPORTING
            await self._import_batches(networks, result, progress)

            self.state = ImportState.COMPLETE
            progress(100, "Import complete")
            logger.info(
                f"Import of {path.name} complete: {result.networks_imported} new, "
                f"{result.networks_updated} updated, {result.observations_added} observations, "
                f"{len(result.errors)} errors"
            )
            return result
        except (ParseError, FileImportError):
            self.state = ImportState.FAILED
            raise
        except Exception as e:
            self.state = ImportState.FAILED
            logger.error(f"Import of {file_path} failed: {e}")
            raise FileImportError(f"Import failed: {e}", partial_result=result) from e

    async def _parse(self, parser: FileParser, source: str, progress: ProgressCallback) -> List[ParsedNetwork]:
        def scaled(percent: float, message: str) -> None:
            progress(percent * PARSE_PROGRESS_SHARE / 100, message)

        networks: List[ParsedNetwork] = []
        for chunk in parser.iter_chunks(source, scaled):
            networks.extend(chunk)
            # Отдаём управление циклу событий между порциями
            await asyncio.sleep(0)
        return networks

    async def _import_batches(self, networks: List[ParsedNetwork], result: ImportResult, progress: ProgressCallback) -> None:
        total = len(networks)
        for batch_number, start in enumerate(range(0, total, self.batch_size), start=1):
            batch = networks[start:start + self.batch_size]
            try:
                items = [
                    NetworkUpsert(network=parsed.to_network_input(), observation=parsed.to_observation_input())
                    for parsed in batch
                ]
                result.merge(await self.repository.batch_insert_networks(items))
            except Exception as e:
                logger.error(f"Batch {batch_number} failed: {e}")
                result.errors.append(f"Batch {batch_number} failed: {e}")

            done = min(start + self.batch_size, total)
            progress(
                PARSE_PROGRESS_SHARE + done / total * IMPORT_PROGRESS_SHARE,
                f"Imported {done} of {total} networks",
            )
            await asyncio.sleep(0)
