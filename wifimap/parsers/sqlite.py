import logging
import sqlite3
from pathlib import Path
from typing import Iterator, List, Optional

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError

from wifimap.exceptions import ParseError
from wifimap.parsers.base import (
    FileParser,
    ProgressCallback,
    coerce_channel,
    coerce_identifier,
    coerce_signal,
    coerce_timestamp,
    report,
)
from wifimap.schemas.network import ParsedNetwork
from wifimap.utils.validation import validate_latitude, validate_longitude
from wifimap.utils.wireless import frequency_to_channel, normalize_encryption, normalize_network_type, parse_float

logger = logging.getLogger(__name__)

FORMAT_NAME = "SQLite Database"

SQLITE_MAGIC = "SQLite format 3"
EXTENSIONS = (".db", ".sqlite", ".sqlite3")

SCHEMA_WIGLE = "wigle"
SCHEMA_CUSTOM = "custom"


def _wigle_query(has_type: bool) -> str:
    return f"""
        SELECT
            n.bssid AS bssid,
            n.ssid AS ssid,
            n.capabilities AS encryption,
            n.frequency AS frequency,
            {"n.type AS type," if has_type else "NULL AS type,"}
            l.lat AS latitude,
            l.lon AS longitude,
            l.level AS signal,
            l.time AS timestamp
        FROM network n
        LEFT JOIN location l ON n.bssid = l.bssid
        WHERE l.lat IS NOT NULL AND l.lon IS NOT NULL
    """


def _custom_query(has_type: bool) -> str:
    return f"""
        SELECT
            bssid,
            ssid,
            encryption,
            channel,
            best_lat AS latitude,
            best_lon AS longitude,
            best_signal AS signal,
            last_seen AS timestamp,
            {"type" if has_type else "NULL AS type"}
        FROM networks
        WHERE best_lat IS NOT NULL AND best_lon IS NOT NULL
    """


def detect_schema(table_names) -> Optional[str]:
    """
    network + location: база приложения WiGLE (одна строка на наблюдение);
    networks: наша собственная выгрузка (одна строка на сеть).
    """
    names = {name.lower() for name in table_names}
    if "network" in names and "location" in names:
        return SCHEMA_WIGLE
    if "networks" in names:
        return SCHEMA_CUSTOM
    return None


class SqliteParser(FileParser):
    """
    Файл базы SQLite: открывается только на чтение, по пути на диске.
    """

    format_name = FORMAT_NAME
    reads_path = True

    def can_parse(self, filename: str, content: str) -> bool:
        if not filename.lower().endswith(EXTENSIONS):
            return False
        return content.startswith(SQLITE_MAGIC)

    def iter_chunks(
        self,
        source: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Iterator[List[ParsedNetwork]]:
        uri = Path(source).resolve().as_uri() + "?mode=ro"
        engine = create_engine(
            "sqlite://",
            creator=lambda: sqlite3.connect(uri, uri=True, check_same_thread=False),
        )
        try:
            with engine.connect() as conn:
                inspector = inspect(conn)
                schema = detect_schema(inspector.get_table_names())
                if schema is None:
                    raise ParseError("Unsupported database schema", FORMAT_NAME)
                logger.info(f"SQLite schema detected: {schema}")

                table = "network" if schema == SCHEMA_WIGLE else "networks"
                has_type = any(col["name"].lower() == "type" for col in inspector.get_columns(table))
                query = _wigle_query(has_type) if schema == SCHEMA_WIGLE else _custom_query(has_type)

                rows = conn.execute(text(query)).mappings().all()
                yield from self._chunk_rows(rows, schema, progress_callback)
        except SQLAlchemyError as e:
            raise ParseError(f"Failed to parse SQLite file: {e}", FORMAT_NAME)
        finally:
            engine.dispose()

    def _chunk_rows(self, rows, schema: str, progress_callback: Optional[ProgressCallback]) -> Iterator[List[ParsedNetwork]]:
        total = len(rows)
        parsed_count = 0
        for chunk_start in range(0, total, self.chunk_size):
            chunk_end = min(chunk_start + self.chunk_size, total)
            chunk: List[ParsedNetwork] = []
            for index in range(chunk_start, chunk_end):
                network = self._map_row(rows[index], schema)
                if network is None:
                    logger.warning(f"Skipping invalid row {index}")
                    continue
                chunk.append(network)

            parsed_count += len(chunk)
            report(progress_callback, chunk_end, total, f"Parsed {chunk_end} of {total} networks")
            if chunk:
                yield chunk

        report(progress_callback, 1, 1, f"Completed: {parsed_count} networks parsed")
        logger.info(f"SQLite parse complete: {parsed_count} of {total} rows")

    @staticmethod
    def _map_row(row, schema: str) -> Optional[ParsedNetwork]:
        bssid = row["bssid"]
        if not bssid:
            return None
        latitude = parse_float(row["latitude"])
        longitude = parse_float(row["longitude"])
        if not validate_latitude(latitude) or not validate_longitude(longitude):
            return None

        network_type = normalize_network_type(row["type"])
        bssid = coerce_identifier(bssid, network_type)

        if schema == SCHEMA_WIGLE:
            channel = coerce_channel(frequency_to_channel(row["frequency"]) or None)
        else:
            channel = coerce_channel(row["channel"])

        # 0 в поле уровня означает «не измерено»
        signal = row["signal"] or None

        return ParsedNetwork(
            bssid=bssid,
            ssid=row["ssid"] or "",
            latitude=latitude,
            longitude=longitude,
            signal_strength=coerce_signal(signal),
            timestamp=coerce_timestamp(row["timestamp"]),
            encryption=normalize_encryption(row["encryption"] or ""),
            channel=channel,
            type=network_type,
        )
