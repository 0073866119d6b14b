import logging
from typing import Dict, Iterator, List, Optional

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
from wifimap.utils.wireless import normalize_encryption, normalize_network_type, parse_float

logger = logging.getLogger(__name__)

FORMAT_NAME = "Kismet CSV"

DELIMITER = ";"

# Точные имена колонок Kismet
COLUMN_NAMES: Dict[str, tuple] = {
    "bssid": ("BSSID", "bssid"),
    "ssid": ("SSID", "ssid", "Name"),
    "latitude": ("BestLat", "bestlat", "Lat"),
    "longitude": ("BestLon", "bestlon", "Lon"),
    "signal": ("LastSignal", "lastsignal", "Signal", "MaxSignal"),
    "encryption": ("Encryption", "encryption", "Crypt"),
    "channel": ("Channel", "channel"),
    "timestamp": ("FirstTime", "firsttime", "Time"),
    "type": ("Type", "type", "NetworkType", "PhyType"),
}

REQUIRED_COLUMNS = ("bssid", "latitude", "longitude")


class KismetCsvParser(FileParser):
    """
    CSV-выгрузка Kismet: разделитель ";", колонки BSSID/BestLat/BestLon/LastSignal...
    Строгий заголовок, но битые строки просто пропускаются.
    """

    format_name = FORMAT_NAME

    def can_parse(self, filename: str, content: str) -> bool:
        if not filename.lower().endswith(".csv"):
            return False
        first_line = content.split("\n", 1)[0].lower()
        return "bssid" in first_line and ("lastsignal" in first_line or "bestlat" in first_line)

    def iter_chunks(
        self,
        source: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Iterator[List[ParsedNetwork]]:
        lines = [line for line in source.splitlines() if line.strip()]
        if not lines:
            raise ParseError("Empty CSV file", FORMAT_NAME)

        header = [col.strip() for col in lines[0].split(DELIMITER)]
        column_map = self._map_columns(header)
        missing = [col for col in REQUIRED_COLUMNS if col not in column_map]
        if missing:
            raise ParseError(
                f"Missing required columns in Kismet CSV: {', '.join(missing)}",
                FORMAT_NAME,
                1,
            )

        total_rows = len(lines) - 1
        parsed_count = 0
        skipped = 0

        for chunk_start in range(1, len(lines), self.chunk_size):
            chunk_end = min(chunk_start + self.chunk_size, len(lines))
            chunk: List[ParsedNetwork] = []
            for index in range(chunk_start, chunk_end):
                network = self._parse_row(lines[index], column_map, index + 1)
                if network is None:
                    skipped += 1
                    continue
                chunk.append(network)

            parsed_count += len(chunk)
            report(
                progress_callback,
                chunk_end - 1,
                total_rows,
                f"Parsed {chunk_end - 1} of {total_rows} networks",
            )
            if chunk:
                yield chunk

        report(progress_callback, 1, 1, f"Completed: {parsed_count} networks parsed")
        logger.info(f"Kismet CSV parse complete: {parsed_count} networks, {skipped} skipped")

    @staticmethod
    def _map_columns(header: List[str]) -> Dict[str, int]:
        mapping: Dict[str, int] = {}
        for index, column in enumerate(header):
            for key, names in COLUMN_NAMES.items():
                if column in names:
                    mapping[key] = index
                    break
        return mapping

    def _parse_row(self, line: str, column_map: Dict[str, int], line_number: int) -> Optional[ParsedNetwork]:
        values = [v.strip() for v in line.split(DELIMITER)]

        def value(key: str) -> Optional[str]:
            index = column_map.get(key)
            if index is None or index >= len(values):
                return None
            return values[index]

        bssid = value("bssid")
        lat_raw = value("latitude")
        lon_raw = value("longitude")
        if not bssid or not lat_raw or not lon_raw:
            logger.debug(f"[Kismet] row {line_number}: missing bssid or coordinates")
            return None

        latitude = parse_float(lat_raw)
        longitude = parse_float(lon_raw)
        if not validate_latitude(latitude) or not validate_longitude(longitude):
            logger.debug(f"[Kismet] row {line_number}: invalid coordinates {lat_raw}, {lon_raw}")
            return None

        network_type = normalize_network_type(value("type"))
        bssid = coerce_identifier(bssid, network_type)
        context = f" at line {line_number}"
        return ParsedNetwork(
            bssid=bssid,
            ssid=value("ssid") or "",
            latitude=latitude,
            longitude=longitude,
            signal_strength=coerce_signal(value("signal"), context),
            timestamp=coerce_timestamp(value("timestamp"), context),
            encryption=normalize_encryption(value("encryption")),
            channel=coerce_channel(value("channel"), context),
            type=network_type,
        )
