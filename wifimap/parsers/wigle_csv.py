import csv
import logging
from typing import Dict, Iterator, List, Optional

from wifimap.exceptions import ParseError, ValidationError
from wifimap.parsers.base import (
    FileParser,
    ProgressCallback,
    coerce_channel,
    coerce_signal,
    coerce_timestamp,
    report,
)
from wifimap.schemas.network import NetworkType, ParsedNetwork
from wifimap.utils.validation import normalize_bssid, validate_coordinates
from wifimap.utils.wireless import normalize_encryption, normalize_network_type, parse_float

logger = logging.getLogger(__name__)

FORMAT_NAME = "WiGLE CSV"

# Варианты названий колонок (поиск подстроки без учёта регистра).
# Порядок ключей важен: "BSSID" должен попасть в bssid раньше, чем в ssid.
COLUMN_VARIANTS: Dict[str, tuple] = {
    "bssid": ("mac", "bssid"),
    "ssid": ("ssid",),
    "latitude": ("currentlatitude", "latitude", "lat"),
    "longitude": ("currentlongitude", "longitude", "lon", "long"),
    "signal": ("rssi", "signal"),
    "encryption": ("authmode", "encryption", "capabilities"),
    "channel": ("channel",),
    "timestamp": ("firstseen", "time", "timestamp", "date"),
    "type": ("type", "networktype"),
}

REQUIRED_COLUMNS = ("bssid", "ssid", "latitude", "longitude")

DETECTION_TOKENS = ("mac", "bssid", "ssid", "authmode", "encryption")


def map_columns(header: List[str]) -> Dict[str, int]:
    """
    Сопоставляет колонки заголовка ключам ParsedNetwork. Каждая колонка
    попадает в первый подходящий ключ; при повторе побеждает последняя.
    """
    mapping: Dict[str, int] = {}
    for index, column in enumerate(header):
        normalized = column.strip().lower()
        if not normalized:
            continue
        for key, variants in COLUMN_VARIANTS.items():
            if any(variant in normalized for variant in variants):
                mapping[key] = index
                break
    return mapping


class WigleCsvParser(FileParser):
    """
    Выгрузка WiGLE WiFi Wardriving: первая строка "WigleWifi-1.x,..."
    (метаданные приложения), затем заголовок и строки через запятую.
    """

    format_name = FORMAT_NAME

    def can_parse(self, filename: str, content: str) -> bool:
        if not filename.lower().endswith(".csv"):
            return False

        lines = content.split("\n", 2)
        first_line = lines[0].lower() if lines else ""
        second_line = lines[1].lower() if len(lines) > 1 else ""

        if "wiglewifi" in first_line:
            return True

        # Заголовок через ";" без запятых: это Kismet, а не WiGLE
        header_lines = [line for line in (first_line, second_line) if "," in line]
        header = " ".join(header_lines)
        return any(token in header for token in DETECTION_TOKENS)

    def iter_chunks(
        self,
        source: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Iterator[List[ParsedNetwork]]:
        lines = [line for line in source.splitlines() if line.strip()]
        if not lines:
            raise ParseError("Empty CSV file", FORMAT_NAME)

        header_index = 0
        if lines[0].strip().lower().startswith("wiglewifi-"):
            header_index = 1
            logger.info("Detected WiGLE metadata header, skipping to line 2")

        if header_index >= len(lines):
            raise ParseError("No header line found in CSV file", FORMAT_NAME)

        header = next(csv.reader([lines[header_index]]))
        column_map = map_columns(header)
        logger.debug(f"[WiGLE] column mapping: {column_map}")

        missing = [col for col in REQUIRED_COLUMNS if col not in column_map]
        if missing:
            raise ParseError(
                f"Missing required columns in WiGLE CSV: {', '.join(missing)}",
                FORMAT_NAME,
                header_index + 1,
            )

        data_start = header_index + 1
        total_rows = len(lines) - data_start
        parsed_count = 0
        error_count = 0

        for chunk_start in range(data_start, len(lines), self.chunk_size):
            chunk_end = min(chunk_start + self.chunk_size, len(lines))
            chunk: List[ParsedNetwork] = []

            for index in range(chunk_start, chunk_end):
                line_number = index + 1
                try:
                    values = next(csv.reader([lines[index]]))
                    network = self._parse_row(values, column_map, line_number)
                except (ParseError, ValidationError, csv.Error) as e:
                    error_count += 1
                    logger.warning(f"Skipping invalid row {line_number}: {e}")
                    # Больше половины строк битые: файл повреждён или не того формата
                    if error_count > total_rows / 2:
                        raise ParseError(
                            f"Too many parse errors ({error_count}/{line_number - data_start}). "
                            "File may be corrupted or in wrong format.",
                            FORMAT_NAME,
                            line_number,
                        )
                    continue
                if network is not None:
                    chunk.append(network)

            parsed_count += len(chunk)
            report(
                progress_callback,
                chunk_end - data_start,
                total_rows,
                f"Parsed {chunk_end - data_start} of {total_rows} networks",
            )
            if chunk:
                yield chunk

        report(progress_callback, 1, 1, f"Completed: {parsed_count} networks parsed")
        logger.info(f"WiGLE CSV parse complete: {parsed_count} networks, {error_count} errors")

    def _parse_row(self, values: List[str], column_map: Dict[str, int], line_number: int) -> Optional[ParsedNetwork]:
        def value(key: str) -> Optional[str]:
            index = column_map.get(key)
            if index is None or index >= len(values):
                return None
            return values[index].strip().strip('"').strip()

        bssid = value("bssid")
        lat_raw = value("latitude")
        lon_raw = value("longitude")
        if not bssid or not lat_raw or not lon_raw:
            return None

        network_type = normalize_network_type(value("type"))
        # Идентификаторы LTE-сот не похожи на MAC, оставляем как есть
        if network_type != NetworkType.LTE.value:
            try:
                bssid = normalize_bssid(bssid)
            except ValidationError:
                raise ParseError(f"Invalid BSSID format: {bssid}", FORMAT_NAME, line_number)

        latitude = parse_float(lat_raw)
        longitude = parse_float(lon_raw)
        try:
            validate_coordinates(latitude, longitude)
        except ValidationError:
            raise ParseError(f"Invalid coordinates: {lat_raw}, {lon_raw}", FORMAT_NAME, line_number)

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
