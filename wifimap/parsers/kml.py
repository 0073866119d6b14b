import logging
import re
import xml.etree.ElementTree as ET
from typing import Dict, Iterator, List, Optional

from wifimap.exceptions import ParseError, ValidationError
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

FORMAT_NAME = "KML"

_DESCRIPTION_LINE = re.compile(r"^([^:]+):\s*(.+)$")
_HTML_BREAK = re.compile(r"<br\s*/?>|</p>|</div>|</tr>", re.IGNORECASE)
_HTML_TAG = re.compile(r"<[^>]+>")

BSSID_KEYS = ("bssid", "mac", "network id", "netid")
SSID_KEYS = ("ssid", "name")
SIGNAL_KEYS = ("signal", "rssi", "level")
ENCRYPTION_KEYS = ("encryption", "authmode", "capabilities")
TIMESTAMP_KEYS = ("timestamp", "time", "when")
TYPE_KEYS = ("type", "networktype")


def _local(tag) -> str:
    # "{http://www.opengis.net/kml/2.2}Placemark" -> "Placemark"
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _find(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element.iter():
        if child is not element and _local(child.tag) == name:
            return child
    return None


def _findall(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element.iter() if child is not element and _local(child.tag) == name]


def _first(data: Dict[str, str], keys) -> Optional[str]:
    for key in keys:
        if data.get(key):
            return data[key]
    return None


class KmlParser(FileParser):
    """
    KML (Google Earth): по одному Placemark на сеть. Координаты в порядке
    lon,lat; атрибуты берутся из ExtendedData и из строк "ключ: значение"
    в description.
    """

    format_name = FORMAT_NAME

    def can_parse(self, filename: str, content: str) -> bool:
        if not filename.lower().endswith(".kml"):
            return False
        return "<kml" in content and "</kml>" in content

    def iter_chunks(
        self,
        source: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Iterator[List[ParsedNetwork]]:
        try:
            root = ET.fromstring(source)
        except ET.ParseError as e:
            raise ParseError(f"Invalid KML XML format: {e}", FORMAT_NAME)

        placemarks = [el for el in root.iter() if _local(el.tag) == "Placemark"]
        total = len(placemarks)
        parsed_count = 0

        for chunk_start in range(0, total, self.chunk_size):
            chunk_end = min(chunk_start + self.chunk_size, total)
            chunk: List[ParsedNetwork] = []
            for index in range(chunk_start, chunk_end):
                try:
                    network = self._parse_placemark(placemarks[index])
                except (ValueError, ValidationError, ParseError) as e:
                    logger.warning(f"Skipping invalid placemark {index}: {e}")
                    continue
                if network is not None:
                    chunk.append(network)

            parsed_count += len(chunk)
            report(progress_callback, chunk_end, total, f"Parsed {chunk_end} of {total} networks")
            if chunk:
                yield chunk

        report(progress_callback, 1, 1, f"Completed: {parsed_count} networks parsed")
        logger.info(f"KML parse complete: {parsed_count} of {total} placemarks")

    def _parse_placemark(self, placemark: ET.Element) -> Optional[ParsedNetwork]:
        coordinates_el = _find(placemark, "coordinates")
        if coordinates_el is None or not (coordinates_el.text or "").strip():
            return None

        # LineString/Polygon: берём первую точку
        first_tuple = coordinates_el.text.strip().split()[0]
        parts = first_tuple.split(",")
        if len(parts) < 2:
            return None
        longitude = parse_float(parts[0])
        latitude = parse_float(parts[1])
        if not validate_latitude(latitude) or not validate_longitude(longitude):
            return None

        data = self._extended_data(placemark)

        bssid = _first(data, BSSID_KEYS)
        if not bssid:
            return None
        network_type = normalize_network_type(_first(data, TYPE_KEYS))
        bssid = coerce_identifier(bssid, network_type)

        name_el = _find(placemark, "name")
        ssid = _first(data, SSID_KEYS) or ((name_el.text or "").strip() if name_el is not None else "")

        timestamp_raw = _first(data, TIMESTAMP_KEYS)
        if timestamp_raw is None:
            stamp_el = _find(placemark, "TimeStamp")
            when_el = _find(stamp_el, "when") if stamp_el is not None else None
            timestamp_raw = when_el.text if when_el is not None else None

        channel = coerce_channel(data.get("channel"))
        if channel is None and data.get("frequency"):
            channel = coerce_channel(frequency_to_channel(parse_float(data["frequency"])) or None)

        return ParsedNetwork(
            bssid=bssid,
            ssid=ssid,
            latitude=latitude,
            longitude=longitude,
            signal_strength=coerce_signal(_first(data, SIGNAL_KEYS)),
            timestamp=coerce_timestamp(timestamp_raw),
            encryption=normalize_encryption(_first(data, ENCRYPTION_KEYS) or ""),
            channel=channel,
            type=network_type,
        )

    @staticmethod
    def _extended_data(placemark: ET.Element) -> Dict[str, str]:
        data: Dict[str, str] = {}

        extended = _find(placemark, "ExtendedData")
        if extended is not None:
            for data_el in _findall(extended, "Data"):
                name = data_el.get("name")
                value_el = _find(data_el, "value")
                value = value_el.text if value_el is not None else None
                if name and value and value.strip():
                    data[name.strip().lower()] = value.strip()

            # SimpleData встречается в KML со схемой (SchemaData)
            for simple_el in _findall(extended, "SimpleData"):
                name = simple_el.get("name")
                value = simple_el.text
                if name and value and value.strip():
                    data[name.strip().lower()] = value.strip()

        description_el = _find(placemark, "description")
        if description_el is not None and description_el.text:
            text = _HTML_TAG.sub("", _HTML_BREAK.sub("\n", description_el.text))
            for line in re.split(r"[\r\n]+", text):
                match = _DESCRIPTION_LINE.match(line.strip())
                if not match:
                    continue
                key = match.group(1).strip().lower()
                # ExtendedData приоритетнее описания
                if key not in data:
                    data[key] = match.group(2).strip()

        return data
