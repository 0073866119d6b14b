from wifimap.parsers import PARSER_CLASSES, available_formats, detect_parser
from wifimap.parsers.sqlite import SQLITE_MAGIC

WIGLE = "WigleWifi-1.4,appRelease=2.53\nMAC,SSID,AuthMode,FirstSeen,Channel,RSSI,CurrentLatitude,CurrentLongitude,Type\n"
KISMET = "BSSID;SSID;Channel;Encryption;LastSignal;BestLat;BestLon\n"
KML = '<?xml version="1.0"?><kml xmlns="http://www.opengis.net/kml/2.2"><Document/></kml>'


def test_priority_order_is_fixed():
    assert available_formats() == ["WiGLE CSV", "Kismet CSV", "KML", "SQLite Database"]
    assert len(PARSER_CLASSES) == 4


def test_detects_each_format():
    assert detect_parser("WigleWifi_20240115.csv", WIGLE).get_format_name() == "WiGLE CSV"
    assert detect_parser("kismet.csv", KISMET).get_format_name() == "Kismet CSV"
    assert detect_parser("track.kml", KML).get_format_name() == "KML"
    assert detect_parser("backup.sqlite", SQLITE_MAGIC + "\x00").get_format_name() == "SQLite Database"


def test_unknown_format():
    assert detect_parser("notes.txt", "hello") is None
    assert detect_parser("data.csv", "a;b;c\n1;2;3\n") is None
