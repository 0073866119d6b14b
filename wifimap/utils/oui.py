import re

UNKNOWN_MANUFACTURER = "Unknown"

_SEPARATORS = re.compile(r"[:\-.]")

# Сокращённая таблица OUI (первые 24 бита MAC -> производитель).
# Загружается один раз при импорте модуля.
OUI_DATABASE: dict[str, str] = {
    "F0EE7A": "Apple, Inc.",
    "58AD12": "Apple, Inc.",
    "60FDA6": "Apple, Inc.",
    "80A997": "Apple, Inc.",
    "641B2F": "Samsung Electronics Co.,Ltd",
    "9C73B1": "Samsung Electronics Co.,Ltd",
    "388A06": "Samsung Electronics Co.,Ltd",
    "240935": "Samsung Electronics Co.,Ltd",
    "E00630": "HUAWEI TECHNOLOGIES CO.,LTD",
    "D8DAF1": "HUAWEI TECHNOLOGIES CO.,LTD",
    "54443B": "HUAWEI TECHNOLOGIES CO.,LTD",
    "5C7075": "HUAWEI TECHNOLOGIES CO.,LTD",
    "E80AB9": "Cisco Systems, Inc",
    "481BA4": "Cisco Systems, Inc",
    "908855": "Cisco Systems, Inc",
    "687161": "Cisco Systems, Inc",
    "E4C767": "Intel Corporate",
    "A002A5": "Intel Corporate",
    "102E00": "Intel Corporate",
    "203A43": "Intel Corporate",
    "68DDB7": "TP-LINK TECHNOLOGIES CO.,LTD.",
    "14D864": "TP-LINK TECHNOLOGIES CO.,LTD.",
    "AC84C6": "TP-LINK TECHNOLOGIES CO.,LTD.",
    "6CB158": "TP-LINK TECHNOLOGIES CO.,LTD.",
    "CCEB5E": "Xiaomi Communications Co Ltd",
    "B8EA98": "Xiaomi Communications Co Ltd",
    "F8AB82": "Xiaomi Communications Co Ltd",
    "EC30B3": "Xiaomi Communications Co Ltd",
    "8CD0B2": "Beijing Xiaomi Mobile Software Co., Ltd",
    "C8BF4C": "Beijing Xiaomi Mobile Software Co., Ltd",
    "B850D8": "Beijing Xiaomi Mobile Software Co., Ltd",
    "60706C": "Google, Inc.",
    "C82ADD": "Google, Inc.",
    "242934": "Google, Inc.",
    "842859": "Amazon Technologies Inc.",
    "2873F6": "Amazon Technologies Inc.",
    "E0CB1D": "Amazon Technologies Inc.",
    "FCD749": "Amazon Technologies Inc.",
    "70F8AE": "Microsoft Corporation",
    "201642": "Microsoft Corporation",
    "C461C7": "Microsoft Corporation",
    "D8E2DF": "Microsoft Corporation",
    "D0431E": "Dell Inc.",
    "00C04F": "Dell Inc.",
    "00B0D0": "Dell Inc.",
    "0019B9": "Dell Inc.",
    "10061C": "Espressif Inc.",
    "D48AFC": "Espressif Inc.",
    "E465B8": "Espressif Inc.",
    "48E729": "Espressif Inc.",
    "D83ADD": "Raspberry Pi Trading Ltd",
    "40F3B0": "Texas Instruments",
    "149CEF": "Texas Instruments",
    "80C41B": "Texas Instruments",
    "3468B5": "Texas Instruments",
    "F09FC2": "Ubiquiti Inc",
    "802AA8": "Ubiquiti Inc",
    "788A20": "Ubiquiti Inc",
    "7483C2": "Ubiquiti Inc",
    "E4F27C": "Juniper Networks",
    "60C78D": "Juniper Networks",
    "84B59C": "Juniper Networks",
    "5C4527": "Juniper Networks",
    "F01B24": "zte corporation",
    "98EE8C": "zte corporation",
    "90C710": "zte corporation",
    "DC5193": "zte corporation",
    "286FB9": "Nokia Shanghai Bell Co., Ltd.",
    "500238": "Nokia Shanghai Bell Co., Ltd.",
    "90ECE3": "Nokia",
    "B851A9": "Nokia",
    "5C76D5": "Nokia",
    "8C7A00": "Nokia",
    "E44097": "GUANGDONG OPPO MOBILE TELECOMMUNICATIONS CORP.,LTD",
    "DCB4CA": "GUANGDONG OPPO MOBILE TELECOMMUNICATIONS CORP.,LTD",
    "D4BAFA": "GUANGDONG OPPO MOBILE TELECOMMUNICATIONS CORP.,LTD",
    "74D558": "GUANGDONG OPPO MOBILE TELECOMMUNICATIONS CORP.,LTD",
    "0CB4CA": "Honor Device Co., Ltd.",
    "2CB301": "Honor Device Co., Ltd.",
    "40D4F6": "Honor Device Co., Ltd.",
    "08E021": "Honor Device Co., Ltd.",
    "FC59C0": "Arista Networks",
    "C4CA2B": "Arista Networks",
    "9CE330": "Cisco Meraki",
    "B4DF91": "Cisco Meraki",
    "B8AB61": "Cisco Meraki",
    "08F1B3": "Cisco Meraki",
    "BC2228": "D-Link International",
}


def _oui_prefix(bssid: str) -> str | None:
    if not bssid:
        return None
    cleaned = _SEPARATORS.sub("", str(bssid)).upper()
    if len(cleaned) < 6:
        return None
    return cleaned[:6]


def get_manufacturer(bssid: str) -> str:
    """
    Производитель по префиксу BSSID; "Unknown", если префикс не найден.
    """
    prefix = _oui_prefix(bssid)
    if prefix is None:
        return UNKNOWN_MANUFACTURER
    return OUI_DATABASE.get(prefix, UNKNOWN_MANUFACTURER)


def is_known_manufacturer(bssid: str) -> bool:
    prefix = _oui_prefix(bssid)
    return prefix is not None and prefix in OUI_DATABASE


def database_size() -> int:
    return len(OUI_DATABASE)
