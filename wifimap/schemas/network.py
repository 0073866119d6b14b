from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class EncryptionType(str, Enum):
    OPEN = "Open"
    WEP = "WEP"
    WPA = "WPA"
    WPA2 = "WPA2"
    WPA3 = "WPA3"
    UNKNOWN = "Unknown"


class NetworkType(str, Enum):
    WIFI = "WIFI"
    BLE = "BLE"
    LTE = "LTE"


def from_epoch_ms(value) -> datetime:
    """
    В БД время хранится в миллисекундах Unix; наружу отдаём aware-datetime (UTC).
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


class NetworkInput(BaseModel):
    bssid: str = Field(..., description="MAC-адрес (BSSID) или идентификатор LTE-соты")
    ssid: str = Field("", description="SSID сети (пустой для скрытых)")
    encryption: str = Field(EncryptionType.UNKNOWN.value, description="Тип шифрования")
    channel: Optional[int] = Field(None, description="Канал")
    manufacturer: Optional[str] = Field(None, description="Производитель (по OUI, если не задан)")
    type: Optional[str] = Field(None, description="WIFI / BLE / LTE")


class ObservationInput(BaseModel):
    # Диапазоны здесь намеренно не ограничены: проверку делает репозиторий,
    # чтобы ошибка всегда была ValidationError с полем и значением
    latitude: float = Field(..., example=55.7512)
    longitude: float = Field(..., example=37.6175)
    signal_strength: int = Field(-70, description="Уровень сигнала, dBm", example=-45)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ParsedNetwork(BaseModel):
    """
    Общая форма записи, которую обязан выдавать каждый парсер.
    """
    bssid: str
    ssid: str = ""
    latitude: float
    longitude: float
    signal_strength: int = -70
    timestamp: datetime
    encryption: str = EncryptionType.UNKNOWN.value
    channel: Optional[int] = None
    type: Optional[str] = None

    def to_network_input(self) -> NetworkInput:
        return NetworkInput(
            bssid=self.bssid,
            ssid=self.ssid,
            encryption=self.encryption,
            channel=self.channel,
            type=self.type,
        )

    def to_observation_input(self) -> ObservationInput:
        return ObservationInput(
            latitude=self.latitude,
            longitude=self.longitude,
            signal_strength=self.signal_strength,
            timestamp=self.timestamp,
        )


class NetworkOut(BaseModel):
    id: int = Field(..., description="Первичный ключ сети")
    bssid: str
    ssid: str = ""
    encryption: str = EncryptionType.UNKNOWN.value
    channel: Optional[int] = None
    manufacturer: str = "Unknown"
    first_seen: datetime
    last_seen: datetime
    observation_count: int
    best_lat: Optional[float] = None
    best_lon: Optional[float] = None
    best_signal: Optional[int] = None
    type: str = NetworkType.WIFI.value

    model_config = {"from_attributes": True}

    @field_validator("first_seen", "last_seen", mode="before")
    @classmethod
    def _epoch_to_datetime(cls, v):
        return from_epoch_ms(v)

    @field_validator("ssid", mode="before")
    @classmethod
    def _null_ssid(cls, v):
        return v or ""

    @field_validator("manufacturer", mode="before")
    @classmethod
    def _null_manufacturer(cls, v):
        return v or "Unknown"

    @field_validator("encryption", mode="before")
    @classmethod
    def _null_encryption(cls, v):
        return v or EncryptionType.UNKNOWN.value

    @field_validator("type", mode="before")
    @classmethod
    def _null_type(cls, v):
        # Строки, созданные до появления колонки type
        return v or NetworkType.WIFI.value


class ObservationOut(BaseModel):
    id: int
    network_id: int
    latitude: float
    longitude: float
    signal_strength: Optional[int] = None
    timestamp: datetime

    model_config = {"from_attributes": True}

    @field_validator("timestamp", mode="before")
    @classmethod
    def _epoch_to_datetime(cls, v):
        return from_epoch_ms(v)


class NetworkDetails(NetworkOut):
    observations: List[ObservationOut] = Field(default_factory=list)


class GeoBounds(BaseModel):
    north: float
    south: float
    east: float
    west: float


class DateRange(BaseModel):
    start: datetime
    end: datetime


class NetworkFilter(BaseModel):
    ssid: Optional[str] = None
    bssid: Optional[str] = None
    encryption: Optional[List[str]] = None
    bounds: Optional[GeoBounds] = None
    date_range: Optional[DateRange] = None
    min_signal: Optional[int] = None
    types: Optional[List[str]] = None

    def is_viewport_only(self) -> bool:
        """
        True, если задан только bounding box: такие запросы идут через кэш.
        """
        return (
            self.bounds is not None
            and not self.ssid
            and not self.bssid
            and not self.encryption
            and self.date_range is None
            and self.min_signal is None
            and not self.types
        )


class NetworkUpsert(BaseModel):
    network: NetworkInput
    observation: ObservationInput


class ImportResult(BaseModel):
    networks_imported: int = 0
    networks_updated: int = 0
    observations_added: int = 0
    errors: List[str] = Field(default_factory=list)

    def merge(self, other: "ImportResult") -> None:
        self.networks_imported += other.networks_imported
        self.networks_updated += other.networks_updated
        self.observations_added += other.observations_added
        self.errors.extend(other.errors)
