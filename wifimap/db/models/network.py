from sqlalchemy import Column, Integer, String, Float, BigInteger, Index
from sqlalchemy.orm import relationship
from wifimap.db.base import Base


class Network(Base):
    __tablename__ = "networks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bssid = Column(String, unique=True, nullable=False, comment="MAC-адрес или идентификатор LTE-соты")
    ssid = Column(String, nullable=True)
    encryption = Column(String, nullable=True)
    channel = Column(Integer, nullable=True)
    manufacturer = Column(String, nullable=True)
    # Время в миллисекундах Unix
    first_seen = Column(BigInteger, nullable=False)
    last_seen = Column(BigInteger, nullable=False)
    observation_count = Column(Integer, default=1, server_default="1")
    best_lat = Column(Float, nullable=True)
    best_lon = Column(Float, nullable=True)
    best_signal = Column(Integer, nullable=True)
    type = Column(String, default="WIFI", server_default="WIFI")

    observations = relationship(
        "Observation",
        back_populates="network",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_networks_bssid", "bssid"),
        Index("idx_networks_ssid", "ssid"),
        Index("idx_networks_location", "best_lat", "best_lon"),
        Index("idx_networks_type", "type"),
    )
