from sqlalchemy import Column, Integer, Float, ForeignKey, BigInteger, Index
from sqlalchemy.orm import relationship
from wifimap.db.base import Base


class Observation(Base):
    __tablename__ = "observations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    network_id = Column(Integer, ForeignKey("networks.id", ondelete="CASCADE"), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    signal_strength = Column(Integer, nullable=True, comment="Уровень сигнала (dBm)")
    timestamp = Column(BigInteger, nullable=False)

    network = relationship("Network", back_populates="observations")

    __table_args__ = (
        Index("idx_observations_network", "network_id"),
        Index("idx_observations_timestamp", "timestamp"),
    )
