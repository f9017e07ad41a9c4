from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class StationModel(Base):
    __tablename__ = "stations"

    station_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(Text)

    readings: Mapped[list[ReadingModel]] = relationship("ReadingModel", back_populates="station")


class ReadingModel(Base):
    __tablename__ = "readings"

    source_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    station_id: Mapped[int] = mapped_column(Integer, ForeignKey("stations.station_id"))
    speed_kmh: Mapped[float | None] = mapped_column(Float, nullable=True)
    direction_deg: Mapped[float | None] = mapped_column(Float, nullable=True)
    # naive UTC, as delivered by the source
    measured_at: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    inserted_at: Mapped[datetime] = mapped_column(DateTime(timezone=False))

    station: Mapped[StationModel] = relationship("StationModel", back_populates="readings")

    __table_args__ = (
        Index("ix_readings_station_measured_at", "station_id", "measured_at"),
        Index("ix_readings_measured_at", "measured_at"),
    )
