from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_station_ids(raw: str) -> list[int]:
    ids: list[int] = []
    for part in str(raw or "").split(","):
        token = part.strip()
        if not token:
            continue
        try:
            value = int(token)
        except ValueError:
            continue
        if value > 0 and value not in ids:
            ids.append(value)
    return ids


def parse_station_names(raw: str, station_ids: list[int]) -> dict[int, str]:
    names = {station_id: f"Station {station_id}" for station_id in station_ids}
    for part in str(raw or "").split(","):
        token = part.strip()
        divider = token.find(":")
        if divider <= 0:
            continue
        name = token[divider + 1 :].strip()
        try:
            station_id = int(token[:divider].strip())
        except ValueError:
            continue
        if name:
            names[station_id] = name
    return names


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./data/wind.sqlite3"
    source_api_url: str = "https://viento.saboresgaleazzi.com/api_viento_ultimos.php"
    source_timeout: float = Field(default=20.0, gt=0)
    source_user_agent: str = "windstation/0.1"
    station_ids: str = "1,2"
    station_names: str = "1:Chipilo,2:San Bernardino"
    collect_interval_seconds: float = Field(default=5.0, ge=1)
    backfill_limit: int = Field(default=1000, ge=10)
    stale_after_seconds: int = Field(default=20, ge=5)
    cors_origins: str = "*"
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8000, ge=1, le=65535)
    collector_enabled: bool = True
    create_schema: bool = True
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="WIND_", env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def _check_stations(self) -> "Settings":
        if not parse_station_ids(self.station_ids):
            raise ValueError("station_ids must include at least one positive station id")
        return self

    @property
    def station_id_list(self) -> list[int]:
        return parse_station_ids(self.station_ids)

    @property
    def station_name_map(self) -> dict[int, str]:
        return parse_station_names(self.station_names, self.station_id_list)

    @property
    def cors_origin_list(self) -> list[str]:
        return [value.strip() for value in self.cors_origins.split(",") if value.strip()]
