from fastapi import APIRouter, HTTPException, Query, status
from dishka.integrations.fastapi import FromDishka, inject

from windstation.api.schemas import (
    BucketOut,
    HistoryResponse,
    LatestReadingOut,
    LatestResponse,
    ReadingOut,
    RoseSectorOut,
    StatsResponse,
    WindowStatsOut,
    WindRoseResponse,
)
from windstation.domain.errors import InvalidQueryError, NotFoundError
from windstation.repositories.interfaces import MAX_RANGE_ROWS
from windstation.services.readings import ReadingService

router = APIRouter(tags=["readings"])


def _client_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/latest", response_model=LatestResponse)
@inject
async def latest(
    readings: FromDishka[ReadingService],
    station_id: int | None = Query(None, ge=1),
):
    items = await readings.latest(station_id)
    return LatestResponse(items=[LatestReadingOut.model_validate(item, from_attributes=True) for item in items])


@router.get("/history", response_model=HistoryResponse)
@inject
async def history(
    readings: FromDishka[ReadingService],
    station_id: int = Query(..., ge=1),
    range_token: str = Query("6h", alias="range"),
    bucket_minutes: int | None = Query(None, ge=1),
    limit: int = Query(50_000, ge=1, le=MAX_RANGE_ROWS),
):
    try:
        result = await readings.history(
            station_id=station_id,
            range_token=range_token,
            bucket_minutes=bucket_minutes,
            limit=limit,
        )
    except (InvalidQueryError, NotFoundError) as exc:
        raise _client_error(exc) from exc
    if bucket_minutes:
        items = [BucketOut.model_validate(item, from_attributes=True) for item in result.items]
    else:
        items = [ReadingOut.model_validate(item, from_attributes=True) for item in result.items]
    return HistoryResponse(
        station_id=result.station_id,
        range=result.range,
        bucket_minutes=result.bucket_minutes,
        start=result.start,
        end=result.end,
        items=items,
    )


@router.get("/stats", response_model=StatsResponse)
@inject
async def stats(
    readings: FromDishka[ReadingService],
    station_id: int = Query(..., ge=1),
    windows: str = Query("1m,5m,15m,24h"),
):
    try:
        result = await readings.stats(station_id=station_id, windows=windows)
    except (InvalidQueryError, NotFoundError) as exc:
        raise _client_error(exc) from exc
    return StatsResponse(
        station_id=result.station_id,
        latest_ts=result.latest_ts,
        stats={token: WindowStatsOut.model_validate(item, from_attributes=True) for token, item in result.stats.items()},
    )


@router.get("/wind-rose", response_model=WindRoseResponse)
@inject
async def wind_rose(
    readings: FromDishka[ReadingService],
    station_id: int = Query(..., ge=1),
    range_token: str = Query("24h", alias="range"),
    bins: int = Query(16, ge=4, le=36),
):
    try:
        result = await readings.wind_rose(station_id=station_id, range_token=range_token, bins=bins)
    except (InvalidQueryError, NotFoundError) as exc:
        raise _client_error(exc) from exc
    return WindRoseResponse(
        station_id=result.station_id,
        range=result.range,
        bins=result.bins,
        start=result.start,
        end=result.end,
        items=[RoseSectorOut.model_validate(item, from_attributes=True) for item in result.items],
    )
