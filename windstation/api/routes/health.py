from fastapi import APIRouter
from dishka.integrations.fastapi import FromDishka, inject

from windstation.api.schemas import CollectorOut, HealthResponse, ServiceInfoResponse
from windstation.core.config import Settings
from windstation.domain.collector import CollectorRunState
from windstation.services.readings import ReadingService

router = APIRouter(tags=["health"])


@router.get("/", response_model=ServiceInfoResponse)
@inject
async def root(settings: FromDishka[Settings]):
    return ServiceInfoResponse(service="windstation-api", status="ok", stations=settings.station_id_list)


@router.get("/health", response_model=HealthResponse)
@inject
async def health(
    readings: FromDishka[ReadingService],
    collector: FromDishka[CollectorRunState],
):
    rows = await readings.count()
    snapshot = collector.snapshot()
    return HealthResponse(
        status="ok",
        rows=rows,
        collector=CollectorOut.model_validate(snapshot, from_attributes=True),
    )
