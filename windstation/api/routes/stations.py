from fastapi import APIRouter
from dishka.integrations.fastapi import FromDishka, inject

from windstation.api.schemas import StationOut, StationsResponse
from windstation.services.stations import StationService

router = APIRouter(prefix="/stations", tags=["stations"])


@router.get("", response_model=StationsResponse)
@inject
async def list_stations(stations: FromDishka[StationService]):
    items = await stations.list()
    return StationsResponse(stations=[StationOut.model_validate(item, from_attributes=True) for item in items])
