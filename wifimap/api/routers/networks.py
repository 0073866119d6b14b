from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wifimap.api.deps import get_repository
from wifimap.core.config import settings
from wifimap.exceptions import StorageError, ValidationError
from wifimap.schemas.network import (
    DateRange,
    GeoBounds,
    NetworkDetails,
    NetworkFilter,
    NetworkOut,
    NetworkUpsert,
    ObservationOut,
)
from wifimap.services.network_repository import NetworkRepository

router = APIRouter(prefix="/networks", tags=["networks"])


@router.get("", response_model=List[NetworkOut])
async def list_networks(
    ssid: Optional[str] = Query(None, description="Подстрока SSID (с учётом регистра)"),
    bssid: Optional[str] = Query(None, description="Подстрока BSSID"),
    encryption: Optional[List[str]] = Query(None),
    types: Optional[List[str]] = Query(None, description="WIFI / BLE / LTE"),
    north: Optional[float] = Query(None, ge=-90, le=90),
    south: Optional[float] = Query(None, ge=-90, le=90),
    east: Optional[float] = Query(None, ge=-180, le=180),
    west: Optional[float] = Query(None, ge=-180, le=180),
    start: Optional[datetime] = Query(None, description="Начало периода по last_seen"),
    end: Optional[datetime] = Query(None, description="Конец периода по last_seen"),
    min_signal: Optional[int] = Query(None, ge=-120, le=0),
    limit: int = Query(settings.DEFAULT_QUERY_LIMIT, ge=1, le=10000),
    offset: int = Query(0, ge=0),
    repository: NetworkRepository = Depends(get_repository),
):
    """
    Поиск сетей. Все заданные условия объединяются через AND.
    Запрос только по bounding box обслуживается из кэша вьюпорта.
    """
    box = (north, south, east, west)
    if any(v is not None for v in box) and not all(v is not None for v in box):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Bounding box requires north, south, east and west",
        )
    if (start is None) != (end is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Date range requires both start and end",
        )

    network_filter = NetworkFilter(
        ssid=ssid,
        bssid=bssid,
        encryption=encryption,
        types=types,
        bounds=GeoBounds(north=north, south=south, east=east, west=west) if north is not None else None,
        date_range=DateRange(start=start, end=end) if start is not None else None,
        min_signal=min_signal,
    )
    try:
        return await repository.find_networks(network_filter, limit=limit, offset=offset)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("", status_code=status.HTTP_201_CREATED)
async def upsert_network(
    payload: NetworkUpsert,
    repository: NetworkRepository = Depends(get_repository),
):
    try:
        network_id = await repository.upsert_network(payload.network, payload.observation)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "field": e.field},
        )
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return {"id": network_id}


async def _load_details(repository: NetworkRepository, bssid: str) -> NetworkDetails:
    try:
        details = await repository.get_network_details(bssid)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    if details is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Network with BSSID={bssid} not found",
        )
    return details


@router.get("/{bssid}", response_model=NetworkDetails)
async def get_network(
    bssid: str,
    repository: NetworkRepository = Depends(get_repository),
) -> NetworkDetails:
    """
    Сеть и все её наблюдения. BSSID принимается в любом написании.
    """
    return await _load_details(repository, bssid)


@router.get("/{bssid}/observations", response_model=List[ObservationOut])
async def get_network_observations(
    bssid: str,
    repository: NetworkRepository = Depends(get_repository),
):
    details = await _load_details(repository, bssid)
    return details.observations
