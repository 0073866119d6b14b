from fastapi import APIRouter, Depends, HTTPException, Response, status

from wifimap.api.deps import get_repository
from wifimap.exceptions import StorageError
from wifimap.services.network_repository import NetworkRepository

router = APIRouter(prefix="/admin", tags=["admin"])


@router.delete("/networks", status_code=status.HTTP_204_NO_CONTENT)
async def clear_all_networks(repository: NetworkRepository = Depends(get_repository)):
    """
    Удаляет все сети и наблюдения.
    """
    try:
        await repository.clear_all_networks()
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/recalculate-positions", status_code=status.HTTP_202_ACCEPTED)
async def recalculate_positions(repository: NetworkRepository = Depends(get_repository)):
    """
    Массовый пересчёт позиций сетей (то же, что ночная задача планировщика).
    """
    try:
        updated = await repository.recalculate_all_positions()
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return {"detail": "Позиции пересчитаны", "updated": updated}
