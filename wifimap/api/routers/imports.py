from fastapi import APIRouter, Depends, HTTPException, status

from wifimap.api.deps import get_import_service
from wifimap.exceptions import FileImportError, ParseError
from wifimap.schemas.imports import AvailableFormatsResponse, FormatDetectionResponse, ImportRequest
from wifimap.schemas.network import ImportResult
from wifimap.services.import_service import ImportService

router = APIRouter(prefix="/imports", tags=["imports"])


@router.post("", response_model=ImportResult)
async def import_file(
    request: ImportRequest,
    service: ImportService = Depends(get_import_service),
) -> ImportResult:
    """
    Импортирует файл вардрайвинга с локального диска сервера.
    Ошибки отдельных строк возвращаются в errors, а не прерывают импорт.
    """
    try:
        return await service.import_file(request.file_path)
    except ParseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except FileImportError as e:
        detail = {"message": str(e)}
        if e.partial_result is not None:
            detail["partial_result"] = e.partial_result.model_dump()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


@router.post("/detect", response_model=FormatDetectionResponse)
async def detect_format(
    request: ImportRequest,
    service: ImportService = Depends(get_import_service),
) -> FormatDetectionResponse:
    try:
        format_name = service.detect_file_format(request.file_path)
    except FileImportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return FormatDetectionResponse(file_path=request.file_path, format_name=format_name)


@router.get("/formats", response_model=AvailableFormatsResponse)
async def list_formats(service: ImportService = Depends(get_import_service)):
    return AvailableFormatsResponse(formats=service.available_parsers())
