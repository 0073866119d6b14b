from typing import List, Optional

from pydantic import BaseModel, Field


class ImportRequest(BaseModel):
    file_path: str = Field(..., min_length=1, example="/home/user/WigleWifi_20240101.csv")


class FormatDetectionResponse(BaseModel):
    file_path: str
    format_name: Optional[str] = Field(None, description="Имя формата или null, если не распознан")


class AvailableFormatsResponse(BaseModel):
    formats: List[str]
