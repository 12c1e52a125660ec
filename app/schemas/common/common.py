# app/schemas/common.py
from pydantic import BaseModel
from typing import Any, Optional

class ErrorResponse(BaseModel):
    success: bool = False
    data: Optional[Any] = None
    error: str

class SuccessResponse(BaseModel):
    success: bool = True

class UpdatedCountResponse(SuccessResponse):
    updated_count: int

class DeletedCountResponse(SuccessResponse):
    deleted_count: int
