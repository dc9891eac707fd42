# app/models/domain/common.py
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel


class SortOrder(str, Enum):
    """Common sort order options."""
    ASC = "asc"
    DESC = "desc"


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    success: bool = True


class FailureNote(BaseModel):
    """One garment-level bookkeeping step that did not complete."""
    step: str
    garment_id: Optional[str] = None
    outfit_id: Optional[str] = None
    reason: str = ""

    @classmethod
    def from_error(cls, error: Any) -> "FailureNote":
        return cls(**error.to_dict())


class ErrorResponse(BaseModel):
    error: str
    details: Optional[List[Dict[str, Any]]] = None
