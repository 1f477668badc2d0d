# docfill/schema.py
from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Literal, Optional

OutputFormat = Literal["docx", "pdf"]


class FillRequest(BaseModel):
    # name -> replacement text; names are case- and whitespace-sensitive
    values: Dict[str, str] = Field(default_factory=dict)
    output_format: OutputFormat = "docx"

    @field_validator("values", mode="before")
    @classmethod
    def _stringify(cls, v):
        # form/JSON input may carry numbers or booleans; None means "leave empty"
        if isinstance(v, dict):
            return {str(k): ("" if val is None else str(val)) for k, val in v.items()}
        return v


class Outcome(BaseModel):
    success: bool
    error: Optional[str] = None
    placeholders: List[str] = Field(default_factory=list)
    data: Optional[bytes] = None
    path: Optional[str] = None
    state: Optional[str] = None

    @classmethod
    def ok(cls, **kw) -> "Outcome":
        return cls(success=True, **kw)

    @classmethod
    def failed(cls, exc: Exception, **kw) -> "Outcome":
        return cls(success=False, error=str(exc), **kw)
