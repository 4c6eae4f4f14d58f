# coding: utf-8

"""
    Error payload returned by the repository API
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, ClassVar, Dict, Optional


class Error(BaseModel):
    error: str = Field(description="Machine readable error code.")
    message: str = Field(description="Human readable message.")
    request_id: Optional[str] = Field(default=None, alias="requestId")
    details: Optional[Dict[str, Any]] = None
    __properties: ClassVar[list[str]] = ["error", "message", "requestId", "details"]

    model_config = {
        "populate_by_name": True,
        "validate_assignment": True,
        "protected_namespaces": (),
    }

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
