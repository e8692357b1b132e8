"""Request models for chart API endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from chart_service.plugins.datatypes import DataColumn


class ValidateRequest(BaseModel):
    """Candidate configuration for a chart plugin."""

    configuration: Dict[str, Any] = Field(default_factory=dict, description="Chart configuration (nested or dotted keys)")
    columns: Optional[List[DataColumn]] = Field(
        None, description="Dataset columns; enables column-type warnings for data-mapping fields"
    )

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "configuration": {"xField": "region", "yField": "revenue", "legend.position": "top"},
                    "columns": [
                        {"name": "region", "declared_type": "varchar(64)"},
                        {"name": "revenue", "declared_type": "numeric(12,2)"},
                    ],
                }
            ]
        }


class ColumnsRequest(BaseModel):
    """Dataset columns, optionally filtered by a field role."""

    columns: List[DataColumn] = Field(..., description="Dataset columns with declared types")
    field_role: Optional[str] = Field(None, description="Field role such as x-axis, y-axis, size, color")

    @field_validator("field_role")
    @classmethod
    def field_role_blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v
