import json
from datetime import date
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator


ToolStatus = Literal["Available", "In Use", "Damaged", "Lost", "Cal. Due"]


class ToolUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    category: Optional[str] = None
    status: Optional[ToolStatus] = None
    isCalibrable: Optional[bool] = None
    calibrationDue: Optional[date] = None
    certificateNumber: Optional[str] = None
    quantity: Optional[int] = None
    image: Optional[str] = None
    imageUrl: Optional[str] = None
    customAttributes: Optional[Dict[str, str]] = None

    @field_validator("customAttributes", mode="before")
    @classmethod
    def _parse_custom_attributes(cls, value):
        # The map may also arrive as JSON text.
        if isinstance(value, str):
            value = json.loads(value or "{}")
        if isinstance(value, dict):
            return {str(key): "" if item is None else str(item) for key, item in value.items()}
        return value

    @field_validator("calibrationDue", "certificateNumber", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def changed_fields(self) -> dict:
        fields = self.model_dump(exclude_unset=True)
        image_url = fields.pop("imageUrl", None)
        if "image" not in fields and "imageUrl" in self.model_fields_set:
            fields["image"] = image_url or None
        return fields


class ToolCreate(ToolUpsert):
    name: str
    category: str
