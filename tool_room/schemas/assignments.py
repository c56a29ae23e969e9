from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckoutToolDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    toolId: int
    quantity: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    checkoutDate: datetime
    workerId: int
    projectId: int
    tools: List[CheckoutToolDto] = Field(min_length=1)


class CheckinRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    checkinNotes: Optional[str] = None
    toolConditions: Dict[str, Literal["good", "damaged", "lost"]] = {}
