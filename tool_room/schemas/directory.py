from typing import Optional

from pydantic import BaseModel, ConfigDict


class WorkerUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    employeeId: Optional[str] = None


class ProjectUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
