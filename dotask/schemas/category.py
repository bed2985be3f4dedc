from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from dotask.core.dates import as_utc


class CategoryRecord(BaseModel):
    id: str
    user_id: str
    name: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_utc(cls, value):
        return as_utc(value)
