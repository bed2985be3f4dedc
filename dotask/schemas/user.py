from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from dotask.core.dates import as_utc


class UserRecord(BaseModel):
    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_utc(cls, value):
        return as_utc(value)

    def scrubbed(self) -> "UserRecord":
        """Copie sans le hash du mot de passe"""
        return self.model_copy(update={"password_hash": ""})


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str
