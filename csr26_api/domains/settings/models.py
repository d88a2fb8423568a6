from datetime import datetime
from typing import Optional

from prisma.models import Setting
from pydantic import BaseModel, Field


class SettingResponse(BaseModel):
    key: str
    value: str
    description: Optional[str] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_prisma(cls, setting: Setting) -> "SettingResponse":
        return cls(
            key=setting.key,
            value=setting.value,
            description=setting.description,
            updatedAt=setting.updatedAt,
        )


class SettingUpdateRequest(BaseModel):
    value: str = Field(..., description="New value, stored as a string")
    description: Optional[str] = None
