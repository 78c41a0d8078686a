from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SaveTokenRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = None
    user_type: Literal["user", "admin"] = Field(default="user", alias="userType")
    user_data: dict[str, Any] = Field(default_factory=dict, alias="userData")


class AdminNotificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    message: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)
    user_type: str = Field(default="admin", alias="userType")


class BookingNotificationRequest(BaseModel):
    booking: Optional[dict[str, Any]] = None
    user: Optional[dict[str, Any]] = None
