from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# Request fields stay untyped so a wrong type reaches OtpManager and gets
# the same 400 answer as a missing value.
class OtpRequest(BaseModel):
    email: Any = None


class OtpVerifyRequest(BaseModel):
    email: Any = None
    otp: Any = None


class OtpResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    expires_in: str = Field(serialization_alias="expiresIn")
    otp: Optional[str] = None


class OtpVerifyResponse(BaseModel):
    success: bool = True
    message: str


class CustomTokenRequest(BaseModel):
    uid: Optional[str] = None
    email: Optional[str] = None


class CustomTokenResponse(BaseModel):
    success: bool = True
    token: str
