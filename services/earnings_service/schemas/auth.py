"""Signup, login and password schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    referral_code: Optional[str] = Field(default=None, alias="referralCode")

    model_config = ConfigDict(populate_by_name=True)


class SignupUser(BaseModel):
    id: str
    email: str
    referral_code: str = Field(..., alias="referralCode")

    model_config = ConfigDict(populate_by_name=True)


class SignupResponse(BaseModel):
    token: str
    needs_payment: bool = Field(..., alias="needsPayment")
    user: SignupUser

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    token: str
    needs_payment: bool = Field(..., alias="needsPayment")

    model_config = ConfigDict(populate_by_name=True)


class UpdatePasswordRequest(BaseModel):
    new_password: str = Field(..., alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)
