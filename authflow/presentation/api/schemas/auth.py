from typing import Optional

from pydantic import BaseModel

# Fields are optional so that missing values reach the account service and
# come back as a 400 with a stable message instead of a 422.


class SignupPayload(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginPayload(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class VerifyEmailPayload(BaseModel):
    code: Optional[str] = None


class EmailPayload(BaseModel):
    email: Optional[str] = None


class ResetPasswordPayload(BaseModel):
    password: Optional[str] = None
