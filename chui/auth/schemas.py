from pydantic import BaseModel, SecretStr, field_validator
from typing import Optional


"""
auth/register
"""


class UserRegistrationModel(BaseModel):
    username: str
    password: SecretStr
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, email: Optional[str]) -> Optional[str]:
        # Anything that is not an address falls back to the username mailbox
        if email is None:
            return None
        email = email.strip().lower()
        return email if "@" in email else None

    @field_validator("password")
    @classmethod
    def validate_password(cls, password: SecretStr) -> SecretStr:
        if len(password.get_secret_value()) < 8:
            raise ValueError("Password must be at least 8 characters long.")
        return password


class UserRegistrationResponseModel(BaseModel):
    user_id: str
    email: str
    username: str
    access_token: Optional[str] = None


"""
auth/login
"""


class UserLoginModel(BaseModel):
    # email address or username
    login: str
    password: SecretStr


class UserLoginResponseModel(BaseModel):
    access_token: str
    expires_in: int
    user_id: str
    username: str


"""
auth/access
"""


class AccessTokenResponseModel(BaseModel):
    access_token: str
