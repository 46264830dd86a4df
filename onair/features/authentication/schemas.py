from typing import Optional

from pydantic import BaseModel, Field

from onair.features.users.schemas import UserOut

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# ---------- Inputs ----------

class RegisterIn(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=254)
    password: str = Field(min_length=6, max_length=128)
    name: Optional[str] = Field(default=None, max_length=120)
    artist_name: Optional[str] = Field(default=None, max_length=120)

class SignInIn(BaseModel):
    email: str
    password: str

class EmailIn(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=254)

class RefreshIn(BaseModel):
    refresh_token: str

class LogoutIn(BaseModel):
    refresh_token: str

class ChangePasswordIn(BaseModel):
    old_password: str
    new_password: str = Field(min_length=6, max_length=128)

class ResetPasswordIn(BaseModel):
    token: str
    password: str


# ---------- Outputs ----------

class TokenPairOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # secondes (durée de l'access token)

class SessionOut(TokenPairOut):
    user: UserOut

class RegisterOut(BaseModel):
    message: str
    email: str
    email_sent: bool

class MessageOut(BaseModel):
    message: str
