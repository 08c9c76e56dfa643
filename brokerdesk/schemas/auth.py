# brokerdesk/schemas/auth.py

from pydantic import BaseModel


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AdminSignin(BaseModel):
    username: str
    password: str


class StatusResponse(BaseModel):
    message: str
