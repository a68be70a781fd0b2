from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    name: str
    password: str = Field(min_length=8)


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
