from pydantic import BaseModel


class SignupRequest(BaseModel):
    email: str
    password: str
    name: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class ErrorResponse(BaseModel):
    detail: str
    code: str
