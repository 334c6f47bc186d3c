from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.dependencies import get_auth_service
from app.services.auth_service import AuthService

router = APIRouter()


class SignupRequest(BaseModel):
    username: str
    email: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/signup")
def signup(body: SignupRequest, auth: AuthService = Depends(get_auth_service)):
    """Register a new user. Usernames are unique."""
    auth.signup(body.username, body.email, body.password)
    return {"success": True, "message": "User registered"}


@router.post("/login")
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    token = auth.login(body.username, body.password)
    return {"success": True, "token": token}
