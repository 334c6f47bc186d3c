import threading
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings
from app.services.auth_service import AuthService
from app.services.ppe_detector import RekognitionPPEDetector
from app.services.user_store import UserStore
from app.services.video_processor import VideoProcessor

bearer_scheme = HTTPBearer(auto_error=False)

_detector: Optional[RekognitionPPEDetector] = None
_user_store: Optional[UserStore] = None
_singleton_lock = threading.Lock()


def get_detector(settings: Settings = Depends(get_settings)) -> RekognitionPPEDetector:
    global _detector
    with _singleton_lock:
        if _detector is None:
            _detector = RekognitionPPEDetector(region_name=settings.aws_region)
    return _detector


def get_user_store(settings: Settings = Depends(get_settings)) -> UserStore:
    global _user_store
    with _singleton_lock:
        if _user_store is None:
            _user_store = UserStore(uri=settings.mongo_uri, db_name=settings.mongo_db_name)
    return _user_store


def get_video_processor(
    settings: Settings = Depends(get_settings),
    detector: RekognitionPPEDetector = Depends(get_detector),
) -> VideoProcessor:
    return VideoProcessor(settings, detector)


def get_auth_service(
    settings: Settings = Depends(get_settings),
    store: UserStore = Depends(get_user_store),
) -> AuthService:
    return AuthService(store, settings.jwt_secret, settings.jwt_expires_minutes)


def get_current_user(
    settings: Settings = Depends(get_settings),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[str]:
    """Resolves the bearer token to a user id, or None when auth is switched off."""
    if not settings.auth_enabled:
        return None
    return auth.verify_token(credentials.credentials if credentials else None)
