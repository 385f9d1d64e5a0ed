import hashlib
import time
from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, Tuple
from app.config import settings
import logging

logger = logging.getLogger(__name__)

# token hash -> (auth user, expiry); a page render fires many permission
# requests with the same token
_AUTH_USER_CACHE: Dict[str, Tuple[Dict[str, Any], float]] = {}


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()


def _cached_user(cache_key: str, now: float):
    entry = _AUTH_USER_CACHE.get(cache_key)
    if entry is None:
        return None
    user_data, expiry = entry
    if now >= expiry:
        del _AUTH_USER_CACHE[cache_key]
        return None
    return user_data


class AuthService:
    """Resolves Supabase Auth access tokens; profiles and roles are loaded by UserService"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Auth user behind ``token`` as {id, email, app_metadata}; 401 when the token is rejected"""
        cache_key = hashlib.sha256(token.encode()).hexdigest()
        now = time.monotonic()
        user_data = _cached_user(cache_key, now)
        if user_data is not None:
            return user_data

        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            message = str(e)
            logger.info(f"Token rejected by Supabase Auth: {message}")
            if "JWT" in message or "expired" in message.lower() or "invalid" in message.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

        if not user_response or not user_response.user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user = user_response.user
        user_data = {
            "id": user.id,
            "email": user.email,
            # app_metadata.type == "super_user" marks a platform superadmin
            "app_metadata": user.app_metadata or {},
        }
        if len(_AUTH_USER_CACHE) < settings.auth_cache_max_size:
            _AUTH_USER_CACHE[cache_key] = (user_data, now + settings.auth_cache_ttl_seconds)
        return user_data
