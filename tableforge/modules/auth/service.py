import hashlib
import logging
import time
from supabase import Client
from tableforge.config.settings import settings
from tableforge.core.entities import Principal
from tableforge.core.exceptions import ApplicationError
from typing import Dict

logger = logging.getLogger(__name__)

# In-memory cache for token resolution to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_PRINCIPAL_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_MAX_SIZE = 500


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_principal(self, token: str) -> Principal:
        """
        Resolve a bearer token into a Principal through Supabase Auth.

        The role comes from ``app_metadata.role``, which only the service role
        can write. Results are cached for ``auth_cache_ttl_seconds``; account
        status is never taken from here, the access policy re-reads it.
        """
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_PRINCIPAL_CACHE:
                principal, expiry = _AUTH_PRINCIPAL_CACHE[cache_key]
                if now < expiry:
                    return principal
                del _AUTH_PRINCIPAL_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise ApplicationError.unauthorized("Invalid or expired token", "AUTHENTICATION_REQUIRED")
            user = user_response.user
            app_metadata = user.app_metadata or {}
            principal = Principal(
                sub=user.id,
                role=app_metadata.get("role"),
                email=user.email,
            )
            if len(_AUTH_PRINCIPAL_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_PRINCIPAL_CACHE[cache_key] = (principal, now + settings.auth_cache_ttl_seconds)
            return principal
        except ApplicationError:
            raise
        except Exception as e:
            logger.info(f"Token rejected: {e}")
            raise ApplicationError.unauthorized("Invalid or expired token", "AUTHENTICATION_REQUIRED")


def clear_principal_cache():
    _AUTH_PRINCIPAL_CACHE.clear()
