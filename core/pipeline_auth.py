"""
Pipeline authentication using Bearer token.

Guards the admin endpoints that trigger syncs and scoring; used by
operators and external cron jobs, separate from end-user identity.
"""

import hmac

from fastapi import HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.settings import get_settings

security = HTTPBearer()


def verify_pipeline_token(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> str:
    """
    Verify the bearer token matches our pipeline secret.

    Raises:
        HTTPException: If token is missing or invalid
    """
    token = get_settings().pipeline_api_token
    if not token:
        raise HTTPException(
            status_code=500,
            detail="Server misconfigured: PIPELINE_API_TOKEN not set",
        )

    if not hmac.compare_digest(credentials.credentials, token.get_secret_value()):
        raise HTTPException(
            status_code=401,
            detail="Invalid pipeline authentication token",
        )

    return credentials.credentials
