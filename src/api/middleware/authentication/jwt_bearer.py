from typing import Optional

from fastapi import Request
from fastapi.security import HTTPBearer

from src.core.logger.logger import logger


class OptionalHTTPBearer(HTTPBearer):
    """Extracts a bearer token if present; never rejects the request itself"""

    def __init__(self):
        super().__init__(auto_error=False)

    async def __call__(self, request: Request) -> Optional[str]:
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            return None

        try:
            scheme, credentials = auth_header.split()
        except ValueError:
            logger.warning("Malformed authorization header", extra={"path": request.url.path})
            return None

        if scheme.lower() != "bearer":
            logger.warning("Invalid authentication scheme", extra={"scheme": scheme})
            return None

        return credentials
