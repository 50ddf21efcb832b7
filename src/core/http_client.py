"""
HTTP client configuration for outbound collaborator calls.
NO GLOBAL instances - each service manages its own client lifecycle.
"""

import httpx
from typing import Optional, Dict, Any

from src.infra.config.settings import get_settings

settings = get_settings()


class HTTPClientConfig:
    """HTTP client configuration shared by outbound clients"""

    @classmethod
    def get_timeout(cls, service: str) -> float:
        """Get timeout for specific service"""
        timeout_map = {
            "default": settings.HTTP_DEFAULT_TIMEOUT,
            "email": settings.HTTP_EMAIL_TIMEOUT,
        }
        return timeout_map.get(service, settings.HTTP_DEFAULT_TIMEOUT)

    @classmethod
    def get_base_headers(cls) -> Dict[str, str]:
        """Get base headers for HTTP requests"""
        return {
            "User-Agent": f"{settings.APP_NAME}-Backend/{settings.APP_VERSION}",
            "Accept": "application/json",
        }

    @classmethod
    def create_client_config(cls, service: str = "default", timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Create HTTP client configuration (NOT the client itself).

        Args:
            service: Service name for timeout configuration
            timeout: Override timeout (optional)

        Returns:
            Dict with client configuration
        """
        client_timeout = timeout or cls.get_timeout(service)

        return {
            "timeout": client_timeout,
            "limits": httpx.Limits(
                max_connections=settings.HTTP_MAX_CONNECTIONS,
                max_keepalive_connections=settings.HTTP_MAX_KEEPALIVE_CONNECTIONS
            ),
            "headers": cls.get_base_headers(),
            "follow_redirects": False,
        }


def create_temp_client(service: str = "default", **kwargs) -> httpx.AsyncClient:
    """
    Create a temporary HTTP client for one-off requests.
    Use as an async context manager so the client is closed.

    Args:
        service: Service name for configuration
        **kwargs: Additional httpx.AsyncClient arguments

    Returns:
        httpx.AsyncClient: Configured client
    """
    config = HTTPClientConfig.create_client_config(service)
    config.update(kwargs)
    return httpx.AsyncClient(**config)
