"""HTTP access to product REST APIs."""

from .api_client import ApiClient, ApiRequestError, ApiResponse

__all__ = ["ApiClient", "ApiRequestError", "ApiResponse"]
