from .base import ExecutionGateway, GatewayError
from .api_client import APIClient, FORMAT_RAW
from .http import HTTPGateway
from .local import LocalGateway

__all__ = [
    "APIClient",
    "ExecutionGateway",
    "FORMAT_RAW",
    "GatewayError",
    "HTTPGateway",
    "LocalGateway",
]
