"""Controller transports for console-nav."""

from .base import BaseController
from .http_controller import HttpController

__all__ = [
    'BaseController',
    'HttpController',
]
