"""httpx-based REST client."""

from .client import RestClient

__all__ = ["RestClient"]
