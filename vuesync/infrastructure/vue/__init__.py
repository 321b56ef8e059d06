from .throttle import RateLimiter, ThrottledTransport
from .vue_client import VueClient

__all__ = ["RateLimiter", "ThrottledTransport", "VueClient"]
