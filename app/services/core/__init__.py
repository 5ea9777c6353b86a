"""
Core services shared by every source adapter.

- base_api_adapter: httpx client lifecycle, retry and breaker-guarded fetch
- circuit_breaker: one breaker per upstream plus a state report
"""
from app.services.core.base_api_adapter import BaseSourceAdapter, is_retryable_error
from app.services.core.circuit_breaker import get_all_breaker_states

__all__ = [
    "BaseSourceAdapter",
    "is_retryable_error",
    "get_all_breaker_states",
]
