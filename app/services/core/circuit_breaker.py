"""
Circuit breaker pattern for external API calls.

This module provides circuit breakers for the upstream sources so a dead
provider fails fast instead of stalling every athlete in a sync batch.

Uses pybreaker library for circuit breaker implementation.

Circuit Breaker States:
- CLOSED: Requests pass through normally
- OPEN: Requests fail immediately (after fail_max failures)
- HALF_OPEN: One request allowed to test if service has recovered

Circuit Breakers:
- api_football_breaker: API-Football (football stats, fixtures, live)
- balldontlie_breaker: balldontlie (NBA stats, injuries, games)
- google_cse_breaker: Google Custom Search (news)
- firecrawl_breaker: Firecrawl scraping proxy (ESPN / Hollinger pages)
- fotmob_breaker: FotMob public player API
- identity_breaker: Identity provider used for bearer-token validation
"""
from typing import Dict

import httpx
from pybreaker import CircuitBreaker, CircuitBreakerError

from app.core.logging import get_logger

logger = get_logger(__name__)

# Default circuit breaker configuration
DEFAULT_FAIL_MAX = 5  # Number of failures before opening circuit
DEFAULT_RESET_TIMEOUT = 60  # Seconds before attempting to close circuit

__all__ = [
    "CircuitBreakerError",
    "api_football_breaker",
    "balldontlie_breaker",
    "google_cse_breaker",
    "firecrawl_breaker",
    "fotmob_breaker",
    "identity_breaker",
    "ALL_BREAKERS",
    "get_all_breaker_states",
    "reset_breaker",
]


# ============================================================================
# CIRCUIT BREAKERS
# ============================================================================

api_football_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="api_football",
)

balldontlie_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="balldontlie",
)

google_cse_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="google_cse",
)

firecrawl_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="firecrawl",
)

fotmob_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    name="fotmob",
)

# Rejected tokens (4xx) are answers, not outages
identity_breaker = CircuitBreaker(
    fail_max=DEFAULT_FAIL_MAX,
    reset_timeout=DEFAULT_RESET_TIMEOUT,
    exclude=[lambda e: isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500],
    name="identity",
)

ALL_BREAKERS = (
    api_football_breaker,
    balldontlie_breaker,
    google_cse_breaker,
    firecrawl_breaker,
    fotmob_breaker,
    identity_breaker,
)


# ============================================================================
# CIRCUIT BREAKER STATE MONITORING
# ============================================================================

def get_all_breaker_states() -> Dict[str, str]:
    """
    Get the current state of all circuit breakers.

    Returns:
        Dictionary mapping breaker names to 'closed', 'open' or 'half-open'
    """
    return {breaker.name: breaker.current_state for breaker in ALL_BREAKERS}


def reset_breaker(breaker: CircuitBreaker) -> None:
    """
    Manually reset a circuit breaker to closed state.

    Args:
        breaker: The circuit breaker instance to reset
    """
    breaker.close()
    logger.warning(f"Circuit breaker '{breaker.name}' manually reset to CLOSED state")
