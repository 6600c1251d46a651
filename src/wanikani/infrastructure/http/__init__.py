# Infrastructure HTTP Package
from .conditional_cache import CacheKey, ConditionalCache, Resolved, ValidatorRecord
from .rate_governor import RateGovernor, RateLimitState

__all__ = [
    "CacheKey",
    "ConditionalCache",
    "Resolved",
    "ValidatorRecord",
    "RateGovernor",
    "RateLimitState",
]
