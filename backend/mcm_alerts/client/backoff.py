"""
Reconnect delay policy
"""


def compute_backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """min(base * 2**attempt, max). attempt counts failed reconnects so far."""
    if attempt < 0:
        attempt = 0
    # Cap the exponent so huge attempt counts cannot overflow
    return min(base_delay * (2 ** min(attempt, 32)), max_delay)
