"""
Domain exceptions shared by the server services and the client runtime
"""
from typing import Optional


class ValidationError(Exception):
    """Input rejected before reaching the store"""


class InvalidPayload(ValidationError):
    """Subscription registration without endpoint or keys"""


class StoreFailure(Exception):
    """The relational store could not complete an operation"""


class TransportDeliveryFailure(Exception):
    """A push delivery attempt did not succeed"""
    
    def __init__(self, error_code: str, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or error_code)
        self.error_code = error_code
        self.status_code = status_code


class PermanentDeliveryFailure(TransportDeliveryFailure):
    """The push service reported the endpoint as gone (404/410)"""


class TransientDeliveryFailure(TransportDeliveryFailure):
    """Delivery failed but the subscription may still be valid"""


class RealtimeConnectionFailure(Exception):
    """A realtime transport errored, timed out or was rejected"""


class TransportUnavailable(RealtimeConnectionFailure):
    """The transport cannot be used at all in this environment"""
