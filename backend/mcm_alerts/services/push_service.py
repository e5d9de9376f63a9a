"""
Web Push Notification Service
Uses pywebpush to deliver push messages to subscribed browsers/devices.
"""
import asyncio
import base64
import logging
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from py_vapid import Vapid
from pywebpush import webpush, WebPushException

from mcm_alerts.core.config import Settings, settings as default_settings
from mcm_alerts.core.exceptions import PermanentDeliveryFailure, TransientDeliveryFailure
from mcm_alerts.services.payload import PushPayload

logger = logging.getLogger(__name__)

# Push service answers meaning the subscription no longer exists
GONE_STATUS_CODES = (404, 410)


def _decode_base64(data: str) -> bytes:
    """Decode URL-safe base64 with padding"""
    padding = 4 - (len(data) % 4)
    if padding != 4:
        data += '=' * padding
    return base64.urlsafe_b64decode(data)


def _encode_base64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def load_private_key(raw_key: str) -> ec.EllipticCurvePrivateKey:
    """Build the P-256 signing key from the raw URL-safe base64 scalar"""
    private_key_bytes = _decode_base64(raw_key.strip())
    return ec.derive_private_key(
        int.from_bytes(private_key_bytes, 'big'),
        ec.SECP256R1(),
    )


def derive_public_key(private_key: ec.EllipticCurvePrivateKey) -> str:
    """Application server key (uncompressed point) as URL-safe base64"""
    point = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return _encode_base64(point)


class PushService:
    """
    Service for sending web push messages.
    
    Usage:
        push = PushService()
        await push.send(subscription.get_subscription_info(), payload)
    
    Raises PermanentDeliveryFailure when the endpoint is gone and
    TransientDeliveryFailure for every other failure.
    """
    
    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self._vapid: Optional[Vapid] = None
        self._public_key: Optional[str] = None
    
    @property
    def is_configured(self) -> bool:
        """Check if push is properly configured"""
        return self._settings.is_push_configured
    
    @property
    def public_key(self) -> Optional[str]:
        """VAPID public key for PushManager.subscribe(); derived when not configured"""
        if self._settings.vapid_public_key:
            return self._settings.vapid_public_key
        if self._public_key is None and self.is_configured:
            self._public_key = derive_public_key(load_private_key(self._settings.vapid_private_key))
        return self._public_key
    
    def _get_vapid_claims(self) -> Dict[str, Any]:
        """
        Fresh claims per send; pywebpush writes "aud" and "exp" into the dict
        it is given, and endpoints differ in origin.
        """
        return {"sub": self._settings.vapid_claims_email}
    
    def _get_vapid(self) -> Vapid:
        """Signing key wrapped for pywebpush"""
        if self._vapid is None:
            self._vapid = Vapid(private_key=load_private_key(self._settings.vapid_private_key))
        return self._vapid
    
    async def send(self, subscription_info: Dict[str, Any], payload: PushPayload) -> None:
        """
        Deliver one payload to one subscription.
        
        Args:
            subscription_info: {"endpoint": ..., "keys": {"p256dh": ..., "auth": ...}}
            payload: Built push payload
        """
        if not self.is_configured:
            raise TransientDeliveryFailure("not_configured", "Web Push is not configured")
        
        endpoint = subscription_info.get("endpoint", "")
        try:
            vapid = self._get_vapid()
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to initialize VAPID private key: {e}")
            raise TransientDeliveryFailure("vapid_key_invalid", str(e))
        
        try:
            await asyncio.to_thread(
                webpush,
                subscription_info=subscription_info,
                data=payload.to_json(),
                vapid_private_key=vapid,
                vapid_claims=self._get_vapid_claims(),
                ttl=payload.ttl,
                headers={"Urgency": payload.urgency},
                timeout=self._settings.push_timeout,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in GONE_STATUS_CODES:
                logger.info("Push endpoint gone (%s): %s", status_code, endpoint[:60])
                raise PermanentDeliveryFailure(f"http_{status_code}", str(e), status_code)
            logger.warning("Push failed (%s) for %s: %s", status_code, endpoint[:60], e)
            code = f"http_{status_code}" if status_code else "push_error"
            raise TransientDeliveryFailure(code, str(e), status_code)
        except OSError as e:
            # requests' connection and timeout errors derive from OSError
            logger.warning("Push network error for %s: %s", endpoint[:60], e)
            raise TransientDeliveryFailure("network_error", str(e))
        
        logger.debug("Push delivered to %s", endpoint[:60])


def generate_vapid_keys() -> Dict[str, str]:
    """New VAPID key pair as raw URL-safe base64 (the format the settings expect)"""
    private_key = ec.generate_private_key(ec.SECP256R1())
    scalar = private_key.private_numbers().private_value.to_bytes(32, "big")
    return {
        "private_key": _encode_base64(scalar),
        "public_key": derive_public_key(private_key),
    }
