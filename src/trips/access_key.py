"""
Trip access keys.

An access key is a short-lived capability that lets a rider start exactly one
trip at an entry gate. It is validated without any server-side record: the
payload is sealed with AES-256-GCM under a key derived from TRIP_KEY_SECRET,
so a tampered or forged key fails authentication.

Wire format: ``hex(nonce) + ":" + hex(ciphertext)``; the plaintext is the JSON
object ``{riderId, partySize, timestamp, expiresAt}`` with times in epoch
milliseconds.

Replay is not tracked here by default. A second start for the same rider is
refused by the one-open-trip constraint on the trips table; with
ACCESS_KEY_SINGLE_USE enabled the gate also records consumed keys until they
expire.
"""

from typing import Callable, Dict, Optional
from datetime import datetime, timezone
import hashlib
import json
import logging
import os
import re
import threading
import time

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import BaseModel, Field, ValidationError

from src.config import settings

logger = logging.getLogger(__name__)

NONCE_BYTES = 12
KEY_BYTES = 32

# Lowercase hex only, exactly as issued
ACCESS_KEY_PATTERN = re.compile(r"[0-9a-f]+:[0-9a-f]+")

# scrypt cost parameters for stretching the operator secret
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1


class AccessKeyPayload(BaseModel):
    """Decrypted access key contents"""
    rider_id: int = Field(alias="riderId")
    party_size: int = Field(alias="partySize", ge=1)
    issued_at: int = Field(alias="timestamp")
    expires_at: int = Field(alias="expiresAt")

    class Config:
        populate_by_name = True


class IssuedAccessKey(BaseModel):
    access_key: str
    expires_at: datetime
    payload: AccessKeyPayload


def derive_key(secret: str, salt: str) -> bytes:
    """Stretch an operator-chosen secret into a 256-bit cipher key"""
    return hashlib.scrypt(
        secret.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=KEY_BYTES,
    )


def _now_ms(clock: Callable[[], float]) -> int:
    return int(clock() * 1000)


class AccessKeyCodec:
    """Issues and validates encrypted, time-boxed trip access keys"""

    def __init__(
        self,
        secret: Optional[str] = None,
        salt: Optional[str] = None,
        clock: Callable[[], float] = time.time
    ):
        key = derive_key(secret or settings.TRIP_KEY_SECRET, salt or settings.TRIP_KEY_SALT)
        self._cipher = AESGCM(key)
        self._clock = clock

    def issue(self, rider_id: int, party_size: int, ttl_seconds: Optional[int] = None) -> IssuedAccessKey:
        """Create an access key for a rider and party size"""
        if ttl_seconds is None:
            ttl_seconds = settings.ACCESS_KEY_TTL_SECONDS

        issued_at = _now_ms(self._clock)
        payload = AccessKeyPayload(
            rider_id=rider_id,
            party_size=party_size,
            issued_at=issued_at,
            expires_at=issued_at + ttl_seconds * 1000,
        )
        plaintext = json.dumps(payload.model_dump(by_alias=True)).encode("utf-8")

        nonce = os.urandom(NONCE_BYTES)
        ciphertext = self._cipher.encrypt(nonce, plaintext, None)

        return IssuedAccessKey(
            access_key=f"{nonce.hex()}:{ciphertext.hex()}",
            expires_at=datetime.fromtimestamp(payload.expires_at / 1000, tz=timezone.utc),
            payload=payload,
        )

    def validate(self, access_key: str) -> Optional[AccessKeyPayload]:
        """Decrypt and check an access key; None when it is unusable for any reason"""
        if not isinstance(access_key, str):
            return None

        if not ACCESS_KEY_PATTERN.fullmatch(access_key):
            logger.debug("Access key rejected: malformed shape")
            return None

        parts = access_key.split(":")
        try:
            nonce = bytes.fromhex(parts[0])
            ciphertext = bytes.fromhex(parts[1])
        except ValueError:
            logger.debug("Access key rejected: not hex encoded")
            return None

        if len(nonce) != NONCE_BYTES:
            logger.debug("Access key rejected: bad nonce length")
            return None

        try:
            plaintext = self._cipher.decrypt(nonce, ciphertext, None)
        except InvalidTag:
            logger.info("Access key rejected: authentication failed")
            return None

        try:
            payload = AccessKeyPayload.model_validate(json.loads(plaintext))
        except (ValueError, ValidationError):
            logger.info("Access key rejected: payload is not a valid access key")
            return None

        if _now_ms(self._clock) > payload.expires_at:
            logger.info("Access key for user %s expired", payload.rider_id)
            return None

        return payload


class ConsumedKeyRegistry:
    """Fingerprints of access keys already used at a gate, kept until they expire"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._consumed: Dict[str, int] = {}
        self._lock = threading.Lock()

    @staticmethod
    def fingerprint(access_key: str) -> str:
        return hashlib.sha256(access_key.encode("utf-8")).hexdigest()

    def consume(self, access_key: str, expires_at_ms: int) -> bool:
        """Record a key as used; False when it was already used"""
        key_id = self.fingerprint(access_key)
        now = _now_ms(self._clock)
        with self._lock:
            self._purge(now)
            if key_id in self._consumed:
                return False
            self._consumed[key_id] = expires_at_ms
            return True

    def release(self, access_key: str):
        """Forget a key whose trip start did not go through"""
        with self._lock:
            self._consumed.pop(self.fingerprint(access_key), None)

    def _purge(self, now: int):
        expired = [key_id for key_id, expires_at in self._consumed.items() if expires_at < now]
        for key_id in expired:
            del self._consumed[key_id]

    def __len__(self) -> int:
        return len(self._consumed)


_codec: Optional[AccessKeyCodec] = None
_registry: Optional[ConsumedKeyRegistry] = None
_init_lock = threading.Lock()


def get_access_key_codec() -> AccessKeyCodec:
    """Shared codec, so the scrypt key derivation runs once per process"""
    global _codec
    with _init_lock:
        if _codec is None:
            _codec = AccessKeyCodec()
        return _codec


def get_consumed_key_registry() -> Optional[ConsumedKeyRegistry]:
    """Shared consumed-key set, or None when single-use tracking is off"""
    global _registry
    if not settings.ACCESS_KEY_SINGLE_USE:
        return None
    with _init_lock:
        if _registry is None:
            _registry = ConsumedKeyRegistry()
        return _registry
