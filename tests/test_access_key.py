"""Tests for sealed trip access keys and the consumed-key registry."""

from datetime import timezone

import pytest

from src.trips.access_key import AccessKeyCodec, ConsumedKeyRegistry, NONCE_BYTES


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def flip_bit(text: str, index: int, bit: int) -> str:
    return text[:index] + chr(ord(text[index]) ^ (1 << bit)) + text[index + 1:]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def codec(clock):
    return AccessKeyCodec(secret="unit-test-secret", salt="unit-test-salt", clock=clock)


class TestAccessKeyCodec:
    def test_issue_then_validate(self, codec, clock):
        issued = codec.issue(rider_id=7, party_size=3, ttl_seconds=300)

        payload = codec.validate(issued.access_key)
        assert payload is not None
        assert payload.rider_id == 7
        assert payload.party_size == 3
        assert payload.issued_at == int(clock.now * 1000)
        assert payload.expires_at == payload.issued_at + 300_000
        assert issued.expires_at.tzinfo == timezone.utc
        assert int(issued.expires_at.timestamp() * 1000) == payload.expires_at

    def test_wire_format(self, codec):
        nonce_hex, ciphertext_hex = codec.issue(1, 1).access_key.split(":")
        assert len(nonce_hex) == NONCE_BYTES * 2
        bytes.fromhex(nonce_hex)
        bytes.fromhex(ciphertext_hex)

    def test_nonce_is_fresh_per_key(self, codec):
        first = codec.issue(1, 1).access_key
        second = codec.issue(1, 1).access_key
        assert first != second
        assert first.split(":")[0] != second.split(":")[0]

    def test_valid_until_expiry(self, codec, clock):
        issued = codec.issue(1, 1, ttl_seconds=300)
        clock.now += 300
        assert codec.validate(issued.access_key) is not None

    def test_expired_key_is_rejected(self, codec, clock):
        issued = codec.issue(1, 1, ttl_seconds=300)
        clock.now += 301
        assert codec.validate(issued.access_key) is None

    def test_any_bit_flip_is_rejected(self, codec):
        access_key = codec.issue(5, 2).access_key
        for index in range(len(access_key)):
            for bit in range(7):
                tampered = flip_bit(access_key, index, bit)
                assert codec.validate(tampered) is None, (index, bit)

    def test_uppercase_hex_is_rejected(self, codec):
        access_key = codec.issue(5, 2).access_key
        assert access_key != access_key.upper()
        assert codec.validate(access_key.upper()) is None

    def test_key_from_another_secret_is_rejected(self, codec, clock):
        other = AccessKeyCodec(secret="another-secret", salt="unit-test-salt", clock=clock)
        assert codec.validate(other.issue(1, 1).access_key) is None

    @pytest.mark.parametrize("access_key", [
        "",
        "no-separator",
        "a:b:c",
        "zz:zz",
        "00:00",
        ":",
        "00" * NONCE_BYTES + ":",
        "00" * NONCE_BYTES + ":" + "ab" * 32,
    ])
    def test_malformed_keys_are_rejected(self, codec, access_key):
        assert codec.validate(access_key) is None

    def test_non_string_is_rejected(self, codec):
        assert codec.validate(None) is None


class TestConsumedKeyRegistry:
    def test_second_use_is_refused(self, clock):
        registry = ConsumedKeyRegistry(clock=clock)
        expires_at = int(clock.now * 1000) + 60_000

        assert registry.consume("key-a", expires_at) is True
        assert registry.consume("key-a", expires_at) is False
        assert registry.consume("key-b", expires_at) is True
        assert len(registry) == 2

    def test_released_key_can_be_used_again(self, clock):
        registry = ConsumedKeyRegistry(clock=clock)
        expires_at = int(clock.now * 1000) + 60_000

        registry.consume("key-a", expires_at)
        registry.release("key-a")
        assert registry.consume("key-a", expires_at) is True

    def test_entries_are_dropped_after_expiry(self, clock):
        registry = ConsumedKeyRegistry(clock=clock)
        registry.consume("key-a", int(clock.now * 1000) + 1_000)

        clock.now += 2
        registry.consume("key-b", int(clock.now * 1000) + 1_000)
        assert len(registry) == 1

    def test_fingerprint_does_not_keep_the_key(self):
        fingerprint = ConsumedKeyRegistry.fingerprint("secret-key")
        assert "secret-key" not in fingerprint
        assert len(fingerprint) == 64
