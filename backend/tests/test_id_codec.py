"""
Memory Locks API — Lock ID Obfuscation Tests
=============================================

Test Strategy:
    ✅ encode/decode round trip for a spread of ids
    ✅ minimum length honoured
    ✅ garbage, empty and foreign-salt strings decode to None
    ✅ invalid ids rejected on encode
"""

import pytest
from hashids import Hashids

from memorylocks.config import settings
from memorylocks.exceptions import ValidationError
from memorylocks.services.id_codec import decode_id, encode_id, is_hashed_id


class TestEncodeDecode:

    @pytest.mark.parametrize("lock_id", [1, 7, 101, 99999, 2**31 - 1])
    def test_round_trip(self, lock_id):
        assert decode_id(encode_id(lock_id)) == lock_id

    def test_minimum_length(self):
        assert len(encode_id(1)) >= 6

    def test_encoding_is_alphanumeric(self):
        assert encode_id(42).isalnum()

    def test_distinct_ids_encode_differently(self):
        assert encode_id(1) != encode_id(2)

    @pytest.mark.parametrize("value", [0, -5])
    def test_encode_rejects_non_positive(self, value):
        with pytest.raises(ValidationError):
            encode_id(value)


class TestDecodeGarbage:

    @pytest.mark.parametrize("value", ["", None, "!!!", "not-a-lock", "a b c d e f"])
    def test_garbage_is_none(self, value):
        assert decode_id(value) is None

    def test_other_salt_is_none(self):
        foreign = Hashids(salt="some-other-salt", min_length=6).encode(7)
        assert decode_id(foreign) != 7

    def test_encoded_zero_is_none(self):
        zero = Hashids(salt=settings.hashids_salt, min_length=settings.hashids_min_length).encode(0)
        assert decode_id(zero) is None
        assert is_hashed_id(zero) is False


class TestIsHashedId:

    def test_real_hash(self):
        assert is_hashed_id(encode_id(7)) is True

    def test_too_short(self):
        assert is_hashed_id("ab1") is False

    def test_non_alphanumeric(self):
        assert is_hashed_id("abc-def-ghi") is False

    def test_empty(self):
        assert is_hashed_id("") is False
