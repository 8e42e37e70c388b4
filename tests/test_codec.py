"""Unit tests for the salt-keyed token codec."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from shortlinks import codec as codec_module
from shortlinks.codec import MAX_REGISTERED_CODECS, HashCodec, codec_for, generate, reverse

SALT = "codec test salt"
OTHER_SALT = "a completely different salt"


def test_reverse_inverts_generate() -> None:
    codec = HashCodec(SALT)
    for link_id in (0, 1, 7, 61, 62, 1000, 123456789, 2**63 - 1):
        assert codec.reverse(codec.generate(link_id)) == link_id


def test_generate_is_deterministic() -> None:
    assert HashCodec(SALT).generate(42) == HashCodec(SALT).generate(42)
    assert generate(SALT, 42) == generate(SALT, 42)


def test_distinct_ids_produce_distinct_tokens() -> None:
    codec = HashCodec(SALT)
    tokens = {codec.generate(link_id) for link_id in range(2000)}
    assert len(tokens) == 2000


def test_tokens_use_letters_and_digits_only() -> None:
    codec = HashCodec(SALT)
    for link_id in range(0, 5000, 37):
        assert codec.generate(link_id).isalnum()


def test_consecutive_ids_do_not_sort_like_their_ids() -> None:
    codec = HashCodec(SALT)
    tokens = [codec.generate(link_id) for link_id in range(1000, 1020)]
    assert sorted(tokens) != tokens


def test_different_salts_give_different_tokens() -> None:
    ids = range(1, 201)
    same = sum(1 for link_id in ids if generate(SALT, link_id) == generate(OTHER_SALT, link_id))
    assert same <= 2


def test_token_from_other_salt_does_not_reverse_to_same_id() -> None:
    ids = range(1, 201)
    matches = sum(1 for link_id in ids if reverse(OTHER_SALT, generate(SALT, link_id)) == link_id)
    assert matches <= 2


@pytest.mark.parametrize("token", ["", "not-a-token!!", "   ", "ÄÖÜ", "a" * 300])
def test_reverse_rejects_malformed_tokens(token: str) -> None:
    assert HashCodec(SALT).reverse(token) is None
    assert reverse(SALT, token) is None


def test_reverse_rejects_non_string() -> None:
    assert HashCodec(SALT).reverse(None) is None  # type: ignore[arg-type]


def test_reverse_rejects_multi_number_tokens() -> None:
    codec = HashCodec(SALT)
    # Hashids can pack several numbers into one token; those are not link tokens.
    multi = codec._hashids.encode(1, 2)
    assert codec.reverse(multi) is None


def test_min_length_pads_tokens() -> None:
    codec = HashCodec(SALT, min_length=8)
    token = codec.generate(1)
    assert len(token) >= 8
    assert codec.reverse(token) == 1


def test_empty_salt_is_rejected() -> None:
    with pytest.raises(ValueError):
        HashCodec("")


def test_negative_min_length_is_rejected() -> None:
    with pytest.raises(ValueError):
        HashCodec(SALT, min_length=-1)


def test_generate_rejects_negative_ids() -> None:
    with pytest.raises(ValueError):
        HashCodec(SALT).generate(-1)


@pytest.mark.parametrize("value", [True, 1.5, "7"])
def test_generate_rejects_non_integers(value) -> None:
    with pytest.raises(TypeError):
        HashCodec(SALT).generate(value)


def test_codec_for_reuses_one_instance_per_salt() -> None:
    assert codec_for(SALT) is codec_for(SALT)
    assert codec_for(SALT) is not codec_for(OTHER_SALT)


def test_codec_for_concurrent_first_use_builds_once() -> None:
    salt = "salt only used by the concurrency test"
    with ThreadPoolExecutor(max_workers=16) as pool:
        codecs = list(pool.map(lambda _: codec_for(salt), range(64)))
    assert all(codec is codecs[0] for codec in codecs)


def test_registry_stays_bounded_under_many_salts() -> None:
    salts = [f"throwaway salt {n}" for n in range(MAX_REGISTERED_CODECS * 3)]
    for salt in salts:
        assert reverse(salt, generate(salt, 99)) == 99
    assert len(codec_module._registry) <= MAX_REGISTERED_CODECS
    assert (salts[-1], 0) in codec_module._registry
    assert (salts[0], 0) not in codec_module._registry
