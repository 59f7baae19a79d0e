import numpy as np
import pytest

from ponto.services.embedding import (
    EMBEDDING_DIM,
    deserialize_embedding,
    embedding_seed,
    generate_embedding,
    serialize_embedding,
)


def test_same_capture_gives_identical_vector():
    first = generate_embedding("data:image/jpeg;base64,/9j/4AAQSkZJRg")
    second = generate_embedding("data:image/jpeg;base64,/9j/4AAQSkZJRg")
    assert first.tobytes() == second.tobytes()


@pytest.mark.parametrize("payload", ["", "a", "photo-001", b"\x00\xff\x10raw-bytes", "x" * 5000])
def test_embedding_is_fixed_dimension_and_unit_length(payload):
    vector = generate_embedding(payload)
    assert vector.shape == (EMBEDDING_DIM,)
    assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-12)


def test_different_captures_give_different_vectors():
    assert not np.array_equal(generate_embedding("capture-a"), generate_embedding("capture-b"))


def test_ascii_text_and_bytes_fold_to_the_same_seed():
    assert embedding_seed("abc123==") == embedding_seed(b"abc123==")


def test_only_the_first_thousand_characters_affect_the_seed():
    prefix = "q" * 1000
    assert embedding_seed(prefix + "tail-one") == embedding_seed(prefix + "something-else")
    assert np.array_equal(generate_embedding(prefix + "A"), generate_embedding(prefix + "B"))


def test_astral_characters_fold_as_two_utf16_units():
    # U+1F600 is the surrogate pair 0xD83D 0xDE00: 0xD83D * 31 + 0xDE00.
    assert embedding_seed("\U0001F600") == 1772899


def test_prefix_limit_counts_utf16_units():
    prefix = "\U0001F600" * 500
    assert embedding_seed(prefix + "tail") == embedding_seed(prefix)
    assert embedding_seed("\U0001F600" * 499 + "ab") != embedding_seed("\U0001F600" * 499 + "ac")


def test_seed_wraps_to_32_bits_and_is_non_negative():
    seed = embedding_seed("z" * 1000)
    assert 0 <= seed <= 2**31


def test_serialized_embedding_reads_back_exactly():
    vector = generate_embedding("enrollment")
    assert np.array_equal(deserialize_embedding(serialize_embedding(vector)), vector)


@pytest.mark.parametrize(
    "serialized",
    ["not json", "{}", "[]", '["a", "b"]', "[true, false]", '[1.0, "NaN"]', "[1.0, Infinity]"],
)
def test_malformed_serialized_embedding_is_rejected(serialized):
    with pytest.raises(ValueError):
        deserialize_embedding(serialized)
