"""Deterministic placeholder face embeddings.

The generator is not a face-recognition model: it folds the capture into a
seed and expands that seed into a unit-length vector. Identical captures give
identical vectors, which is all the matcher relies on. Captures are never
kept or logged once the vector has been computed.
"""
from __future__ import annotations

import json
import math
from typing import Sequence

import numpy as np

EMBEDDING_DIM = 512
SEED_PREFIX_LENGTH = 1000


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x1_0000_0000 if value & 0x8000_0000 else value


def embedding_seed(image_payload: bytes | str) -> int:
    if isinstance(image_payload, str):
        # Text folds as UTF-16 code units, so characters outside the BMP count twice.
        units = np.frombuffer(image_payload.encode("utf-16-le", "surrogatepass"), dtype="<u2")
        codes = (int(unit) for unit in units[:SEED_PREFIX_LENGTH])
    else:
        codes = iter(bytes(image_payload[:SEED_PREFIX_LENGTH]))

    folded = 0
    for code in codes:
        folded = _to_int32((folded << 5) - folded + code)
    return abs(folded)


def generate_embedding(image_payload: bytes | str) -> np.ndarray:
    seed = embedding_seed(image_payload)
    positions = np.arange(1, EMBEDDING_DIM + 1, dtype=np.float64)
    values = np.sin(seed * positions) * 0.5 + 0.5
    return values / float(np.linalg.norm(values))


def serialize_embedding(vector: Sequence[float] | np.ndarray) -> str:
    return json.dumps([float(value) for value in np.asarray(vector, dtype=np.float64).ravel()])


def deserialize_embedding(serialized: str) -> np.ndarray:
    try:
        raw = json.loads(serialized)
    except (TypeError, json.JSONDecodeError) as exc:
        raise ValueError("Stored embedding is not valid JSON.") from exc

    if not isinstance(raw, list) or not raw:
        raise ValueError("Stored embedding must be a non-empty list.")
    if not all(isinstance(value, (int, float)) and not isinstance(value, bool) for value in raw):
        raise ValueError("Stored embedding must contain only numbers.")
    if not all(math.isfinite(value) for value in raw):
        raise ValueError("Stored embedding contains non-finite values.")
    return np.asarray(raw, dtype=np.float64)
