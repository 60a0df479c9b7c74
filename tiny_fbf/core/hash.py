"""
Hashing functions for tiny-fbf.

This module provides the non-cryptographic hash functions used by the bit
filters, plus the double-hashing helper that turns two base hashes into
``k`` bit positions. Everything here is pure Python with no external
dependencies.
"""

from typing import Any, List, Tuple

UINT64_MASK = 0xFFFFFFFFFFFFFFFF
UINT32_MASK = 0xFFFFFFFF
INT64_MIN = -(1 << 63)

# Odd 32-bit constant used to spread consecutive epoch numbers over the seed space
_SEED_STRIDE = 0x9E3779B1


def key_to_bytes(key: Any) -> bytes:
    """
    Encode a key into the bytes that get hashed.

    Integers in ``[-2**63, 2**64)`` are encoded as unsigned 64-bit
    little-endian values, so ``-1`` and ``2**64 - 1`` address the same bits.
    Wider integers keep their full signed encoding (9 bytes or more), so
    128-bit ids never alias a 64-bit key. Strings are UTF-8 encoded,
    bytes pass through, and anything else is hashed through ``repr()``.

    Args:
        key: The key to encode.

    Returns:
        The byte representation of the key.
    """
    if isinstance(key, bytes):
        return key
    if isinstance(key, str):
        return key.encode("utf-8")
    if isinstance(key, int) and not isinstance(key, bool):
        if INT64_MIN <= key <= UINT64_MASK:
            return (key & UINT64_MASK).to_bytes(8, "little")
        return key.to_bytes((key.bit_length() + 8) // 8, "little", signed=True)
    return repr(key).encode("utf-8")


def murmurhash3_32(key: Any, seed: int = 0) -> int:
    """
    Pure Python implementation of MurmurHash3 (32-bit variant).

    Args:
        key: The key to hash (encoded with key_to_bytes).
        seed: Seed for the hash, truncated to 32 bits.

    Returns:
        32-bit hash value.
    """
    data = key_to_bytes(key)
    length = len(data)

    c1 = 0xCC9E2D51
    c2 = 0x1B873593

    h = seed & UINT32_MASK

    # Process 4 bytes at a time
    nblocks = length // 4
    for i in range(nblocks):
        k = int.from_bytes(data[i * 4 : i * 4 + 4], "little")

        k = (k * c1) & UINT32_MASK
        k = ((k << 15) | (k >> 17)) & UINT32_MASK  # rotl32(k, 15)
        k = (k * c2) & UINT32_MASK

        h ^= k
        h = ((h << 13) | (h >> 19)) & UINT32_MASK  # rotl32(h, 13)
        h = (h * 5 + 0xE6546B64) & UINT32_MASK

    # Tail (0-3 bytes)
    tail = data[nblocks * 4 :]
    k = 0
    if len(tail) >= 3:
        k ^= tail[2] << 16
    if len(tail) >= 2:
        k ^= tail[1] << 8
    if len(tail) >= 1:
        k ^= tail[0]
        k = (k * c1) & UINT32_MASK
        k = ((k << 15) | (k >> 17)) & UINT32_MASK  # rotl32(k, 15)
        k = (k * c2) & UINT32_MASK
        h ^= k

    # Finalization mix (fmix32)
    h ^= length
    h ^= h >> 16
    h = (h * 0x85EBCA6B) & UINT32_MASK
    h ^= h >> 13
    h = (h * 0xC2B2AE35) & UINT32_MASK
    h ^= h >> 16

    return h & UINT32_MASK


def fnv1a_32(key: Any, seed: int = 0) -> int:
    """
    Pure Python implementation of FNV-1a (32-bit variant).

    Args:
        key: The key to hash (encoded with key_to_bytes).
        seed: Seed value, mixed into the offset basis.

    Returns:
        32-bit hash value.
    """
    fnv_prime = 16777619
    h = (2166136261 ^ seed) & UINT32_MASK

    # XOR first, then multiply: the "1a" ordering
    for byte in key_to_bytes(key):
        h ^= byte
        h = (h * fnv_prime) & UINT32_MASK

    return h


def hash_pair(key: Any, seed: int = 0) -> Tuple[int, int]:
    """Return the two base hashes used for double hashing."""
    data = key_to_bytes(key)
    return murmurhash3_32(data, seed), fnv1a_32(data, seed)


def bit_positions(key: Any, table_bits: int, hash_count: int, seed: int = 0) -> List[int]:
    """
    Derive ``hash_count`` bit positions for a key.

    Uses the Kirsch-Mitzenmacher scheme ``(h1 + i * h2) % table_bits`` so
    only two real hash computations are needed per key. ``h2`` is forced
    odd so the positions do not all collapse onto ``h1`` when it is zero.

    Args:
        key: The key to place.
        table_bits: Size of the bit array.
        hash_count: Number of positions to produce.
        seed: Seed of the filter's hash family.

    Returns:
        List of bit positions in ``[0, table_bits)``.
    """
    h1, h2 = hash_pair(key, seed)
    # Never zero, so the positions cannot all collapse onto h1
    h2 |= 1
    return [(h1 + i * h2) % table_bits for i in range(hash_count)]


def seed_for_epoch(base_seed: int, epoch: int) -> int:
    """
    Seed of the window created at a given epoch.

    Adjacent epochs get unrelated 32-bit seeds, so neighbouring windows in a
    chain behave like independent hash families.
    """
    return (base_seed + epoch * _SEED_STRIDE) & UINT32_MASK
