"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements content fingerprints using pluggable hash algorithms.

HasherImpl streams a file through any HashAlgorithm and produces a fixed-width
digest. Fingerprint jobs report the digest as hex text on "stdout", the same
shape an external hashing tool (sha256sum, b2sum, xxhsum) prints, so both paths
are parsed by parse_digest().
"""

import hashlib
import logging
import re
from typing import Dict

import xxhash

from fanout.core.interfaces import HashAlgorithm, HashObject, Hasher
from fanout.core.models import WorkItem

logger = logging.getLogger(__name__)

_HEX_DIGEST = re.compile(r"^\\?([0-9a-fA-F]{8,128})$")


# Use the same way to implement and use any other hashing algorithm
class XXHash64AlgorithmImpl(HashAlgorithm):
    name = "xxh64"
    digest_size = 8

    def new(self) -> HashObject:
        return xxhash.xxh64()


class XXHash128AlgorithmImpl(HashAlgorithm):
    name = "xxh128"
    digest_size = 16

    def new(self) -> HashObject:
        return xxhash.xxh3_128()


class Sha256AlgorithmImpl(HashAlgorithm):
    name = "sha256"
    digest_size = 32

    def new(self) -> HashObject:
        return hashlib.sha256()


HASH_ALGORITHMS: Dict[str, HashAlgorithm] = {
    algorithm.name: algorithm
    for algorithm in (XXHash64AlgorithmImpl(), XXHash128AlgorithmImpl(), Sha256AlgorithmImpl())
}


def get_algorithm(name: str) -> HashAlgorithm:
    try:
        return HASH_ALGORITHMS[name]
    except KeyError:
        raise ValueError(
            f"Unknown hash algorithm '{name}'. Valid options: {', '.join(HASH_ALGORITHMS)}"
        ) from None


def parse_digest(stdout: bytes) -> bytes:
    """
    Extracts the digest from hashing tool output ("<hex>  <path>").

    Raises:
        ValueError: if the first token is not a hex digest
    """
    text = stdout.decode("ascii", errors="replace").strip()
    token = text.split(None, 1)[0] if text else ""
    match = _HEX_DIGEST.match(token)
    if not match or len(match.group(1)) % 2:
        raise ValueError(f"No hex digest in hashing output: {text[:80]!r}")
    return bytes.fromhex(match.group(1))


class HasherImpl(Hasher):
    """
    A hasher implementation that supports any algorithm via the HashAlgorithm interface.
    Reads files in fixed-size chunks so memory use does not depend on file size.
    """

    def __init__(self, algorithm: HashAlgorithm = None, chunk_size: int = 1024 * 1024):
        self.algorithm = algorithm or XXHash128AlgorithmImpl()
        self.chunk_size = chunk_size

    def compute_full_hash(self, path: str) -> bytes:
        """
        Computes the digest of the entire file.

        Raises:
            OSError: if the file cannot be read
        """
        digest = self.algorithm.new()
        with open(path, "rb") as f:
            while True:
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break
                digest.update(chunk)
        return digest.digest()

    def hex_digest(self, item: WorkItem) -> bytes:
        """Fingerprint job: '<hex>  <path>' like sha256sum prints."""
        digest = self.compute_full_hash(item.value)
        logger.debug(f"{self.algorithm.name} {digest.hex()} {item.value}")
        return f"{digest.hex()}  {item.value}\n".encode("utf-8", errors="surrogateescape")
