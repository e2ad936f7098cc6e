"""
Composite hash binding a rendered document to its signing metadata.

The digest covers the full document byte stream followed by
`name|phone|code|signing_time`, fed into one SHA-256 context in that
fixed order. The binder holds no mutable state and needs no locking.
"""

import os
from pathlib import Path
from typing import Union

from cryptography.hazmat.primitives import hashes

from ..config import HASH_BUFFER_SIZE, HASH_FIELD_DELIMITER
from ..errors import HashBindingError

DocumentSource = Union[str, os.PathLike, bytes, bytearray, memoryview]


class HashBinder:
    """
    Computes and verifies composite document hashes.
    """

    def __init__(self, buffer_size: int = HASH_BUFFER_SIZE):
        """
        Initialize hash binder.

        Args:
            buffer_size: Chunk size used when streaming document files
        """
        if buffer_size <= 0:
            raise ValueError(f"Buffer size must be positive, got {buffer_size}")
        self.buffer_size = buffer_size

    def compute_composite_hash(
        self,
        document: DocumentSource,
        name: str,
        phone: str,
        code: str,
        signing_time: str,
    ) -> bytes:
        """
        Compute the composite digest.

        Args:
            document: Path to the rendered document, or its raw bytes
            name: Signer full name
            phone: Phone number the code was delivered to
            code: Confirmation code
            signing_time: Signing timestamp

        Returns:
            32-byte digest

        Raises:
            HashBindingError: If the document is empty or unreadable, or
                any metadata field is empty
        """
        if not all([name, phone, code, signing_time]):
            raise HashBindingError("All metadata parameters must be non-empty")

        context = hashes.Hash(hashes.SHA256())
        self._feed_document(context, document)

        delimiter = HASH_FIELD_DELIMITER.encode('utf-8')
        context.update(name.encode('utf-8'))
        context.update(delimiter)
        context.update(phone.encode('utf-8'))
        context.update(delimiter)
        context.update(code.encode('utf-8'))
        context.update(delimiter)
        context.update(signing_time.encode('utf-8'))

        return context.finalize()

    def _feed_document(self, context: hashes.Hash, document: DocumentSource):
        if isinstance(document, (bytes, bytearray, memoryview)):
            if len(document) == 0:
                raise HashBindingError("Document is empty")
            context.update(bytes(document))
            return

        if not document:
            raise HashBindingError("File path cannot be empty")

        path = Path(document)
        total = 0
        try:
            with path.open('rb') as fh:
                while True:
                    chunk = fh.read(self.buffer_size)
                    if not chunk:
                        break
                    context.update(chunk)
                    total += len(chunk)
        except OSError as e:
            raise HashBindingError(f"Failed to open file: {path}: {e}")

        if total == 0:
            raise HashBindingError(f"File is empty: {path}")

    @staticmethod
    def to_hex(digest: bytes) -> str:
        """
        Encode a digest as lowercase hex.

        Raises:
            HashBindingError: If the digest is empty
        """
        if not digest:
            raise HashBindingError("Hash cannot be empty")
        return digest.hex()

    def verify(
        self,
        document: DocumentSource,
        name: str,
        phone: str,
        code: str,
        signing_time: str,
        expected_hex: str,
    ) -> bool:
        """
        Recompute the digest and compare it with an expected hex string.

        The comparison is case-insensitive and constant-time.

        Returns:
            True if the digests match

        Raises:
            HashBindingError: If expected_hex is empty or the digest
                cannot be computed
        """
        if not expected_hex:
            raise HashBindingError("Expected hash cannot be empty")

        computed = self.to_hex(
            self.compute_composite_hash(document, name, phone, code, signing_time)
        )
        return constant_time_equals(computed, expected_hex.lower())


def constant_time_equals(left: str, right: str) -> bool:
    """
    Compare two strings without short-circuiting on the first difference.

    Every position is visited and differences are OR-accumulated; the only
    branch is on the final accumulator.
    """
    left_bytes = left.encode('utf-8')
    right_bytes = right.encode('utf-8')
    if len(left_bytes) != len(right_bytes):
        return False

    accumulator = 0
    for a, b in zip(left_bytes, right_bytes):
        accumulator |= a ^ b
    return accumulator == 0
