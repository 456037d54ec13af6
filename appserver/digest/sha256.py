"""
Resumable SHA-256.

hashlib cannot hand out its internal state, so an upload that spans several
requests would have to re-read every stored byte to report a digest. This
module implements the FIPS 180-4 compression function directly so the running
state (chaining words, total length, pending partial block) can be exported
into entry metadata and restored by a later request.
"""

import base64
import binascii
import struct
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

BLOCK_SIZE = 64
DIGEST_SIZE = 32

EMPTY_SHA256_HEX = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

_MASK = 0xFFFFFFFF

_INITIAL_H = (
    0x6a09e667, 0xbb67ae85, 0x3c6ef372, 0xa54ff53a,
    0x510e527f, 0x9b05688c, 0x1f83d9ab, 0x5be0cd19,
)

_K = (
    0x428a2f98, 0x71374491, 0xb5c0fbcf, 0xe9b5dba5, 0x3956c25b, 0x59f111f1, 0x923f82a4, 0xab1c5ed5,
    0xd807aa98, 0x12835b01, 0x243185be, 0x550c7dc3, 0x72be5d74, 0x80deb1fe, 0x9bdc06a7, 0xc19bf174,
    0xe49b69c1, 0xefbe4786, 0x0fc19dc6, 0x240ca1cc, 0x2de92c6f, 0x4a7484aa, 0x5cb0a9dc, 0x76f988da,
    0x983e5152, 0xa831c66d, 0xb00327c8, 0xbf597fc7, 0xc6e00bf3, 0xd5a79147, 0x06ca6351, 0x14292967,
    0x27b70a85, 0x2e1b2138, 0x4d2c6dfc, 0x53380d13, 0x650a7354, 0x766a0abb, 0x81c2c92e, 0x92722c85,
    0xa2bfe8a1, 0xa81a664b, 0xc24b8b70, 0xc76c51a3, 0xd192e819, 0xd6990624, 0xf40e3585, 0x106aa070,
    0x19a4c116, 0x1e376c08, 0x2748774c, 0x34b0bcb5, 0x391c0cb3, 0x4ed8aa4a, 0x5b9cca4f, 0x682e6ff3,
    0x748f82ee, 0x78a5636f, 0x84c87814, 0x8cc70208, 0x90befffa, 0xa4506ceb, 0xbef9a3f7, 0xc67178f2,
)

_BLOCK_WORDS = struct.Struct('>16L')
_LENGTH_FIELD = struct.Struct('>Q')

BytesLike = Union[bytes, bytearray, memoryview]


def _compress(h: Tuple[int, ...], data: BytesLike, offset: int) -> Tuple[int, ...]:
    """Run the compression function over the 64-byte block at data[offset:]."""
    w = list(_BLOCK_WORDS.unpack_from(data, offset))
    for i in range(16, 64):
        x = w[i - 15]
        y = w[i - 2]
        s0 = ((x >> 7 | x << 25) ^ (x >> 18 | x << 14) ^ (x >> 3)) & _MASK
        s1 = ((y >> 17 | y << 15) ^ (y >> 19 | y << 13) ^ (y >> 10)) & _MASK
        w.append((w[i - 16] + s0 + w[i - 7] + s1) & _MASK)

    a, b, c, d, e, f, g, hh = h
    for i in range(64):
        big_s1 = ((e >> 6 | e << 26) ^ (e >> 11 | e << 21) ^ (e >> 25 | e << 7)) & _MASK
        ch = (e & f) ^ (~e & g)
        t1 = (hh + big_s1 + ch + _K[i] + w[i]) & _MASK
        big_s0 = ((a >> 2 | a << 30) ^ (a >> 13 | a << 19) ^ (a >> 22 | a << 10)) & _MASK
        maj = (a & b) ^ (a & c) ^ (b & c)
        t2 = (big_s0 + maj) & _MASK
        hh = g
        g = f
        f = e
        e = (d + t1) & _MASK
        d = c
        c = b
        b = a
        a = (t1 + t2) & _MASK

    return (
        (h[0] + a) & _MASK, (h[1] + b) & _MASK, (h[2] + c) & _MASK, (h[3] + d) & _MASK,
        (h[4] + e) & _MASK, (h[5] + f) & _MASK, (h[6] + g) & _MASK, (h[7] + hh) & _MASK,
    )


def _pad_and_output(h: Tuple[int, ...], buffer: bytes, length: int) -> bytes:
    """Apply the length padding to a copy of the state and return the digest."""
    tail = buffer + b'\x80'
    tail += b'\x00' * ((56 - len(tail)) % BLOCK_SIZE)
    tail += _LENGTH_FIELD.pack((length * 8) & 0xFFFFFFFFFFFFFFFF)
    for offset in range(0, len(tail), BLOCK_SIZE):
        h = _compress(h, tail, offset)
    return struct.pack('>8L', *h)


@dataclass(frozen=True)
class Sha256State:
    """
    Serializable snapshot of a Sha256 computation.

    Attributes:
        h: The eight 32-bit chaining words after the last compressed block
        length: Total number of bytes fed to the engine so far
        buffer: Bytes received after the last full block (always < 64 bytes)
    """
    h: Tuple[int, ...]
    length: int
    buffer: bytes

    def __post_init__(self):
        if len(self.h) != 8 or any(not isinstance(x, int) or not 0 <= x <= _MASK for x in self.h):
            raise ValueError("SHA-256 state needs eight 32-bit words")
        if not isinstance(self.length, int) or self.length < 0:
            raise ValueError("SHA-256 state length must be a non-negative integer")
        if len(self.buffer) >= BLOCK_SIZE or len(self.buffer) != self.length % BLOCK_SIZE:
            raise ValueError("SHA-256 state buffer does not match its length")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "h": list(self.h),
            "length": self.length,
            "buffer": base64.b64encode(self.buffer).decode('ascii'),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Sha256State':
        """
        Deserialize a dictionary produced by to_dict.

        Raises:
            ValueError: If the dictionary is not a valid snapshot
        """
        try:
            h = tuple(data["h"])
            length = data["length"]
            buffer = base64.b64decode(data["buffer"], validate=True)
        except (KeyError, TypeError, binascii.Error) as e:
            raise ValueError(f"Malformed SHA-256 state: {e}") from e
        return Sha256State(h=h, length=length, buffer=buffer)


class Sha256:
    """
    SHA-256 engine with exportable state.

    Usage:
        engine = Sha256.import_state(saved) if saved else Sha256()
        engine.update(piece)
        saved = engine.export_state()
        current = engine.preview_hexdigest()
    """

    def __init__(self, data: BytesLike = b''):
        self._h: Tuple[int, ...] = _INITIAL_H
        self._length = 0
        self._buffer = b''
        self._finalized = False
        if data:
            self.update(data)

    @classmethod
    def import_state(cls, state: Sha256State) -> 'Sha256':
        """Rebuild an engine equivalent to the one that exported state."""
        engine = cls()
        engine._h = tuple(state.h)
        engine._length = state.length
        engine._buffer = bytes(state.buffer)
        return engine

    @property
    def length(self) -> int:
        """Total number of bytes processed."""
        return self._length

    def _check_open(self) -> None:
        if self._finalized:
            raise ValueError("SHA-256 engine already finalized")

    def update(self, data: BytesLike) -> None:
        """Feed more bytes; cost is linear in len(data)."""
        self._check_open()
        if not data:
            return
        view = memoryview(data).cast('B')
        self._length += len(view)

        h = self._h
        if self._buffer:
            needed = BLOCK_SIZE - len(self._buffer)
            if len(view) < needed:
                self._buffer += bytes(view)
                return
            h = _compress(h, self._buffer + bytes(view[:needed]), 0)
            view = view[needed:]
            self._buffer = b''

        full = len(view) - len(view) % BLOCK_SIZE
        for offset in range(0, full, BLOCK_SIZE):
            h = _compress(h, view, offset)
        self._h = h
        self._buffer = bytes(view[full:])

    def export_state(self) -> Sha256State:
        """Snapshot the resumable state."""
        self._check_open()
        return Sha256State(h=self._h, length=self._length, buffer=self._buffer)

    def preview_digest(self) -> bytes:
        """Digest of the bytes seen so far; the engine stays resumable."""
        self._check_open()
        return _pad_and_output(self._h, self._buffer, self._length)

    def preview_hexdigest(self) -> str:
        return self.preview_digest().hex()

    def finalize_digest(self) -> bytes:
        """Produce the final digest; no further update is allowed."""
        self._check_open()
        digest = _pad_and_output(self._h, self._buffer, self._length)
        self._finalized = True
        self._buffer = b''
        return digest

    def finalize_hexdigest(self) -> str:
        return self.finalize_digest().hex()
