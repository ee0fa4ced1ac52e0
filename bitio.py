import io
from typing import Iterator, Tuple


class BitSourceExhausted(EOFError):
    """The bit source ran out before the end-of-stream symbol was decoded."""


class BitInputStream:
    """
    Reads a binary stream one bit at a time, most significant bit first.

    Iterating yields bits until the stream is exhausted; read_bit() raises
    BitSourceExhausted instead.
    """

    def __init__(self, stream):
        if isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(bytes(stream))
        self.stream = stream
        self.current = 0
        self.remaining = 0 # bits left in current
        self.bits_read = 0

    def read_bit(self) -> int:
        if self.remaining == 0:
            chunk = self.stream.read(1)
            if not chunk:
                raise BitSourceExhausted(f"bit source exhausted after {self.bits_read} bits")
            self.current = chunk[0]
            self.remaining = 8
        self.remaining -= 1
        self.bits_read += 1
        return (self.current >> self.remaining) & 1

    def __iter__(self) -> Iterator[int]:
        while True:
            try:
                yield self.read_bit()
            except BitSourceExhausted:
                return

    def close(self):
        self.stream.close()


class BitOutputStream:
    """Writes bits MSB first; close() zero-pads and flushes the final partial byte."""

    def __init__(self, stream):
        self.stream = stream
        self.acc = 0
        self.acc_bits = 0
        self.bits_written = 0

    def write_bit(self, bit: int) -> None:
        if bit not in (0, 1):
            raise ValueError(f"bit must be 0 or 1, got {bit!r}")
        self.acc = (self.acc << 1) | bit
        self.acc_bits += 1
        self.bits_written += 1
        if self.acc_bits == 8:
            self.stream.write(bytes([self.acc]))
            self.acc = 0
            self.acc_bits = 0

    def write_bits(self, bits: str) -> None:
        for ch in bits:
            if ch == '1':
                self.write_bit(1)
            elif ch == '0':
                self.write_bit(0)
            else:
                raise ValueError(f"bit string contains {ch!r}")

    def flush(self) -> int:
        """Pad the pending byte with zeros and write it. Returns the number of pad bits."""
        pad_bits = 0
        if self.acc_bits != 0:
            pad_bits = 8 - self.acc_bits
            self.stream.write(bytes([(self.acc << pad_bits) & 0xFF]))
            self.acc = 0
            self.acc_bits = 0
        return pad_bits

    def close(self) -> int:
        pad_bits = self.flush()
        self.stream.close()
        return pad_bits


def pack_bits(bits: str) -> Tuple[bytes, int]:
    """
    Converts a '0'/'1' string into packed bytes
    Returns (packed_bytes, pad_bits) where pad_bits is number of 0 bits added at the end
    """
    buf = io.BytesIO()
    out = BitOutputStream(buf)
    out.write_bits(bits)
    pad_bits = out.flush()
    return buf.getvalue(), pad_bits
