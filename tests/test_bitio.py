import io

import pytest

from bitio import BitInputStream, BitOutputStream, BitSourceExhausted, pack_bits


def test_pack_bits_pads_final_byte():
    assert pack_bits("10110") == (bytes([0b10110000]), 3)
    assert pack_bits("00000001") == (b"\x01", 0)
    assert pack_bits("") == (b"", 0)


def test_input_stream_reads_msb_first():
    stream = BitInputStream(bytes([0b10100000, 0xFF]))
    assert [stream.read_bit() for _ in range(4)] == [1, 0, 1, 0]
    assert stream.bits_read == 4
    assert list(stream) == [0, 0, 0, 0] + [1] * 8


def test_read_bit_past_end_raises():
    stream = BitInputStream(io.BytesIO(b"\x80"))
    assert list(stream) == [1, 0, 0, 0, 0, 0, 0, 0]
    with pytest.raises(BitSourceExhausted):
        stream.read_bit()
    assert issubclass(BitSourceExhausted, EOFError)


def test_output_stream_counts_and_pads():
    buf = io.BytesIO()
    out = BitOutputStream(buf)
    out.write_bits("111")
    out.write_bit(0)
    assert out.bits_written == 4
    assert out.flush() == 4
    assert buf.getvalue() == b"\xe0"


def test_output_stream_rejects_bad_bits():
    out = BitOutputStream(io.BytesIO())
    with pytest.raises(ValueError):
        out.write_bit(3)
    with pytest.raises(ValueError):
        out.write_bits("01x")
