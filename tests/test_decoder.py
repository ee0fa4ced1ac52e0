import io
import random

import pytest

import huffman as huff
from bitio import BitInputStream, BitSourceExhausted, pack_bits
from decoder import DecoderState, HuffmanDecoder, decode, decode_bytes, iter_decode
from huffman import PSEUDO_EOF, StructuralViolation
from tree_format import deserialize_tree, serialize_tree


def bits_of(path):
    return [int(ch) for ch in path]


def test_concrete_scenario_stops_before_eof():
    tree = deserialize_tree(serialize_tree(huff.build_huffman_tree({65: 3, 66: 1})))
    codes = huff.generate_huffman_codes(tree)
    stream = [bit for symbol in [65, 65, 66, 65, 256] for bit in bits_of(codes[symbol])]
    sink = bytearray()
    assert decode(tree, stream, sink, eof=256) == 4
    assert sink == bytearray([65, 65, 66, 65])


def test_bits_after_eof_are_not_consumed():
    tree = huff.build_huffman_tree({65: 3, 66: 1})
    stream = iter(bits_of("1" + "01" + "1111"))
    assert decode_bytes(tree, stream) == b"A"
    assert list(stream) == [1, 1, 1, 1]


@pytest.mark.parametrize("seed", [7, 8])
def test_encode_decode_inverse(seed):
    rng = random.Random(seed)
    data = bytes(rng.choice(b"etaoin shrdlu\n") for _ in range(2000))
    tree = huff.build_huffman_tree(huff.freq_table(data))
    bits = huff.huffman_encode(data, huff.generate_huffman_codes(tree), eof=tree.eof)
    packed, _ = pack_bits(bits)
    assert decode_bytes(tree, BitInputStream(packed)) == data


def test_decode_writes_to_file_like_sink():
    tree = huff.build_huffman_tree({65: 3, 66: 1})
    sink = io.BytesIO()
    assert decode(tree, bits_of("100" + "01"), sink) == 2
    assert sink.getvalue() == b"AB"


def test_state_transitions():
    tree = huff.build_huffman_tree({65: 3, 66: 1})
    decoder = HuffmanDecoder(tree)
    assert decoder.state is DecoderState.AT_ROOT
    assert decoder.feed(0) is None
    assert decoder.state is DecoderState.IN_FLIGHT
    assert decoder.feed(0) == 66
    assert decoder.state is DecoderState.AT_ROOT
    assert decoder.feed(1) == 65
    assert decoder.feed(0) is None
    assert decoder.feed(1) is None
    assert decoder.done
    assert decoder.emitted == 2
    with pytest.raises(ValueError):
        decoder.feed(0)
    decoder.reset()
    assert decoder.state is DecoderState.AT_ROOT and decoder.emitted == 0


def test_invalid_bit_rejected():
    decoder = HuffmanDecoder(huff.build_huffman_tree({65: 1}))
    with pytest.raises(ValueError):
        decoder.feed(2)


def test_exhausted_source_raises():
    tree = huff.build_huffman_tree({65: 3, 66: 1})
    with pytest.raises(BitSourceExhausted):
        decode_bytes(tree, bits_of("1100"))
    with pytest.raises(BitSourceExhausted):
        list(iter_decode(tree, []))


def test_lone_eof_tree_decodes_nothing():
    tree = huff.build_huffman_tree({})
    assert HuffmanDecoder(tree).done
    assert decode_bytes(tree, []) == b""


def test_explicit_eof_for_custom_alphabet():
    tree = huff.build_huffman_tree({0: 4, 1: 2, 2: 1}, alphabet_size=3)
    codes = huff.generate_huffman_codes(tree)
    stream = bits_of(huff.huffman_encode([0, 1, 2, 0], codes, eof=3))
    assert list(iter_decode(tree, stream, eof=3)) == [0, 1, 2, 0]


def test_missing_child_detected():
    tree = huff.HuffmanTree()
    tree.root = tree.add_internal()
    tree.set_child(tree.root, "1", tree.add_leaf(PSEUDO_EOF))
    with pytest.raises(StructuralViolation):
        decode_bytes(tree, [0])


def test_decoders_share_a_tree():
    tree = huff.build_huffman_tree({65: 3, 66: 1})
    first, second = HuffmanDecoder(tree), HuffmanDecoder(tree)
    assert first.feed(1) == 65
    assert second.feed(0) is None
    assert first.state is DecoderState.AT_ROOT
    assert second.state is DecoderState.IN_FLIGHT
