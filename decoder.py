"""
Streaming decoder

A cursor walks the tree one bit at a time: ``0`` goes left, ``1`` goes right.
Landing on a leaf emits its symbol and returns the cursor to the root, except
for the end-of-stream leaf, which finishes decoding and is never emitted.
The tree is only read, so any number of decoders may share one tree.
"""

import enum
import logging
from typing import Iterable, Iterator, Optional

from bitio import BitSourceExhausted
from huffman import HuffmanTree, StructuralViolation

logger = logging.getLogger(__name__)


class DecoderState(enum.Enum):
    AT_ROOT = "at_root"
    IN_FLIGHT = "in_flight"
    DONE = "done"


class HuffmanDecoder:
    def __init__(self, tree: HuffmanTree, eof: Optional[int] = None):
        if tree.root is None:
            raise StructuralViolation("cannot decode with an empty tree")
        self.tree = tree
        self.eof = tree.eof if eof is None else eof
        self.reset()

    @property
    def done(self) -> bool:
        return self.state is DecoderState.DONE

    def reset(self) -> None:
        self.cursor = self.tree.root
        self.state = DecoderState.AT_ROOT
        self.emitted = 0
        # a bare end-of-stream leaf means there is nothing to decode
        if self.tree.node(self.tree.root).is_leaf():
            self._land(self.tree.root)

    def feed(self, bit: int) -> Optional[int]:
        """Consume one bit. Returns the decoded symbol when a leaf is reached, else None."""
        if self.state is DecoderState.DONE:
            raise ValueError("decoder already reached the end-of-stream symbol")
        if bit == 0:
            child = self.tree.node(self.cursor).left
        elif bit == 1:
            child = self.tree.node(self.cursor).right
        else:
            raise ValueError(f"bit must be 0 or 1, got {bit!r}")
        if child is None:
            raise StructuralViolation(f"node {self.cursor} has no child for bit {bit}")
        return self._land(child)

    def _land(self, index: int) -> Optional[int]:
        node = self.tree.node(index)
        if not node.is_leaf():
            self.cursor = index
            self.state = DecoderState.IN_FLIGHT
            return None
        if node.symbol == self.eof:
            self.cursor = index
            self.state = DecoderState.DONE
            return None
        self.cursor = self.tree.root
        self.state = DecoderState.AT_ROOT
        self.emitted += 1
        return node.symbol


def iter_decode(tree: HuffmanTree, bits: Iterable[int], eof: Optional[int] = None) -> Iterator[int]:
    """Yield decoded symbols until the end-of-stream leaf; raises BitSourceExhausted if bits run out first."""
    decoder = HuffmanDecoder(tree, eof)
    consumed = 0
    if decoder.done:
        return
    for bit in bits:
        consumed += 1
        symbol = decoder.feed(bit)
        if symbol is not None:
            yield symbol
        elif decoder.done:
            logger.debug("decoded %d symbols from %d bits", decoder.emitted, consumed)
            return
    raise BitSourceExhausted(
        f"bit source exhausted after {consumed} bits and {decoder.emitted} symbols "
        f"without reaching end-of-stream symbol {decoder.eof}"
    )


def decode(tree: HuffmanTree, bits: Iterable[int], sink, eof: Optional[int] = None) -> int:
    """Write decoded bytes to ``sink`` (a bytearray or anything with write()). Returns the count."""
    out = bytearray(iter_decode(tree, bits, eof))
    if isinstance(sink, bytearray):
        sink.extend(out)
    else:
        sink.write(bytes(out))
    return len(out)


def decode_bytes(tree: HuffmanTree, bits: Iterable[int], eof: Optional[int] = None) -> bytes:
    return bytes(iter_decode(tree, bits, eof))
