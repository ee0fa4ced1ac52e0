"""
Tree description format

A description is a flat sequence of two-line records, one per leaf:

    65        <- decimal symbol, 0..alphabet_size
    0         <- root-to-leaf path, '0' = left, '1' = right

There is no header, count or terminator; end of input ends the sequence.
Only the structure survives a round trip, internal frequencies are not stored.
"""

import logging
from typing import Iterable, Iterator, List, Tuple

from huffman import ALPHABET_SIZE, LEFT, RIGHT, HuffmanTree, StructuralViolation

logger = logging.getLogger(__name__)

Record = Tuple[int, str]


class FormatError(ValueError):
    """A description record could not be parsed (bad symbol, bad path, truncated record)."""


def serialize_tree(tree: HuffmanTree) -> List[Record]:
    if tree.root is not None and tree.node(tree.root).is_leaf():
        # a lone leaf sits at the empty path, which no record can carry
        raise FormatError(f"cannot describe a single-leaf tree (symbol {tree.node(tree.root).symbol})")
    records = list(tree.leaf_paths())
    logger.debug("serialized %d leaf records", len(records))
    return records


def _parse_symbol(value, number: int, alphabet_size: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        symbol = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        symbol = int(value.strip())
    else:
        raise FormatError(f"record {number}: symbol {value!r} is not a decimal integer")
    if not 0 <= symbol <= alphabet_size:
        raise FormatError(f"record {number}: symbol {symbol} outside [0, {alphabet_size}]")
    return symbol


def _check_path(path, number: int) -> None:
    if not isinstance(path, str) or not path:
        raise FormatError(f"record {number}: path is empty")
    bad = set(path) - {LEFT, RIGHT}
    if bad:
        raise FormatError(f"record {number}: path {path!r} contains characters other than '0' and '1'")


def _attach(tree: HuffmanTree, symbol: int, path: str) -> None:
    index = tree.root
    for direction in path[:-1]:
        child = tree.child(index, direction)
        if child is None:
            child = tree.add_internal()
            tree.set_child(index, direction, child)
        elif tree.node(child).is_leaf():
            raise StructuralViolation(f"path {path!r} passes through the leaf for symbol {tree.node(child).symbol}")
        index = child

    last = path[-1]
    if tree.child(index, last) is not None:
        raise StructuralViolation(f"path {path!r} is already occupied")
    tree.set_child(index, last, tree.add_leaf(symbol))


def deserialize_tree(records: Iterable[Record], alphabet_size: int = ALPHABET_SIZE) -> HuffmanTree:
    """
    Rebuild a tree from (symbol, path) records.

    Raises FormatError for unparseable records and StructuralViolation for
    conflicting or incomplete descriptions. Nothing is returned on failure.
    """
    tree = HuffmanTree(alphabet_size)
    tree.root = tree.add_internal() # placeholder, filled in by the records

    number = 0
    for number, (symbol, path) in enumerate(records, 1):
        symbol = _parse_symbol(symbol, number, alphabet_size)
        _check_path(path, number)
        try:
            _attach(tree, symbol, path)
        except StructuralViolation as e:
            raise StructuralViolation(f"record {number}: {e}") from e

    if number == 0:
        raise StructuralViolation("description contains no records")
    tree.validate()
    logger.debug("deserialized %d records into %d nodes", number, len(tree))
    return tree


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def parse_records(lines: Iterable[str]) -> Iterator[Tuple[str, str]]:
    """Pair up symbol and path lines. Raises FormatError on a dangling symbol line."""
    it = iter(lines)
    number = 0
    for symbol_line in it:
        number += 1
        path_line = next(it, None)
        if path_line is None:
            raise FormatError(f"record {number}: symbol line {_strip_eol(symbol_line)!r} has no path line")
        yield _strip_eol(symbol_line), _strip_eol(path_line)


def write_tree(tree: HuffmanTree, sink) -> int:
    """Write the description of ``tree`` to a text sink; returns the record count."""
    records = serialize_tree(tree)
    for symbol, path in records:
        sink.write(f"{symbol}\n{path}\n")
    return len(records)


def read_tree(source: Iterable[str], alphabet_size: int = ALPHABET_SIZE) -> HuffmanTree:
    return deserialize_tree(parse_records(source), alphabet_size)


def tree_to_text(tree: HuffmanTree) -> str:
    return "".join(f"{symbol}\n{path}\n" for symbol, path in serialize_tree(tree))


def tree_from_text(text: str, alphabet_size: int = ALPHABET_SIZE) -> HuffmanTree:
    return read_tree(text.splitlines(), alphabet_size)
