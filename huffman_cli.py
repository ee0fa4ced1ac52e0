"""
Huffman compressor driver

  huffman-tree compress notes.txt                       -> notes.txt.code + notes.txt.short
  huffman-tree decompress notes.txt.code notes.txt.short notes.out

The .code file is the text tree description, the .short file is the packed
bitstream terminated by the end-of-stream code.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import huffman as huff
from bitio import BitInputStream, BitOutputStream, BitSourceExhausted
from decoder import decode
from huffman import StructuralViolation
from tree_format import FormatError, read_tree, write_tree

logger = logging.getLogger(__name__)


def compress_file(input_path: Path, code_path: Path, short_path: Path) -> dict:
    data = input_path.read_bytes()
    if not data:
        # a lone end-of-stream leaf has an empty path, which the description format cannot hold
        code_path.write_text("", encoding="ascii")
        short_path.write_bytes(b"")
        return {"input_bytes": 0, "records": 0, "compressed_bytes": 0, "pad_bits": 0}

    ft = huff.freq_table(data)
    tree = huff.build_huffman_tree(ft)
    code_map = huff.generate_huffman_codes(tree)

    with code_path.open("w", encoding="ascii", newline="\n") as f:
        records = write_tree(tree, f)

    with short_path.open("wb") as f:
        out = BitOutputStream(f)
        out.write_bits(huff.huffman_encode(data, code_map, eof=tree.eof))
        pad_bits = out.flush()
        bits_written = out.bits_written

    logger.debug("compressed %s: %d records, %d bits, %d pad bits", input_path, records, bits_written, pad_bits)
    return {
        "input_bytes": len(data),
        "records": records,
        "compressed_bytes": short_path.stat().st_size,
        "pad_bits": pad_bits,
    }


def decompress_file(code_path: Path, short_path: Path, output_path: Path) -> int:
    if code_path.stat().st_size == 0 and short_path.stat().st_size == 0:
        output_path.write_bytes(b"")
        return 0
    try:
        with code_path.open("r", encoding="ascii") as f:
            tree = read_tree(f)
    except UnicodeDecodeError as e:
        raise FormatError(f"{code_path}: non-ASCII byte at offset {e.start}") from e

    decoded = bytearray()
    with short_path.open("rb") as src:
        count = decode(tree, BitInputStream(src), decoded)
    # written only once decoding succeeded
    output_path.write_bytes(decoded)
    return count


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="huffman-tree", description="Compress and decompress files with a Huffman tree")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    c = sub.add_parser("compress", help="Write INPUT.code (tree description) and INPUT.short (bitstream)")
    c.add_argument("input", type=Path)
    c.add_argument("--code", type=Path, default=None, help="Tree description output (default INPUT.code)")
    c.add_argument("--short", type=Path, default=None, help="Compressed bitstream output (default INPUT.short)")

    d = sub.add_parser("decompress", help="Rebuild the original file from a .code and .short pair")
    d.add_argument("code", type=Path)
    d.add_argument("short", type=Path)
    d.add_argument("output", type=Path)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "compress":
            code_path = args.code or args.input.with_name(args.input.name + ".code")
            short_path = args.short or args.input.with_name(args.input.name + ".short")
            stats = compress_file(args.input, code_path, short_path)
            ratio = stats["compressed_bytes"] / max(1, stats["input_bytes"])
            print(f"Wrote {stats['records']} tree records to {code_path}")
            print(f"Wrote {stats['compressed_bytes']} bytes to {short_path} (ratio {ratio:.3f})")
        else:
            count = decompress_file(args.code, args.short, args.output)
            print(f"Wrote {count} bytes to {args.output}")
    except (FormatError, StructuralViolation, BitSourceExhausted, OSError) as e:
        print(f"huffman-tree: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
