"""Precompiled charsmaps for SentencePiece normalizer specs.

A precompiled charsmap is the blob SentencePiece stores in
`NormalizerSpec.precompiled_charsmap`:

    uint32 (LE)  size of the trie in bytes
    trie         darts-clone double array, one uint32 (LE) unit per node
    normalized   replacement strings, each terminated by NUL

The trie maps the UTF-8 bytes of a source string to the offset of its
replacement inside the normalized block. The normalizer walks the input,
takes the longest trie match at each position and copies the input through
unchanged where nothing matches.
"""
import struct
from dataclasses import dataclass

import numpy as np

from byte_remap import build_byte_remap
from conversion_errors import CompileError

# darts-clone unit layout
VALUE_BIT = 1 << 31
HAS_LEAF_BIT = 1 << 8
EXTENSION_BIT = 1 << 9
MAX_OFFSET = 1 << 29
MAX_PLAIN_OFFSET = 1 << 21
BLOCK_SIZE = 256


def _label(unit):
    return unit & (VALUE_BIT | 0xFF)


def _offset(unit):
    return (unit >> 10) << ((unit & EXTENSION_BIT) >> 6)


def _has_leaf(unit):
    return (unit >> 8) & 1 == 1


def _value(unit):
    return unit & (VALUE_BIT - 1)


def _encode_offset(offset):
    if offset >= MAX_OFFSET:
        raise CompileError(f"trie offset {offset} is too large")
    if offset < MAX_PLAIN_OFFSET:
        return offset << 10
    if offset & 0xFF:
        raise CompileError(f"trie offset {offset} cannot be encoded")
    return (offset << 2) | EXTENSION_BIT


def build_double_array(keys, values):
    """Build a darts-clone compatible double array.

    `keys` are non-empty byte strings without NUL, `values` non-negative
    ints below 2**31. Returns the units as a uint32 numpy array whose length
    is a multiple of 256, so every child lookup stays inside the array.
    """
    root = {}
    for key, value in zip(keys, values):
        if not key or 0 in key:
            raise CompileError(f"invalid trie key {bytes(key)!r}")
        if not 0 <= value < VALUE_BIT:
            raise CompileError(f"trie value {value} out of range")
        node = root
        for label in key:
            node = node.setdefault(label, {})
        # NUL is the terminator label, its unit carries the value
        node[0] = value

    units = [0] * BLOCK_SIZE
    used = {0}
    # a zero root offset is rejected by DoubleArray::validate
    used_bases = {0}
    lowest_free = 1

    stack = [(0, root)]
    while stack:
        pos, node = stack.pop()
        labels = sorted(node)
        if not labels and pos != 0:
            continue
        first = labels[0] if labels else 0

        while lowest_free in used:
            lowest_free += 1
        candidate = lowest_free
        while True:
            if candidate not in used:
                base = candidate ^ first
                if base not in used_bases and all(
                    (base ^ label) not in used for label in labels
                ):
                    break
            candidate += 1

        used_bases.add(base)
        end = (base | (BLOCK_SIZE - 1)) + 1
        if end > len(units):
            units.extend([0] * (end - len(units)))

        units[pos] |= _encode_offset(pos ^ base)
        for label in labels:
            child = base ^ label
            used.add(child)
            if label == 0:
                units[pos] |= HAS_LEAF_BIT
                units[child] = node[0] | VALUE_BIT
            else:
                units[child] = label
                stack.append((child, node[label]))

    _fill_unused(units, used, used_bases)
    return np.array(units, dtype=np.uint32)


def _fill_unused(units, used, used_bases):
    """Label free units so that no lookup can ever land on them.

    A free unit at i gets label i ^ u, where u is a position in the same
    block that is not the base of any node. Reaching i with label c means
    base ^ c == i, and the label only matches when base == u.
    """
    for start in range(0, len(units), BLOCK_SIZE):
        block = range(start, start + BLOCK_SIZE)
        unused_offset = next((i for i in block if i not in used_bases), None)
        if unused_offset is None:
            raise CompileError(f"no free offset in trie block at {start}")
        for i in block:
            if i not in used:
                units[i] = (i ^ unused_offset) & 0xFF


def common_prefix_search(units, data, start=0):
    """Yield (value, length) for every key that is a prefix of data[start:]."""
    node_pos = _offset(int(units[0]))
    for i in range(start, len(data)):
        label = data[i]
        node_pos ^= label
        if node_pos >= len(units):
            return
        unit = int(units[node_pos])
        if _label(unit) != label:
            return
        node_pos ^= _offset(unit)
        if _has_leaf(unit):
            yield _value(int(units[node_pos])), i + 1 - start


def exact_match(units, key):
    for value, length in common_prefix_search(units, key):
        if length == len(key):
            return value
    return None


def compile_chars_map(chars_map):
    """Compile a {source: replacement} mapping into a precompiled charsmap."""
    normalized = bytearray()
    positions = {}
    entries = []
    for source, target in sorted(chars_map.items()):
        key = source.encode("utf-8")
        replacement = target.encode("utf-8")
        if not key:
            raise CompileError("empty source string")
        if b"\0" in key or b"\0" in replacement:
            raise CompileError(f"NUL in mapping {source!r} -> {target!r}")
        if replacement not in positions:
            positions[replacement] = len(normalized)
            normalized += replacement + b"\0"
        entries.append((key, positions[replacement]))
    entries.sort()

    units = build_double_array([k for k, _ in entries], [v for _, v in entries])

    # Every key has to come back out of the trie with its own offset
    for key, value in entries:
        found = exact_match(units, key)
        if found != value:
            raise CompileError(
                f"key {key!r} resolved to {found}, expected {value}"
            )

    trie = units.astype("<u4").tobytes()
    return struct.pack("<I", len(trie)) + trie + bytes(normalized)


def decode_chars_map(blob):
    """Split a precompiled charsmap into (units, normalized block)."""
    if len(blob) <= 4:
        raise CompileError("charsmap blob is truncated")
    (trie_size,) = struct.unpack_from("<I", blob)
    if trie_size >= len(blob) or trie_size % 4:
        raise CompileError(f"bad trie size {trie_size} for {len(blob)} byte blob")
    units = np.frombuffer(blob, dtype="<u4", count=trie_size // 4, offset=4)
    return units, bytes(blob[4 + trie_size:])


def _char_len(lead):
    if lead < 0x80:
        return 1
    if lead < 0xE0:
        return 2
    if lead < 0xF0:
        return 3
    return 4


def apply_chars_map(blob, text: str) -> str:
    """Normalize text the way the SentencePiece normalizer uses a charsmap."""
    units, normalized = decode_chars_map(blob)
    data = text.encode("utf-8")
    out = bytearray()
    i = 0
    while i < len(data):
        match = None
        # results come shortest first, the last one is the longest
        for match in common_prefix_search(units, data, i):
            pass
        if match is None:
            n = _char_len(data[i])
            out += data[i:i + n]
            i += n
            continue
        value, length = match
        out += normalized[value:normalized.index(b"\0", value)]
        i += length
    return out.decode("utf-8")


@dataclass(frozen=True)
class NormalizerSpec:
    precompiled_charsmap: bytes
    add_dummy_prefix: bool = False
    remove_extra_whitespaces: bool = False
    escape_whitespaces: bool = False


def forward_chars_map(remap):
    return {chr(byte): chr(sub) for byte, sub in remap}


def inverse_chars_map(remap):
    return {chr(sub): chr(byte) for byte, sub in remap}


def normalizer_spec(remap=None):
    """Normalizer turning raw bytes into their visible substitutes."""
    if remap is None:
        remap = build_byte_remap()
    return NormalizerSpec(compile_chars_map(forward_chars_map(remap)))


def denormalizer_spec(remap=None):
    """Denormalizer turning substitutes back into raw bytes."""
    if remap is None:
        remap = build_byte_remap()
    return NormalizerSpec(compile_chars_map(inverse_chars_map(remap)))


def check_round_trip(normalizer, denormalizer, remap):
    for byte, sub in remap:
        forward = apply_chars_map(normalizer.precompiled_charsmap, chr(byte))
        if forward != chr(sub):
            raise CompileError(f"byte {byte} normalized to {forward!r}")
        back = apply_chars_map(denormalizer.precompiled_charsmap, forward)
        if back != chr(byte):
            raise CompileError(f"byte {byte} came back as {back!r}")
