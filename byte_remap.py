# Byte ranges GPT-2 keeps as-is when turning raw bytes into visible characters.
# https://github.com/openai/gpt-2/blob/master/src/encoder.py#L9
PRINTABLE_RANGES = (
    (ord("!"), ord("~")),  # 33..126
    (ord("¡"), ord("¬")),  # 161..172
    (ord("®"), ord("ÿ")),  # 174..255
)

# Substitutes start right after the byte range.
SUBSTITUTE_BASE = 256


def is_printable(byte: int) -> bool:
    """True if the byte is left untouched by the byte-level encoding."""
    return any(lo <= byte <= hi for lo, hi in PRINTABLE_RANGES)


def build_byte_remap():
    """Map every non-printable byte in 1..255 to a substitute codepoint.

    Returns a list of (byte, substitute) pairs in increasing byte order.
    Substitutes are contiguous starting at 257. Byte 0 is skipped because
    SentencePiece cannot hold empty keys or NUL in normalized strings, so
    GPT-2's substitute 256 never appears.
    """
    mapping = []
    n = 1
    for i in range(1, 256):
        if not is_printable(i):
            mapping.append((i, SUBSTITUTE_BASE + n))
            n += 1
    return mapping
