import pytest

from byte_remap import PRINTABLE_RANGES, build_byte_remap, is_printable


def test_classification_is_exhaustive_and_exclusive():
    for byte in range(1, 256):
        hits = sum(lo <= byte <= hi for lo, hi in PRINTABLE_RANGES)
        assert hits in (0, 1)
        assert is_printable(byte) == (hits == 1)


@pytest.mark.parametrize(
    "byte, printable",
    [(1, False), (10, False), (32, False), (33, True), (126, True), (127, False),
     (160, False), (161, True), (172, True), (173, False), (174, True), (255, True)],
)
def test_range_boundaries(byte, printable):
    assert is_printable(byte) is printable


def test_substitutes_are_contiguous_from_257():
    remap = build_byte_remap()
    assert len(remap) == 67
    assert [sub for _, sub in remap] == list(range(257, 257 + 67))
    bytes_ = [b for b, _ in remap]
    assert bytes_ == sorted(bytes_)
    assert all(not is_printable(b) for b in bytes_)
    assert 0 not in bytes_


def test_remap_is_deterministic():
    assert build_byte_remap() == build_byte_remap()


def test_matches_gpt2_byte_level_alphabet():
    pre_tokenizers = pytest.importorskip("tokenizers.pre_tokenizers")
    alphabet = set(pre_tokenizers.ByteLevel.alphabet())
    ours = {chr(b) for b in range(1, 256) if is_printable(b)}
    ours |= {chr(sub) for _, sub in build_byte_remap()}
    # byte 0 is GPT-2's substitute 256, which the remap leaves out
    assert ours | {chr(256)} == alphabet


def test_known_substitutes():
    remap = dict(build_byte_remap())
    assert chr(remap[ord(" ")]) == "Ġ"
    assert chr(remap[ord("\n")]) == "Ċ"
    assert chr(remap[ord("\t")]) == "ĉ"
