import json
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))


@pytest.fixture
def make_tokenizer_dir(tmp_path):
    """Factory writing tokenizer_config.json and tokenizer.json into tmp_path."""

    def _make(vocab, unk_token="<unk>", added_tokens=None, name="hf"):
        path = tmp_path / name
        path.mkdir()
        config = {} if unk_token is None else {"unk_token": unk_token}
        tokenizer = {"model": {"type": "BPE", "vocab": vocab, "merges": []}}
        if added_tokens is not None:
            tokenizer["added_tokens"] = added_tokens
        (path / "tokenizer_config.json").write_text(json.dumps(config), encoding="utf-8")
        (path / "tokenizer.json").write_text(json.dumps(tokenizer), encoding="utf-8")
        return str(path)

    return _make


@pytest.fixture
def byte_level_vocab():
    """<unk>, the 256 byte-level characters and a couple of merges."""
    from byte_remap import build_byte_remap, is_printable

    alphabet = [chr(b) for b in range(1, 256) if is_printable(b)]
    alphabet += [chr(sub) for _, sub in build_byte_remap()]
    tokens = ["<unk>"] + sorted(alphabet) + ["he", "ll", "hell", "hello", "Ġworld"]
    return {token: i for i, token in enumerate(tokens)}
