"""Convert a Hugging Face byte-level BPE tokenizer into a SentencePiece model.

Reads `tokenizer_config.json` and `tokenizer.json` from a directory (or
downloads them from the Hub) and writes a SentencePiece ModelProto whose
normalizer applies GPT-2's byte-to-unicode remapping and whose denormalizer
undoes it.

Usage:
    python convert_tokenizer.py ./hf_tokenizer tokenizer.model
    python convert_tokenizer.py vikhyatk/moondream2 out/tokenizer.model
"""
import argparse
import os
import sys

import requests
from huggingface_hub import hf_hub_download
from tqdm import tqdm

from byte_remap import build_byte_remap
from charsmap import check_round_trip, denormalizer_spec, normalizer_spec
from conversion_errors import ConversionError, ConversionIOError
from hf_document import load_document
from sp_model import build_model, serialize_model, write_model
from vocab_pieces import PieceType, assemble_pieces, parse_added_tokens

CONFIG_FILE = "tokenizer_config.json"
TOKENIZER_FILE = "tokenizer.json"
HF_RESOLVE_URL = "https://huggingface.co/{repo_id}/resolve/{revision}/{filename}"


def download_file(url, filename):
    """Download file with progress bar"""
    partial = filename + ".part"
    response = requests.get(url, stream=True, timeout=60)
    response.raise_for_status()
    total_size = int(response.headers.get('content-length', 0))

    try:
        with open(partial, 'wb') as file, tqdm(
                desc=os.path.basename(filename),
                total=total_size,
                unit='B',
                unit_scale=True,
                unit_divisor=1024,
            ) as bar:
            for data in response.iter_content(chunk_size=1024):
                size = file.write(data)
                bar.update(size)
        os.replace(partial, filename)
    except Exception:
        if os.path.exists(partial):
            os.remove(partial)
        raise


def fetch_tokenizer_files(repo_id, local_dir, revision=None, verbose=True):
    """Make sure both tokenizer files of a Hub repo exist in local_dir"""
    os.makedirs(local_dir, exist_ok=True)
    for filename in (CONFIG_FILE, TOKENIZER_FILE):
        if verbose:
            print(f"Downloading {filename} from {repo_id}...")
        try:
            hf_hub_download(
                repo_id=repo_id,
                filename=filename,
                revision=revision,
                local_dir=local_dir,
            )
        except Exception as e:
            print(f"Error downloading from Hugging Face: {e}")
            # Fallback to direct URL
            url = HF_RESOLVE_URL.format(
                repo_id=repo_id, revision=revision or "main", filename=filename
            )
            try:
                download_file(url, os.path.join(local_dir, filename))
            except (requests.RequestException, OSError) as e:
                raise ConversionIOError(url, str(e)) from e
    return local_dir


def read_unk_token(config):
    unk = config.field("unk_token")
    # transformers may save special tokens as AddedToken dicts
    if unk.is_object():
        return unk.field("content").as_str()
    return unk.as_str()


def read_vocab(tokenizer):
    vocab = tokenizer.field("model").field("vocab")
    return {token: token_id.value for token, token_id in vocab.items()}


def convert_hf_tokenizer(hf_tokenizer, output_path, verbose=True):
    """Convert the tokenizer in directory hf_tokenizer and write the model.

    Returns the ModelDescriptor that was written.
    """
    if verbose:
        print(f"Converting {hf_tokenizer} to {output_path}...")

    config = load_document(os.path.join(hf_tokenizer, CONFIG_FILE))
    unk_token = read_unk_token(config)
    tokenizer = load_document(os.path.join(hf_tokenizer, TOKENIZER_FILE))
    vocab = read_vocab(tokenizer)
    added_tokens = parse_added_tokens(tokenizer)

    normalizer = normalizer_spec(build_byte_remap())
    denormalizer = denormalizer_spec(build_byte_remap())
    check_round_trip(normalizer, denormalizer, build_byte_remap())

    pieces = assemble_pieces(vocab, unk_token, added_tokens)
    if not any(p.kind is PieceType.UNKNOWN for p in pieces):
        print(f"Warning: unk_token {unk_token!r} is not in the vocabulary, "
              "no piece is marked UNKNOWN")
    for added in added_tokens:
        if added.normalized and added.content in vocab:
            print(f"Warning: added token {added.content!r} is already in the vocabulary")

    model = build_model(normalizer, denormalizer, pieces)
    data = serialize_model(model)
    write_model(output_path, data)

    if verbose:
        kept = len(pieces) - len(vocab)
        print(f"Vocabulary size: {len(vocab)}")
        print(f"Added tokens: kept {kept} of {len(added_tokens)}")
        print(f"Wrote {model.trainer.vocab_size} pieces ({len(data):,} bytes) to {output_path}")
    return model


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Convert a Hugging Face tokenizer to a SentencePiece model"
    )
    parser.add_argument(
        "source",
        help="Directory with tokenizer.json and tokenizer_config.json, or a Hub repo id",
    )
    parser.add_argument("output", help="Output SentencePiece .model file")
    parser.add_argument("--revision", default=None, help="Hub revision to download")
    parser.add_argument(
        "--cache-dir",
        default=None,
        help="Where downloaded files go (default: ./<repo name>)",
    )
    parser.add_argument("--quiet", action="store_true", help="Only print warnings")
    args = parser.parse_args(argv)

    verbose = not args.quiet
    try:
        source = args.source
        if not os.path.isdir(source):
            local_dir = args.cache_dir or args.source.split('/')[-1]
            source = fetch_tokenizer_files(
                args.source, local_dir, revision=args.revision, verbose=verbose
            )
        convert_hf_tokenizer(source, args.output, verbose=verbose)
    except ConversionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
