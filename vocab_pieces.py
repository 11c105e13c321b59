import enum
from dataclasses import dataclass
from typing import List, Optional

from conversion_errors import SchemaError


class PieceType(enum.Enum):
    NORMAL = "NORMAL"
    UNKNOWN = "UNKNOWN"
    USER_DEFINED = "USER_DEFINED"


@dataclass(frozen=True)
class VocabPiece:
    piece: str
    kind: PieceType
    score: float


@dataclass(frozen=True)
class AddedToken:
    """One entry of `added_tokens` in tokenizer.json."""

    content: str
    normalized: bool
    id: Optional[int] = None
    special: bool = False


def parse_added_tokens(doc):
    """Read the `added_tokens` array; absent or null means no added tokens."""
    tokens_doc = doc.get("added_tokens")
    if tokens_doc is None:
        return []
    tokens = []
    for record in tokens_doc:
        token_id = record.get("id")
        special = record.get("special")
        tokens.append(
            AddedToken(
                content=record.field("content").as_str(),
                normalized=record.field("normalized").as_bool(),
                id=token_id.as_int() if token_id is not None else None,
                special=special.as_bool() if special is not None else False,
            )
        )
    return tokens


def order_vocab(vocab, source="tokenizer.json"):
    """Turn a token -> id mapping into a list indexed by id.

    The ids have to be exactly 0..N-1 where N is the number of tokens.
    """
    size = len(vocab)
    ordered: List[Optional[str]] = [None] * size
    for token, token_id in vocab.items():
        if isinstance(token_id, bool) or not isinstance(token_id, int):
            raise SchemaError(
                f"{source}: id of token {token!r} in model.vocab is not an integer"
            )
        if not 0 <= token_id < size:
            raise SchemaError(
                f"{source}: id {token_id} of token {token!r} is outside "
                f"[0, {size}) in model.vocab"
            )
        if ordered[token_id] is not None:
            raise SchemaError(
                f"{source}: id {token_id} is assigned to both "
                f"{ordered[token_id]!r} and {token!r} in model.vocab"
            )
        ordered[token_id] = token
    # N tokens with unique in-range ids leave no gap
    for i, token in enumerate(ordered):
        if token is None:
            raise SchemaError(f"{source}: no token has id {i} in model.vocab")
    return ordered


def assemble_pieces(vocab, unk_token, added_tokens):
    """Build the scored piece list of the SentencePiece model.

    Vocab tokens come first in id order with score -id. Added tokens
    flagged `normalized` follow with score -(N + j), j being the position in
    the original `added_tokens` list, so skipped entries still use up their
    slot. The scores only carry the ordering of the Hugging Face vocab.
    """
    ordered = order_vocab(vocab)
    size = len(ordered)
    pieces = []
    for i, token in enumerate(ordered):
        kind = PieceType.UNKNOWN if token == unk_token else PieceType.NORMAL
        pieces.append(VocabPiece(token, kind, -i))

    for j, added in enumerate(added_tokens):
        if not added.normalized:
            continue
        pieces.append(VocabPiece(added.content, PieceType.USER_DEFINED, -(size + j)))
    return pieces
