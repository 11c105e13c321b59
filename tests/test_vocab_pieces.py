import pytest

from conversion_errors import FieldTypeError, MissingFieldError, SchemaError
from hf_document import Document
from vocab_pieces import (
    AddedToken,
    PieceType,
    VocabPiece,
    assemble_pieces,
    order_vocab,
    parse_added_tokens,
)

VOCAB = {"a": 0, "b": 1, "c": 2}


def test_pieces_in_id_order_with_unknown():
    pieces = assemble_pieces({"c": 2, "a": 0, "b": 1}, "b", [])
    assert pieces == [
        VocabPiece("a", PieceType.NORMAL, 0),
        VocabPiece("b", PieceType.UNKNOWN, -1),
        VocabPiece("c", PieceType.NORMAL, -2),
    ]


def test_normalized_added_token_is_user_defined():
    pieces = assemble_pieces(VOCAB, "b", [AddedToken("<pad>", True)])
    assert pieces[-1] == VocabPiece("<pad>", PieceType.USER_DEFINED, -3)
    assert len(pieces) == 4


def test_skipped_added_tokens_keep_their_index():
    added = [
        AddedToken("<|endoftext|>", False),
        AddedToken("<x>", True),
        AddedToken("<ctrl>", False),
        AddedToken("<y>", True),
    ]
    pieces = assemble_pieces(VOCAB, "b", added)
    assert [(p.piece, p.score) for p in pieces[3:]] == [("<x>", -4), ("<y>", -6)]
    assert all(p.kind is PieceType.USER_DEFINED for p in pieces[3:])


def test_scores_strictly_decrease():
    added = [AddedToken(f"<t{i}>", i % 2 == 0) for i in range(6)]
    pieces = assemble_pieces(VOCAB, "a", added)
    scores = [p.score for p in pieces]
    assert all(x > y for x, y in zip(scores, scores[1:]))


def test_missing_unk_token_marks_nothing_unknown():
    pieces = assemble_pieces(VOCAB, "<unk>", [])
    assert [p.kind for p in pieces] == [PieceType.NORMAL] * 3


def test_empty_vocab():
    assert assemble_pieces({}, "<unk>", [AddedToken("<pad>", True)]) == [
        VocabPiece("<pad>", PieceType.USER_DEFINED, 0)
    ]


@pytest.mark.parametrize(
    "vocab, message",
    [
        ({"a": 0, "b": 1, "c": 3}, "outside"),
        ({"a": 0, "b": 0, "c": 1}, "both"),
        ({"a": 0, "b": -1}, "outside"),
        ({"a": 0, "b": "1"}, "not an integer"),
        ({"a": 0, "b": True}, "not an integer"),
        ({"a": 0, "b": 1.0}, "not an integer"),
    ],
)
def test_bad_ids_are_schema_errors(vocab, message):
    with pytest.raises(SchemaError, match=message):
        order_vocab(vocab)


def test_error_names_token_and_id():
    with pytest.raises(SchemaError) as excinfo:
        assemble_pieces({"a": 0, "b": 1, "c": 3}, "a", [])
    assert "'c'" in str(excinfo.value)
    assert "3" in str(excinfo.value)


def test_parse_added_tokens():
    doc = Document(
        {
            "added_tokens": [
                {"id": 3, "content": "<pad>", "normalized": True, "special": False},
                {"id": 4, "content": "<s>", "normalized": False, "special": True},
                {"content": "<x>", "normalized": False},
            ]
        },
        "tokenizer.json",
    )
    assert parse_added_tokens(doc) == [
        AddedToken("<pad>", True, 3, False),
        AddedToken("<s>", False, 4, True),
        AddedToken("<x>", False),
    ]


@pytest.mark.parametrize("value", [{}, {"added_tokens": None}, {"added_tokens": []}])
def test_absent_added_tokens_mean_none(value):
    assert parse_added_tokens(Document(value, "tokenizer.json")) == []


def test_added_token_without_normalized_flag():
    doc = Document({"added_tokens": [{"content": "<pad>"}]}, "tokenizer.json")
    with pytest.raises(MissingFieldError, match=r"added_tokens\[0\]\.normalized"):
        parse_added_tokens(doc)


def test_added_token_with_wrong_content_type():
    doc = Document({"added_tokens": [{"content": 7, "normalized": True}]}, "tokenizer.json")
    with pytest.raises(FieldTypeError, match="should be a string"):
        parse_added_tokens(doc)
