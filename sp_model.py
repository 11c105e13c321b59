import os
import stat
import tempfile
from dataclasses import dataclass
from typing import Tuple

from sentencepiece import sentencepiece_model_pb2 as model_pb2

from charsmap import NormalizerSpec
from conversion_errors import ConversionIOError
from vocab_pieces import VocabPiece


@dataclass(frozen=True)
class TrainerSpec:
    model_type: str
    vocab_size: int


@dataclass(frozen=True)
class ModelDescriptor:
    normalizer: NormalizerSpec
    denormalizer: NormalizerSpec
    pieces: Tuple[VocabPiece, ...]
    trainer: TrainerSpec


def build_model(normalizer, denormalizer, pieces):
    """Bundle the finished parts; vocab_size counts the merged added tokens."""
    pieces = tuple(pieces)
    return ModelDescriptor(
        normalizer=normalizer,
        denormalizer=denormalizer,
        pieces=pieces,
        trainer=TrainerSpec(model_type="BPE", vocab_size=len(pieces)),
    )


def _fill_normalizer(proto, spec):
    proto.precompiled_charsmap = spec.precompiled_charsmap
    proto.add_dummy_prefix = spec.add_dummy_prefix
    proto.remove_extra_whitespaces = spec.remove_extra_whitespaces
    proto.escape_whitespaces = spec.escape_whitespaces


def to_proto(model):
    proto = model_pb2.ModelProto()
    _fill_normalizer(proto.normalizer_spec, model.normalizer)
    _fill_normalizer(proto.denormalizer_spec, model.denormalizer)

    piece_type = model_pb2.ModelProto.SentencePiece.Type
    for piece in model.pieces:
        sp = proto.pieces.add()
        sp.piece = piece.piece
        sp.type = piece_type.Value(piece.kind.value)
        sp.score = piece.score

    proto.trainer_spec.model_type = model_pb2.TrainerSpec.ModelType.Value(
        model.trainer.model_type
    )
    proto.trainer_spec.vocab_size = model.trainer.vocab_size
    return proto


def serialize_model(model) -> bytes:
    return to_proto(model).SerializeToString()


def _target_mode(path):
    """Mode of the file being replaced, else 0o666 minus the umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_model(path, data: bytes):
    """Write the serialized model, replacing any existing file at path.

    The bytes go to a temporary file next to the target first, so a failed
    run never leaves a truncated model behind.
    """
    path = os.fspath(path)
    output_dir = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(output_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=".", suffix=".tmp", dir=output_dir
        )
    except OSError as e:
        raise ConversionIOError(output_dir, e.strerror or str(e)) from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise ConversionIOError(path, e.strerror or str(e)) from e
