import json
import os

from conversion_errors import (
    ConversionIOError,
    FieldTypeError,
    MissingFieldError,
    ParseError,
)

_KINDS = {
    "a string": (str,),
    "a boolean": (bool,),
    "an integer": (int,),
    "an object": (dict,),
    "an array": (list,),
}


def load_document(path):
    """Read and parse one JSON file into a Document."""
    source = os.path.basename(str(path))
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise ConversionIOError(path, e.strerror or str(e)) from e
    except UnicodeDecodeError as e:
        raise ParseError(source, f"not valid UTF-8 ({e.reason})") from e

    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(source, e.msg, e.lineno, e.colno) from e
    return Document(value, source)


class Document:
    """Read-only view of a parsed JSON value.

    Lookups keep track of the dotted path they were reached through, so a
    failure deep inside `tokenizer.json` reports e.g.
    `added_tokens[3].normalized` instead of a bare KeyError. A field that is
    absent raises MissingFieldError, a field of the wrong kind raises
    FieldTypeError; both are SchemaErrors.
    """

    def __init__(self, value, source, path=""):
        self.value = value
        self.source = source
        self.path = path

    def __repr__(self):
        return f"Document({self.source}:{self.path or '<root>'})"

    def _child_path(self, key):
        if isinstance(key, int):
            return f"{self.path}[{key}]"
        return f"{self.path}.{key}" if self.path else key

    def _expect(self, kind):
        types = _KINDS[kind]
        value = self.value
        # bool is an int subclass, an id of `true` is still a schema error
        if (isinstance(value, bool) and bool not in types) or not isinstance(value, types):
            raise FieldTypeError(self.source, self.path or "<root>", kind, value)
        return value

    def field(self, key):
        obj = self._expect("an object")
        if key not in obj:
            raise MissingFieldError(self.source, self._child_path(key))
        return Document(obj[key], self.source, self._child_path(key))

    def get(self, key):
        """Like field(), but None when the key is absent or null."""
        obj = self._expect("an object")
        if obj.get(key) is None:
            return None
        return Document(obj[key], self.source, self._child_path(key))

    def item(self, index):
        arr = self._expect("an array")
        if not 0 <= index < len(arr):
            raise MissingFieldError(self.source, self._child_path(index))
        return Document(arr[index], self.source, self._child_path(index))

    def items(self):
        for key, value in self._expect("an object").items():
            yield key, Document(value, self.source, self._child_path(key))

    def __iter__(self):
        for i, value in enumerate(self._expect("an array")):
            yield Document(value, self.source, self._child_path(i))

    def as_str(self) -> str:
        return self._expect("a string")

    def as_bool(self) -> bool:
        return self._expect("a boolean")

    def as_int(self) -> int:
        return self._expect("an integer")

    def is_object(self):
        return isinstance(self.value, dict)
