class ConversionError(Exception):
    """Base class for every failure of a tokenizer conversion run."""


class ConversionIOError(ConversionError):
    """An input could not be read or the output could not be written."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ParseError(ConversionError):
    """An input document is not well-formed JSON."""

    def __init__(self, source, reason, line=None, column=None):
        self.source = source
        self.line = line
        self.column = column
        where = f" (line {line}, column {column})" if line is not None else ""
        super().__init__(f"{source}: invalid JSON{where}: {reason}")


class SchemaError(ConversionError):
    """A document does not have the shape the converter needs."""


class MissingFieldError(SchemaError):
    def __init__(self, source, path):
        self.source = source
        self.path = path
        super().__init__(f"{source}: missing field '{path}'")


class FieldTypeError(SchemaError):
    def __init__(self, source, path, expected, value):
        self.source = source
        self.path = path
        self.expected = expected
        super().__init__(
            f"{source}: field '{path}' should be {expected}, "
            f"got {type(value).__name__}"
        )


class CompileError(ConversionError):
    """The charsmap compiler rejected a table.

    The byte remap table is a bijection, so this signals a bug in the
    converter rather than a problem with the user's files.
    """

    def __init__(self, reason):
        super().__init__(f"internal error while compiling charsmap: {reason}")
