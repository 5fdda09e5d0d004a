"""
Exceptions raised while compiling and running view functions.
"""


class ViewError(Exception):
    """Base class for all view compiler errors."""


class UnsupportedLanguageError(ViewError, ValueError):
    """Raised when a view names a language with no registered engine."""

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"{language} is not supported")


class ContextClosedError(ViewError):
    """Raised when a closed execution context is acquired."""


# Engine-neutral failures raised by script environments

class ScriptError(ViewError):
    """A failure reported by a script engine."""


class ScriptSyntaxError(ScriptError):
    """The function source could not be compiled."""


class ScriptRuntimeError(ScriptError):
    """The function raised while running."""


class ScriptValueError(ScriptError):
    """A value produced by the script has no JSON representation."""


# Map side: caught and logged at the MapFunction boundary

class MapError(ViewError):
    """Base class for map failures."""

    def __init__(self, message: str, source: str, document=None):
        self.source = source
        self.document = document
        super().__init__(message)


class MapCompileError(MapError):
    pass


class MapRuntimeError(MapError):
    pass


class DocumentSerializationError(MapError):
    pass


class MalformedEmissionWarning(UserWarning):
    """An emitted tuple did not have exactly two elements."""


# Reduce side: propagated to the caller

class ReduceError(ViewError):
    """Base class for reduce failures."""

    def __init__(self, message: str, source: str):
        self.source = source
        super().__init__(message)


class ReduceCompileError(ReduceError):
    pass


class ReduceRuntimeError(ReduceError):
    pass
