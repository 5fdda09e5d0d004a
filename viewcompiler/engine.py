"""
Script engine capability shared by every supported view language.

An engine creates environments. An environment is one persistent scripting
scope: the compiled function that owns it re-declares its emission buffer,
its emit capability and its bound function at the start of every call.
All values cross the boundary as canonical JSON text (see values.py).
"""

from abc import ABC, abstractmethod
from typing import List

from viewcompiler.config import EngineConfig


class ScriptEnvironment(ABC):
    """One reusable scripting scope."""

    @abstractmethod
    def configure(self, config: EngineConfig):
        """Apply per-call settings; called on every acquisition."""

    def release(self):
        """Give back the execution handle taken by configure()."""

    @abstractmethod
    def reset_emissions(self):
        """Re-declare the emission buffer as empty."""

    @abstractmethod
    def install_emit(self):
        """Install emit(key, value), appending the tuple of its arguments to the buffer."""

    @abstractmethod
    def bind(self, name: str, source: str):
        """
        Compile function source and bind it under name

        Raises:
            ScriptSyntaxError: If the source does not compile to a function
        """

    @abstractmethod
    def invoke(self, name: str, *arguments: str, discard_result: bool = False) -> str:
        """
        Call a bound function

        Args:
            name: Name given to bind()
            *arguments: Canonical JSON text for each positional argument
            discard_result: Ignore the return value and return 'null'

        Returns:
            JSON text of the result (undefined/None results become 'null')

        Raises:
            ScriptRuntimeError: If the function raised
            ScriptValueError: If the result has no JSON representation
        """

    @abstractmethod
    def emission_count(self) -> int:
        """Number of tuples in the emission buffer."""

    @abstractmethod
    def emission(self, index: int) -> str:
        """
        JSON text of one buffered tuple

        Raises:
            ScriptValueError: If the tuple has no JSON representation
        """

    @abstractmethod
    def drain_logs(self) -> List[str]:
        """Return and clear messages passed to log() by the script."""

    def close(self):
        """Dispose of the underlying engine resources."""


class ScriptEngine(ABC):
    """Factory for environments of one language."""

    language: str = ''

    @abstractmethod
    def create_environment(self) -> ScriptEnvironment:
        pass

    def __repr__(self):
        return f"<{type(self).__name__} language={self.language!r}>"
