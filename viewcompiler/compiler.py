"""
View compiler: turns function source plus a language tag into compiled
map and reduce functions.
"""

import logging
from typing import Dict, List, Optional

from viewcompiler.config import EngineConfig
from viewcompiler.context import ExecutionContext
from viewcompiler.engine import ScriptEngine
from viewcompiler.errors import UnsupportedLanguageError
from viewcompiler.javascript import JavaScriptEngine
from viewcompiler.map_function import MapFunction
from viewcompiler.python_engine import PythonEngine
from viewcompiler.reduce_function import ReduceFunction

logger = logging.getLogger(__name__)


def default_engines() -> Dict[str, ScriptEngine]:
    engines = [JavaScriptEngine(), PythonEngine()]
    return {engine.language: engine for engine in engines}


class ViewCompiler:
    """Compiles view functions for every registered language"""

    def __init__(self, config: Optional[EngineConfig] = None,
                 engines: Optional[Dict[str, ScriptEngine]] = None):
        """
        Initialize the compiler

        Args:
            config: Settings handed to every execution context; defaults to EngineConfig()
            engines: Language tag to engine; defaults to javascript and python
        """
        self.config = config or EngineConfig()
        self.engines = dict(engines) if engines is not None else default_engines()

    @property
    def languages(self) -> List[str]:
        return sorted(self.engines)

    def register_engine(self, language: str, engine: ScriptEngine):
        """Add an engine, or replace the one registered for language."""
        self.engines[language] = engine

    def _context_for(self, language: str) -> ExecutionContext:
        engine = self.engines.get(language)
        if engine is None:
            raise UnsupportedLanguageError(language)
        return ExecutionContext(engine, self.config)

    def compile_map(self, source: str, language: str) -> MapFunction:
        """
        Compile a map function

        No script runs here; syntax errors surface on the first map() call.

        Raises:
            UnsupportedLanguageError: If no engine is registered for language
        """
        context = self._context_for(language)
        logger.debug(f"Compiled {language} map function")
        return MapFunction(source, context)

    def compile_reduce(self, source: str, language: str) -> ReduceFunction:
        """
        Compile a reduce function

        Raises:
            UnsupportedLanguageError: If no engine is registered for language
        """
        context = self._context_for(language)
        logger.debug(f"Compiled {language} reduce function")
        return ReduceFunction(source, context)
