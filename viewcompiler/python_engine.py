"""
Python views, written the way CouchDB's Python view servers take them:

    def fun(doc):
        if 'author' in doc:
            yield doc['author'], 1

Map functions may call emit(key, value) or yield (key, value) pairs.
Reduce functions take (keys, values, rereduce) or just (keys, values).
"""

import inspect
import json
import logging
from types import FunctionType, GeneratorType
from typing import List

from viewcompiler.config import EngineConfig
from viewcompiler.engine import ScriptEngine, ScriptEnvironment
from viewcompiler.errors import ScriptRuntimeError, ScriptSyntaxError
from viewcompiler.values import to_script

logger = logging.getLogger(__name__)


class PythonEnvironment(ScriptEnvironment):
    """Functions bound into fresh namespaces that share emit/log builtins."""

    def __init__(self):
        self._functions = {}
        self._emitted = []
        self._log = []
        self._builtins = {'log': self._log_message}

    def configure(self, config: EngineConfig):
        if config.script_timeout is not None:
            logger.debug("script_timeout is not enforced for python views")

    def _log_message(self, message):
        if not isinstance(message, str):
            message = json.dumps(message, default=repr)
        self._log.append(message)

    def reset_emissions(self):
        self._emitted = []

    def install_emit(self):
        buffer = self._emitted

        def emit(*args):
            buffer.append(args)

        self._builtins['emit'] = emit

    def bind(self, name: str, source: str):
        try:
            code = compile(source, f'<{name} function>', 'exec')
        except SyntaxError as e:
            raise ScriptSyntaxError(f"{e.msg} (line {e.lineno})") from e

        namespace = dict(self._builtins)
        try:
            exec(code, namespace)
        except Exception as e:
            raise ScriptSyntaxError(f"Executing function source failed: {type(e).__name__}: {e}") from e

        function = namespace.get(name)
        if not isinstance(function, FunctionType):
            defined = [value for key, value in namespace.items()
                       if key not in self._builtins and isinstance(value, FunctionType)]
            if len(defined) != 1:
                raise ScriptSyntaxError('String must define exactly one function (ex: "def fun(doc): ...")')
            function = defined[0]
        self._functions[name] = function

    def invoke(self, name: str, *arguments: str, discard_result: bool = False) -> str:
        try:
            function = self._functions[name]
        except KeyError:
            raise ScriptRuntimeError(f"No function bound as {name!r}")

        args = [json.loads(argument) for argument in arguments]
        code = function.__code__
        if not code.co_flags & inspect.CO_VARARGS:
            # reduce functions may skip the rereduce flag
            args = args[:code.co_argcount]

        try:
            result = function(*args)
            if isinstance(result, GeneratorType):
                # emit() may run between yields, so append one at a time
                for item in result:
                    self._emitted.append(item)
                result = None
        except Exception as e:
            raise ScriptRuntimeError(f"{type(e).__name__}: {e}") from e

        if discard_result:
            return 'null'
        return to_script(result)

    def emission_count(self) -> int:
        return len(self._emitted)

    def emission(self, index: int) -> str:
        return to_script(self._emitted[index])

    def drain_logs(self) -> List[str]:
        messages = list(self._log)
        del self._log[:]
        return messages

    def close(self):
        self._functions.clear()
        self._emitted = []


class PythonEngine(ScriptEngine):
    language = 'python'

    def create_environment(self) -> PythonEnvironment:
        return PythonEnvironment()
