"""
JavaScript views on an embedded V8 isolate (mini-racer).
"""

import json
import logging
import threading
from typing import List

from py_mini_racer import JSEvalException, JSParseException, MiniRacer, init_mini_racer

from viewcompiler.config import EngineConfig
from viewcompiler.engine import ScriptEngine, ScriptEnvironment
from viewcompiler.errors import ScriptRuntimeError, ScriptSyntaxError, ScriptValueError

logger = logging.getLogger(__name__)

RESULTS_VAR = '__map_results'
LOG_VAR = '__view_log'

_BUFFER_SRC = f"var {RESULTS_VAR} = [];"

# Records every argument so emit(k) or emit(k, v, x) reach the arity check
_EMIT_SRC = f"var emit = function() {{ {RESULTS_VAR}.push(Array.prototype.slice.call(arguments)); }};"

_LOG_SRC = (
    f"var {LOG_VAR} = [];"
    f"var log = function(message) {{"
    f" {LOG_VAR}.push(typeof message === 'string' ? message : JSON.stringify(message)); }};"
)

_INVOKE_TEMPLATE = (
    "(function () {{"
    " var text = JSON.stringify({name}({args}));"
    " return text === undefined ? 'null' : text;"
    " }})()"
)

_CALL_TEMPLATE = "(function () {{ {name}({args}); return 'null'; }})()"

_init_lock = threading.Lock()
_initialized = False


def _init_v8():
    """Initialize V8 once, before any worker thread creates a context."""
    global _initialized
    with _init_lock:
        if not _initialized:
            init_mini_racer(ignore_duplicate_init=True)
            _initialized = True


def _parse_expression(argument: str) -> str:
    # JSON.parse keeps keys such as "__proto__" as plain properties
    return f"JSON.parse({json.dumps(argument)})"


class JavaScriptEnvironment(ScriptEnvironment):
    """A global scope on a dedicated MiniRacer context."""

    def __init__(self):
        self._ctx = MiniRacer()
        self._timeout_sec = None

    def configure(self, config: EngineConfig):
        self._timeout_sec = config.script_timeout
        if config.script_max_memory is not None:
            self._ctx.set_hard_memory_limit(config.script_max_memory)

    def release(self):
        self._timeout_sec = None

    def _eval(self, code: str):
        if self._timeout_sec is None:
            return self._ctx.eval(code)
        return self._ctx.eval(code, timeout_sec=self._timeout_sec)

    def _run(self, code: str):
        try:
            return self._eval(code)
        except JSEvalException as e:
            raise ScriptRuntimeError(str(e)) from e

    def reset_emissions(self):
        self._run(_BUFFER_SRC)

    def install_emit(self):
        self._run(_EMIT_SRC)

    def bind(self, name: str, source: str):
        body = source.strip().rstrip(';')
        try:
            self._eval(_LOG_SRC)
            # newline keeps a trailing // comment from swallowing the paren
            self._eval(f"var {name} = ({body}\n);")
            is_function = self._eval(f"typeof {name} === 'function'")
        except JSParseException as e:
            raise ScriptSyntaxError(str(e)) from e
        except JSEvalException as e:
            raise ScriptSyntaxError(f"Evaluating function source failed: {e}") from e
        if not is_function:
            raise ScriptSyntaxError('Source must evaluate to a function, e.g. "function(doc) { ... }"')

    def invoke(self, name: str, *arguments: str, discard_result: bool = False) -> str:
        template = _CALL_TEMPLATE if discard_result else _INVOKE_TEMPLATE
        args = ', '.join(_parse_expression(argument) for argument in arguments)
        return self._run(template.format(name=name, args=args))

    def emission_count(self) -> int:
        return int(self._run(f"{RESULTS_VAR}.length"))

    def emission(self, index: int) -> str:
        try:
            return self._eval(f"JSON.stringify({RESULTS_VAR}[{index}])")
        except JSEvalException as e:
            raise ScriptValueError(str(e)) from e

    def drain_logs(self) -> List[str]:
        try:
            return json.loads(self._eval(f"JSON.stringify({LOG_VAR}.splice(0))"))
        except JSEvalException as e:
            logger.debug(f"Could not read script log buffer: {e}")
            return []

    def close(self):
        ctx, self._ctx = self._ctx, None
        if ctx is not None:
            ctx.close()


class JavaScriptEngine(ScriptEngine):
    language = 'javascript'

    def __init__(self):
        _init_v8()

    def create_environment(self) -> JavaScriptEnvironment:
        return JavaScriptEnvironment()
