"""
Compiled reduce function.

Unlike map, reduce failures are not isolated. A failed aggregate has no
partial result to stand in for it, so every error reaches the caller.
"""

import logging
import time
from typing import Any, Sequence

from viewcompiler.context import ExecutionContext
from viewcompiler.engine import ScriptEnvironment
from viewcompiler.errors import (
    ReduceCompileError,
    ReduceRuntimeError,
    ScriptError,
    ScriptSyntaxError,
)
from viewcompiler.metrics import FunctionMetrics
from viewcompiler.values import from_script, to_script

logger = logging.getLogger(__name__)

FUNCTION_NAME = 'reduce'


class ReduceFunction:
    """Runs one reduce function source over batches of keys and values."""

    def __init__(self, source: str, context: ExecutionContext):
        self.source = source
        self.context = context
        self.metrics = FunctionMetrics()

    @property
    def language(self) -> str:
        return self.context.language

    def reduce(self, keys: Sequence, values: Sequence, rereduce: bool) -> Any:
        """
        Aggregate one group of values

        Args:
            keys: Keys correlated with values; not meaningful when rereducing
            values: Mapped values, or partial results when rereduce is true
            rereduce: Whether values are outputs of earlier reduce calls

        Returns:
            The aggregate as a host value

        Raises:
            ReduceCompileError: If the source does not compile
            ReduceRuntimeError: If the function raised or its input or result
                has no JSON representation
        """
        start_time = time.time()
        failed = True

        with self.context.acquire() as env:
            try:
                self._bind(env)
                result = self._invoke(env, keys, values, rereduce)
                failed = False
                return result
            finally:
                self._forward_logs(env)
                self.metrics.record_call(time.time() - start_time, failed)

    __call__ = reduce

    def _bind(self, env: ScriptEnvironment):
        try:
            env.bind(FUNCTION_NAME, self.source)
        except ScriptSyntaxError as e:
            raise ReduceCompileError(
                f"Syntax error in reduce function:\n{self.source}\n{e}", self.source) from e
        except ScriptError as e:
            raise ReduceRuntimeError(
                f"Could not prepare reduce function:\n{self.source}\n{e}", self.source) from e

    def _invoke(self, env: ScriptEnvironment, keys, values, rereduce: bool):
        try:
            arguments = (to_script(keys), to_script(values), to_script(bool(rereduce)))
            return from_script(env.invoke(FUNCTION_NAME, *arguments))
        except ScriptError as e:
            raise ReduceRuntimeError(
                f"Error in reduce function:\n{self.source}\n{e}", self.source) from e

    def _forward_logs(self, env: ScriptEnvironment):
        for message in env.drain_logs():
            logger.info(f"Reduce function log: {message}")

    def close(self):
        self.context.close()

    def __repr__(self):
        return f"<ReduceFunction language={self.language!r}>"
