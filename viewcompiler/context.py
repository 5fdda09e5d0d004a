"""
Execution context owned by one compiled view function.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from viewcompiler.config import EngineConfig
from viewcompiler.engine import ScriptEngine, ScriptEnvironment
from viewcompiler.errors import ContextClosedError

logger = logging.getLogger(__name__)


class ExecutionContext:
    """
    Wraps one persistent script environment

    The environment is created on first acquisition and reused for every
    later call. Settings are applied on every acquisition because engine
    handles do not keep them between calls. Nothing here serializes callers:
    one context must not be used from two threads at once.
    """

    def __init__(self, engine: ScriptEngine, config: Optional[EngineConfig] = None):
        self.engine = engine
        self.config = config or EngineConfig()
        self._environment: Optional[ScriptEnvironment] = None
        self._closed = False
        self.acquisitions = 0

    @property
    def language(self) -> str:
        return self.engine.language

    @property
    def closed(self) -> bool:
        return self._closed

    @contextmanager
    def acquire(self) -> Iterator[ScriptEnvironment]:
        """
        Scoped access to the environment for one call

        Yields:
            The configured environment; released on every exit path

        Raises:
            ContextClosedError: If close() was already called
        """
        if self._closed:
            raise ContextClosedError(f"Execution context for {self.language} view is closed")

        if self._environment is None:
            logger.debug(f"Creating {self.language} environment")
            self._environment = self.engine.create_environment()

        environment = self._environment
        environment.configure(self.config)
        self.acquisitions += 1
        try:
            yield environment
        finally:
            environment.release()

    def close(self):
        """Dispose of the environment. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        environment, self._environment = self._environment, None
        if environment is not None:
            environment.close()
            logger.debug(f"Closed {self.language} environment")
