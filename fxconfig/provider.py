"""Lazy, validated, once-only construction of service clients."""

from __future__ import annotations

import threading
from typing import Callable, Generic, Protocol, TypeVar, runtime_checkable

from .validation import Context


@runtime_checkable
class Validatable(Protocol):
    """A configuration that can check itself, raising on invalid values."""

    def validate(self, vctx: Context) -> None: ...


T = TypeVar("T")
K = TypeVar("K", bound=Validatable)


class Provider(Generic[T, K]):
    """Builds a service from its configuration on first use and caches the outcome."""

    def __init__(
        self,
        factory: Callable[[K], T],
        cfg: K,
        validation_context: Context | None = None,
    ) -> None:
        self._factory = factory
        self._cfg = cfg
        self._validation_context = validation_context if validation_context is not None else Context()
        self._lock = threading.Lock()
        self._done = False
        self._instance: T | None = None
        self._error: BaseException | None = None

    def get(self) -> T:
        """Return the service, validating and building it on the first call only.

        A failure is cached too: every later call raises the same exception.
        """
        with self._lock:
            if not self._done:
                try:
                    self._cfg.validate(self._validation_context)
                    self._instance = self._factory(self._cfg)
                except Exception as err:
                    self._error = err
                self._done = True
        if self._error is not None:
            raise self._error
        return self._instance

    def validate(self) -> None:
        """Validate the configuration without building the service."""
        self._cfg.validate(self._validation_context)