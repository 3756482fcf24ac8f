"""Lazily established connection handle for remote cache backends."""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

from query_cache.utils import report_soft_failure

logger = logging.getLogger(__name__)

ClientT = TypeVar("ClientT")


class RemoteConnection(Generic[ClientT]):
    """Owns one client for a remote key-value server.

    The client is created and probed on first use, then reused by every
    later call. Callers drop it with ``reset()`` after a network error so
    the next ``acquire()`` connects again. A failed connect is not an
    error: ``acquire()`` returns None and the cache is skipped for that
    call.
    """

    def __init__(
        self,
        factory: Callable[[], ClientT],
        probe: Callable[[ClientT], object],
        errors: tuple[type[BaseException], ...],
        name: str,
        show_errors: bool = False,
    ) -> None:
        """Initialize the connection handle.

        Args:
            factory: Builds a new client
            probe: Round trip that raises one of ``errors`` if the server is down
            errors: Exception types that mean "server unreachable"
            name: Backend name used in log messages
            show_errors: Log connection failures as warnings
        """
        self._factory = factory
        self._probe = probe
        self._errors = errors
        self._name = name
        self._show_errors = show_errors
        self._client: ClientT | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def acquire(self) -> ClientT | None:
        """Return the live client, connecting first if needed."""
        if self._client is not None:
            return self._client

        try:
            client = self._factory()
            self._probe(client)
        except self._errors as e:
            report_soft_failure(logger, self._show_errors, "Could not connect to %s server: %s", self._name, e)
            return None

        logger.debug("Connected to %s server", self._name)
        self._client = client
        return client

    def reset(self) -> None:
        """Forget the current client so the next call reconnects."""
        if self._client is not None:
            logger.debug("Dropping %s connection", self._name)
        self._client = None
