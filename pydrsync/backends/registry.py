"""Run-scoped owner of backend sessions."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..api import DrimeClient
from ..config import config
from .base import Backend
from .dry_run import DryRunBackend
from .local import LocalBackend
from .remote import URL_SCHEME, RemoteBackend

logger = logging.getLogger(__name__)


class BackendRegistry:
    """Creates backends lazily and dispatches paths to them.

    One registry lives for exactly one run. The remote session (the HTTP
    client) is only opened the first time a ``drime://`` path is resolved,
    and every session the registry opened is closed by :meth:`close`.

    Example:
        >>> with BackendRegistry() as registry:  # doctest: +SKIP
        ...     backend = registry.for_path("drime://Documents")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        workspace_id: Optional[int] = None,
    ):
        """Initialize the registry.

        Args:
            api_key: API key for the remote backend (default: from config)
            api_url: API base URL (default: from config)
            workspace_id: Remote workspace (default: from config)
        """
        self.api_key = api_key
        self.api_url = api_url
        self.workspace_id = workspace_id
        self._local: Optional[LocalBackend] = None
        self._remote: Optional[RemoteBackend] = None
        self._custom: list[tuple[str, Backend]] = []
        self._dry_runs: dict[int, DryRunBackend] = {}

    def register(self, prefix: str, backend: Backend) -> None:
        """Route every path starting with ``prefix`` to ``backend``."""
        self._custom.append((prefix, backend))

    @property
    def local(self) -> LocalBackend:
        if self._local is None:
            self._local = LocalBackend()
        return self._local

    @property
    def remote(self) -> RemoteBackend:
        if self._remote is None:
            workspace_id = (
                self.workspace_id
                if self.workspace_id is not None
                else config.workspace_id
            )
            logger.debug("Opening remote session (workspace %s)", workspace_id)
            client = DrimeClient(api_key=self.api_key, api_url=self.api_url)
            self._remote = RemoteBackend(client, workspace_id=workspace_id)
        return self._remote

    def for_path(self, path: str) -> Backend:
        """Backend responsible for ``path``."""
        for prefix, backend in self._custom:
            if path.startswith(prefix):
                return backend
        if path.startswith(URL_SCHEME):
            return self.remote
        return self.local

    def dry_run_for(self, backend: Backend) -> DryRunBackend:
        """The single dry-run simulator of ``backend``."""
        key = id(backend)
        if key not in self._dry_runs:
            self._dry_runs[key] = DryRunBackend(backend)
        return self._dry_runs[key]

    def close(self) -> None:
        """Close every session opened during the run."""
        backends: list[Backend] = [b for _, b in self._custom]
        if self._local is not None:
            backends.append(self._local)
        if self._remote is not None:
            backends.append(self._remote)
            self._remote = None
        for backend in backends:
            backend.close()
        self._dry_runs.clear()

    def __enter__(self) -> BackendRegistry:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
