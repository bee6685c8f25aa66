from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from wcd_sync.db.session import DatabaseSessionManager


class SqliteBaseRepository:
    """Shared plumbing for repositories over the local sync database."""

    def __init__(self, session_manager: DatabaseSessionManager) -> None:
        self._session = session_manager

    async def _execute(
        self,
        operation: Callable[..., Any],
        *args: Any,
        operation_name: str = "repository_operation",
        read_only: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Run a synchronous peewee operation through the session manager."""
        return await self._session._safe_db_operation(
            operation,
            *args,
            operation_name=operation_name,
            read_only=read_only,
            **kwargs,
        )

    async def _read(self, operation: Callable[..., Any], *, operation_name: str) -> Any:
        return await self._execute(operation, operation_name=operation_name, read_only=True)
