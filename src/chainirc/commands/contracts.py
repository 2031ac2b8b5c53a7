"""Type-check-time contracts for command handler dependencies."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Coroutine, Optional, Protocol, TypeVar

from ..gateways.directory import DirectoryGateway
from ..operations.errors import ErrorKind
from ..operations.models import OperationRequest
from ..operations.submitter import OperationSubmitter
from ..session.context import ConnectionContext
from ..session.state import SessionState
from ..terminal import Severity

T = TypeVar("T")


class CommandDependencies(Protocol):
    """Structural contract implemented by the command interpreter."""

    state: SessionState
    directory: DirectoryGateway
    submitter: OperationSubmitter
    connector: Callable[[], ConnectionContext]
    session_validity_minutes: int

    def emit(self, text: str, severity: Severity = Severity.OUTPUT) -> None:
        ...

    def report_failure(
        self, action: str, error: Any, kind: Optional[ErrorKind] = None
    ) -> None:
        ...

    async def read(self, operation: Callable[[], Awaitable[T]], name: str) -> T:
        ...

    def log_directory_error(self, operation: str, error: BaseException) -> None:
        ...

    async def try_read(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
        warning: Optional[str] = None,
    ) -> Optional[T]:
        ...

    def spawn(self, coro: Coroutine[Any, Any, None], name: str) -> Any:
        ...

    def submit_write(self, job: Any, request: OperationRequest) -> None:
        ...

    async def run_write(self, job: Any, request: OperationRequest) -> None:
        ...

    async def check_pending(self, handle: str) -> None:
        ...

    def is_stale(self, epoch: int, what: str, handle: Optional[str] = None) -> bool:
        ...

    def reset(self, reason: str) -> None:
        ...
