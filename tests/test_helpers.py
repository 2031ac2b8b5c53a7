"""Shared fakes and builders for chainirc tests."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from chainirc.commands import CommandInterpreter
from chainirc.domain.directory import UserProfile
from chainirc.gateways.memory import InMemoryDirectory
from chainirc.operations.backoff import RetryPolicy
from chainirc.operations.models import OperationRequest, Receipt
from chainirc.operations.submitter import OperationSubmitter
from chainirc.session.context import ConnectionContext
from chainirc.session.state import DelegatedSession, SessionState
from chainirc.terminal import Severity
from chainirc.time_utils import unix_now

WALLET = "0x" + "aa" * 20
SMART_ACCOUNT = "0x" + "bb" * 20
CONTRACT = "0x" + "cc" * 20
SESSION_KEY = "0x" + "dd" * 20
CHAIN_ID = 10143


class RecordingSink:
    """Terminal sink that keeps every emitted line."""

    def __init__(self) -> None:
        self.lines: list[tuple[Severity, str]] = []

    def emit(self, text: str, severity: Severity = Severity.OUTPUT) -> None:
        self.lines.append((severity, text))

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.lines]

    def with_severity(self, severity: Severity) -> list[str]:
        return [text for sev, text in self.lines if sev is severity]

    def contains(self, fragment: str) -> bool:
        return any(fragment in text for text in self.texts)

    def clear(self) -> None:
        self.lines.clear()


class SleepRecorder:
    """Injected sleep that records requested delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedBundler:
    """Bundler fake whose submit and receipt results are scripted per call.

    A scripted exception is raised; anything else is returned. Unscripted
    calls succeed.
    """

    def __init__(
        self,
        submit_results: Iterable[Any] = (),
        receipt_results: Iterable[Any] = (),
        balance: int = 10**18,
    ) -> None:
        self.submit_results: deque[Any] = deque(submit_results)
        self.receipt_results: deque[Any] = deque(receipt_results)
        self.balance = balance
        self.submitted: list[OperationRequest] = []
        self.receipt_calls: list[str] = []

    @property
    def submit_calls(self) -> int:
        return len(self.submitted)

    async def submit_operation(self, request: OperationRequest) -> str:
        self.submitted.append(request)
        result = self.submit_results.popleft() if self.submit_results else f"0xop{self.submit_calls}"
        if isinstance(result, BaseException):
            raise result
        return result

    async def await_receipt(self, handle: str, timeout: float) -> Optional[Receipt]:
        self.receipt_calls.append(handle)
        if self.receipt_results:
            result = self.receipt_results.popleft()
        else:
            result = Receipt(handle=handle, tx_hash=f"0xtx{len(self.receipt_calls)}", success=True)
        if isinstance(result, BaseException):
            raise result
        return result

    async def get_balance(self, address: str) -> int:
        return self.balance


def make_context(bundler: Any) -> ConnectionContext:
    return ConnectionContext(
        bundler=bundler,
        wallet_address=WALLET,
        smart_account_address=SMART_ACCOUNT,
        contract_address=CONTRACT,
        chain_id=CHAIN_ID,
    )


def make_profile_dict(**overrides: Any) -> dict[str, Any]:
    """Build a valid raw profile dictionary."""
    profile: dict[str, Any] = {
        "wallet_address": WALLET,
        "smart_account_address": SMART_ACCOUNT,
        "contract_address": CONTRACT,
        "bundler_url": "https://bundler.test/rpc",
        "directory_url": "https://directory.test/api",
        "logs_dir": "~/.chainirc/logs",
    }
    profile.update(overrides)
    return profile


@dataclass
class Harness:
    interpreter: CommandInterpreter
    sink: RecordingSink
    bundler: ScriptedBundler
    directory: Any
    sleep: SleepRecorder

    @property
    def state(self) -> SessionState:
        return self.interpreter.state

    @property
    def context(self) -> ConnectionContext:
        return make_context(self.bundler)

    def connect(self, username: Optional[str] = None) -> None:
        """Put the state into CONNECTED without going through the directory."""
        user = UserProfile(WALLET, SMART_ACCOUNT, username=username, directory_id="u1")
        if isinstance(self.directory, InMemoryDirectory):
            self.directory.users[WALLET] = user
        self.state.connect(self.context, user)

    def authorize(self, minutes: int = 30) -> DelegatedSession:
        session = DelegatedSession(SESSION_KEY, unix_now() + minutes * 60, "0xsessiontx")
        self.state.authorize_session(session)
        return session


def make_harness(
    bundler: Optional[ScriptedBundler] = None,
    directory: Any = None,
    *,
    submit_attempts: int = 3,
    receipt_attempts: int = 3,
    read_attempts: int = 2,
    receipt_timeout: float = 5,
) -> Harness:
    sink = RecordingSink()
    sleep = SleepRecorder()
    bundler = bundler or ScriptedBundler()
    directory = directory if directory is not None else InMemoryDirectory()
    submitter = OperationSubmitter(
        RetryPolicy(max_attempts=submit_attempts),
        RetryPolicy(max_attempts=receipt_attempts),
        receipt_timeout,
        sleep=sleep,
    )
    interpreter = CommandInterpreter(
        SessionState(),
        sink,
        directory,
        lambda: make_context(bundler),
        submitter,
        read_policy=RetryPolicy(max_attempts=read_attempts, initial_delay=0.5),
        sleep=sleep,
    )
    return Harness(interpreter, sink, bundler, directory, sleep)
