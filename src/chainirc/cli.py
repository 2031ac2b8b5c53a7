"""CLI bootstrap entry point for chainirc."""

import argparse
import asyncio
import logging
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, cast

from . import profile
from .commands import CommandInterpreter
from .constants import DEFAULT_CHAIN_ID, DEFAULT_LOGS_DIR, DEFAULT_PROFILE_PATH
from .domain.profile import AppProfile
from .gateways import (
    HttpDirectoryClient,
    InMemoryDirectory,
    JsonRpcBundlerClient,
    SimulatedBundler,
)
from .keys.loader import load_api_key
from .logging import (
    build_run_log_path,
    log_event,
    sanitize_error_message,
    setup_logging,
)
from .operations.submitter import OperationSubmitter
from .path_utils import map_path
from .repl import repl_loop
from .session.context import ConnectionContext
from .session.state import SessionState
from .terminal import ConsoleSink

__all__ = ["main", "sanitize_error_message"]

DEMO_WALLET_ADDRESS = "0x" + "11" * 20
DEMO_SMART_ACCOUNT_ADDRESS = "0x" + "22" * 20
DEMO_CONTRACT_ADDRESS = "0x" + "33" * 20
DEMO_DIRECTORY_URL = "memory://demo"
DEMO_CHANNELS = ("#general", "#monad")


@dataclass(slots=True)
class Runtime:
    """Collaborators and interpreter wiring for one REPL run."""

    interpreter: CommandInterpreter
    chain_id: int
    directory_url: str
    closers: list[Callable[[], Any]]

    async def aclose(self) -> None:
        for close in self.closers:
            await close()


def _map_cli_arg(path: str | None, arg_name: str) -> str | None:
    """Map CLI path argument with descriptive error messages.

    Args:
        path: Path string or None
        arg_name: Argument name for error messages (e.g., "profile", "log")

    Returns:
        Mapped absolute path, or None if input was None

    Raises:
        ValueError: With descriptive message including arg_name
    """
    if path is None:
        return None
    try:
        return cast(str, map_path(path))
    except ValueError as e:
        raise ValueError(f"Invalid {arg_name} path: {e}")


def build_live_runtime(profile_data: AppProfile) -> Runtime:
    """Wire the JSON-RPC bundler and HTTP directory from a profile."""
    api_key = None
    if profile_data.bundler_api_key is not None:
        api_key = load_api_key(profile_data.bundler_api_key)

    bundler = JsonRpcBundlerClient(
        profile_data.bundler_url,
        profile_data.smart_account_address,
        api_key=api_key,
        timeout=profile_data.http_timeout,
    )
    directory = HttpDirectoryClient(profile_data.directory_url, timeout=profile_data.http_timeout)
    context = ConnectionContext(
        bundler=bundler,
        wallet_address=profile_data.wallet_address,
        smart_account_address=profile_data.smart_account_address,
        contract_address=profile_data.contract_address,
        chain_id=profile_data.chain_id,
    )
    interpreter = CommandInterpreter(
        SessionState(),
        ConsoleSink(),
        directory,
        lambda: context,
        OperationSubmitter(
            profile_data.submit_policy,
            profile_data.receipt_policy,
            profile_data.receipt_timeout,
        ),
        read_policy=profile_data.read_policy,
        session_validity_minutes=profile_data.session_validity_minutes,
    )
    return Runtime(
        interpreter=interpreter,
        chain_id=profile_data.chain_id,
        directory_url=profile_data.directory_url,
        closers=[bundler.aclose, directory.aclose],
    )


def build_demo_runtime() -> Runtime:
    """Wire in-memory collaborators seeded with a couple of channels."""
    directory = InMemoryDirectory()
    for name in DEMO_CHANNELS:
        directory.add_channel(name, DEMO_SMART_ACCOUNT_ADDRESS)
    bundler = SimulatedBundler(directory, DEMO_SMART_ACCOUNT_ADDRESS)
    context = ConnectionContext(
        bundler=bundler,
        wallet_address=DEMO_WALLET_ADDRESS,
        smart_account_address=DEMO_SMART_ACCOUNT_ADDRESS,
        contract_address=DEMO_CONTRACT_ADDRESS,
        chain_id=DEFAULT_CHAIN_ID,
    )
    interpreter = CommandInterpreter(
        SessionState(),
        ConsoleSink(),
        directory,
        lambda: context,
    )
    return Runtime(
        interpreter=interpreter,
        chain_id=DEFAULT_CHAIN_ID,
        directory_url=DEMO_DIRECTORY_URL,
        closers=[bundler.aclose],
    )


async def run_app(
    runtime: Runtime,
    *,
    profile_path: Optional[str],
    log_file: Optional[str],
    demo: bool,
) -> None:
    try:
        await repl_loop(
            runtime.interpreter,
            chain_id=runtime.chain_id,
            directory_url=runtime.directory_url,
            profile_path=profile_path,
            log_file=log_file,
            demo=demo,
        )
    finally:
        await runtime.aclose()


def _log_app_stop(started: float, reason: str, level: int = logging.INFO, **fields: Any) -> None:
    log_event(
        "app_stop",
        level=level,
        reason=reason,
        uptime_ms=round((time.perf_counter() - started) * 1000, 1),
        **fields,
    )


def main() -> None:
    """Main entry point for chainirc CLI."""
    parser = argparse.ArgumentParser(
        prog="chainirc",
        description="chainirc - On-chain IRC Terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-p",
        "--profile",
        help="Path to profile file (required unless --demo; used by init to create profile)",
    )

    parser.add_argument(
        "-l", "--log", help="Path to log file (optional; defaults to a per-run file in logs_dir)"
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Run against a simulated chain and directory (no profile needed)",
    )

    parser.add_argument(
        "command", nargs="?", help="Command to run (currently: 'init')"
    )

    args = parser.parse_args()
    app_started = time.perf_counter()

    raw_args = sys.argv[1:]

    if args.command == "init":
        if not raw_args or raw_args[0] != "init":
            print("Error: 'init' must be the first argument")
            print("Usage: chainirc init -p <profile-path>")
            sys.exit(1)

        if not args.profile:
            print("Error: -p/--profile is required for init command")
            print("Usage: chainirc init -p <profile-path>")
            print(f"Example: chainirc init -p {DEFAULT_PROFILE_PATH}")
            sys.exit(1)
        try:
            mapped_init_profile_path = _map_cli_arg(args.profile, "profile")
            if mapped_init_profile_path is None:
                raise ValueError("Invalid profile path: path is required")
            _, messages = profile.create_profile(mapped_init_profile_path)
            for message in messages:
                print(message)
            sys.exit(0)
        except ValueError as e:
            print(f"Error: {e}")
            sys.exit(1)
        except Exception as e:
            print(f"Error creating profile: {e}")
            sys.exit(1)

    if args.command:
        print(f"Error: unknown command '{args.command}'")
        print("Supported commands: init")
        print("Usage:")
        print("  chainirc init -p <profile-path>")
        print("  chainirc -p <profile-path> [-l <log-path>]")
        print("  chainirc --demo [-l <log-path>]")
        sys.exit(1)

    if not args.profile and not args.demo:
        print("Error: -p/--profile is required (or use --demo)")
        print("Usage: chainirc -p <profile-path> [-l <log-path>]")
        sys.exit(1)

    try:
        mapped_profile_path = _map_cli_arg(args.profile, "profile")
        mapped_log_path = _map_cli_arg(args.log, "log")

        if args.demo:
            effective_log_path = mapped_log_path or build_run_log_path(map_path(DEFAULT_LOGS_DIR))
            setup_logging(effective_log_path)
            runtime = build_demo_runtime()
            log_event(
                "app_start",
                level=logging.INFO,
                log_file=effective_log_path,
                chain_id=runtime.chain_id,
                directory_url=runtime.directory_url,
                demo=True,
            )
        else:
            if mapped_profile_path is None:
                raise ValueError("Invalid profile path: path is required")
            profile_data = profile.load_profile(mapped_profile_path)
            effective_log_path = mapped_log_path or build_run_log_path(profile_data.logs_dir)
            setup_logging(effective_log_path)
            runtime = build_live_runtime(profile_data)
            log_event(
                "app_start",
                level=logging.INFO,
                profile_file=mapped_profile_path,
                log_file=effective_log_path,
                logs_dir=profile_data.logs_dir,
                chain_id=profile_data.chain_id,
                bundler_url=profile_data.bundler_url,
                directory_url=profile_data.directory_url,
                demo=False,
            )

        asyncio.run(
            run_app(
                runtime,
                profile_path=mapped_profile_path,
                log_file=effective_log_path,
                demo=args.demo,
            )
        )
        _log_app_stop(app_started, "normal")

    except KeyboardInterrupt:
        _log_app_stop(app_started, "keyboard_interrupt")
        print("\nInterrupted")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {sanitize_error_message(str(e))}")
        _log_app_stop(
            app_started,
            "fatal_error",
            level=logging.ERROR,
            error_type=type(e).__name__,
            error=str(e),
        )
        logging.error("Fatal error: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
