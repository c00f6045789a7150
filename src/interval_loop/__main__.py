"""Entry point: python -m interval_loop -- COMMAND [ARGS...]

Runs COMMAND repeatedly under an Interval, e.g. to long-poll an endpoint
with curl.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from interval_loop.infrastructure.config import DEFAULT_DEBOUNCE_INTERVAL
from interval_loop.infrastructure.logger import logger
from interval_loop.interval import Interval
from interval_loop.types import EventInfo, IntervalOptions


TERMINATE_GRACE_S = 5.0


class CommandFailedError(Exception):
    """The polled command exited with a non-zero status."""

    def __init__(self, argv: list[str], returncode: int) -> None:
        super().__init__(f"{argv[0]} exited with status {returncode}")
        self.argv = argv
        self.returncode = returncode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="interval-loop", description="Run a command repeatedly, one run at a time")
    parser.add_argument(
        "--debounce",
        type=float,
        default=DEFAULT_DEBOUNCE_INTERVAL,
        help="Minimum seconds between the starts of two runs",
    )
    parser.add_argument("--retry-defer", type=float, default=None, help="Seconds to wait before retrying a failed run")
    parser.add_argument("--no-retry", action="store_true", help="Exit after the first failed run")
    parser.add_argument("--max-loops", type=int, default=None, help="Exit after this many successful runs")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run (after --)")
    return parser


class CommandRunner:
    """Action that runs argv once and fails on a non-zero exit.

    Keeps the running child so shutdown can terminate it instead of waiting
    for a long-poll to return on its own.
    """

    def __init__(self, argv: list[str]) -> None:
        self.argv = argv
        self._proc: asyncio.subprocess.Process | None = None

    async def __call__(self) -> int:
        self._proc = await asyncio.create_subprocess_exec(*self.argv)
        try:
            returncode = await self._proc.wait()
        finally:
            self._proc = None
        if returncode != 0:
            raise CommandFailedError(self.argv, returncode)
        return returncode

    async def terminate(self, grace_period_s: float = TERMINATE_GRACE_S) -> None:
        """Terminate the running child, killing it if it outlives the grace period."""
        proc = self._proc
        if proc is None or proc.returncode is not None:
            return
        logger.info("Terminating running command", pid=proc.pid)
        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=grace_period_s)
        except TimeoutError:
            logger.warning("Command ignored SIGTERM, killing", pid=proc.pid)
            proc.kill()
            await proc.wait()


async def main(args: argparse.Namespace) -> int:
    done = asyncio.Event()
    failed = False
    shutting_down = False

    def on_looped(_result: object, info: EventInfo) -> None:
        logger.info("Command finished", loop_num=info.loop_num)

    def on_error(err: Exception, info: EventInfo) -> None:
        nonlocal failed
        if shutting_down:
            return
        logger.warning("Command failed", loop_num=info.loop_num, error=str(err))
        if args.no_retry:
            failed = True
            done.set()

    options = IntervalOptions(
        debounce_interval=args.debounce,
        retry=not args.no_retry,
        retry_defer=args.retry_defer,
        max_loop_times=args.max_loops,
        on_looped=on_looped,
        on_error=on_error,
        on_loop_max_times=lambda _info: done.set(),
    )
    runner = CommandRunner(args.command)
    interval = Interval(runner, options, name=args.command[0])

    def signal_handler() -> None:
        logger.info("Received shutdown signal")
        done.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        interval.start()
        await done.wait()
    finally:
        shutting_down = True
        interval.stop()
        await runner.terminate()
        await interval.join()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    return 1 if failed else 0


def run() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    if not args.command:
        parser.error("a command to run is required")
    if args.max_loops is not None and args.max_loops < 1:
        parser.error("--max-loops must be at least 1")
    if args.debounce < 0 or (args.retry_defer is not None and args.retry_defer < 0):
        parser.error("durations must not be negative")

    try:
        sys.exit(asyncio.run(main(args)))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
