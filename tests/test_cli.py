"""Tests for the command-line long-poller."""

import asyncio
import os
import signal
import sys
import time

import pytest

from interval_loop.__main__ import CommandFailedError, CommandRunner, build_parser, main


def parse(*argv: str):
    args = build_parser().parse_args(list(argv))
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    return args


class TestParser:
    def test_command_after_separator(self):
        args = parse("--debounce", "0.5", "--max-loops", "3", "--", "echo", "hi")
        assert args.debounce == 0.5
        assert args.max_loops == 3
        assert args.command == ["echo", "hi"]
        assert args.no_retry is False

    def test_no_retry_flag(self):
        args = parse("--no-retry", "--", "true")
        assert args.no_retry is True


class TestCommandRunner:
    @pytest.mark.asyncio
    async def test_success_returns_zero(self):
        action = CommandRunner([sys.executable, "-c", "pass"])
        assert await action() == 0

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises(self):
        action = CommandRunner([sys.executable, "-c", "import sys; sys.exit(3)"])
        with pytest.raises(CommandFailedError) as exc_info:
            await action()
        assert exc_info.value.returncode == 3


class TestMain:
    @pytest.mark.asyncio
    async def test_exits_after_max_loops(self):
        args = parse("--debounce", "0", "--max-loops", "2", "--", sys.executable, "-c", "pass")
        assert await main(args) == 0

    @pytest.mark.asyncio
    async def test_exits_with_failure_without_retry(self):
        args = parse("--debounce", "0", "--no-retry", "--", sys.executable, "-c", "import sys; sys.exit(1)")
        assert await main(args) == 1

    @pytest.mark.asyncio
    async def test_sigterm_terminates_running_command(self):
        args = parse("--", sys.executable, "-c", "import time; time.sleep(30)")
        loop = asyncio.get_running_loop()
        loop.call_later(0.3, os.kill, os.getpid(), signal.SIGTERM)

        started = time.monotonic()
        assert await asyncio.wait_for(main(args), timeout=10) == 0
        assert time.monotonic() - started < 5


class TestTerminate:
    @pytest.mark.asyncio
    async def test_terminate_without_child_is_noop(self):
        await CommandRunner([sys.executable, "-c", "pass"]).terminate()

