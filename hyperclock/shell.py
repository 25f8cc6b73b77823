"""An interactive shell that drives a running engine."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
import threading
from collections.abc import Callable, Sequence
from contextlib import suppress

from termcolor import colored

from .common import ListenerId, PhaseId
from .config import ENGINE_NAME, VERSION, HyperclockConfig
from .engine import HyperclockEngine

__all__ = ["SHELL_VERSION", "Shell", "highlight", "banner_text", "main"]

logger = logging.getLogger(__name__)

SHELL_VERSION = "0.2.0"

_RULE = "-" * 95
_UNSIGNED = re.compile(r"\+?[0-9]+")
_MAX_UNSIGNED = 2**64 - 1

_HELP = "\n".join(
    [
        "Available commands:",
        "  add interval <S>      - Adds an S-second interval watcher.",
        "  list                  - Shows active listeners and their handles.",
        "  remove interval <H>   - Removes a watcher by its handle.",
        "  start ticks           - Begins printing the raw tick stream.",
        "  stop ticks            - Stops printing the raw tick stream.",
        "  exit                  - Quits the shell.",
    ]
)


def highlight(line: str) -> str:
    """Colour a command line: the command bold yellow, the rest yellow."""
    command, sep, rest = line.partition(" ")
    if not sep:
        return colored(line, "yellow", attrs=["bold"])
    return f"{colored(command, 'yellow', attrs=['bold'])} {colored(rest, 'yellow')}"


def banner_text() -> str:
    """The start-up banner with the shell and library versions."""
    rule = colored(_RULE, attrs=["dark"])
    return "\n".join(
        [
            colored(ENGINE_NAME, "cyan"),
            rule,
            f"          Shell   v{SHELL_VERSION:<8} Library   v{VERSION:<8}",
            rule,
        ]
    )


def _parse_unsigned(text: str) -> int | None:
    if not _UNSIGNED.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _MAX_UNSIGNED else None


class Shell:
    """Interprets shell commands against an engine and tracks the listeners it added."""

    def __init__(self, engine: HyperclockEngine, output: Callable[[str], object] = print) -> None:
        self.engine = engine
        self.active_listeners: dict[int, ListenerId] = {}
        self.next_handle = 0
        self.listening_to_ticks = False
        self.running = True
        self._output = output
        self._tick_rx = engine.subscribe_tick_events()
        self._system_rx = engine.subscribe_system_events()
        self._commands: dict[str, Callable[[list[str]], str]] = {
            "add": self._add,
            "remove": self._remove,
            "list": self._list,
            "start": self._start,
            "stop": self._stop,
            "help": lambda _args: _HELP,
            "exit": self._exit,
        }

    def execute(self, line: str) -> str:
        """Run one command line and return the text to show for it."""
        args = line.split()
        if not args:
            return ""
        handler = self._commands.get(args[0])
        if handler is None:
            return f"Unknown command: '{line}'. Type 'help'."
        return handler(args[1:])

    def _add(self, args: list[str]) -> str:
        if args[:1] != ["interval"]:
            return "Unknown 'add' command. Try 'add interval'."
        if len(args) < 2:
            return "Usage: add interval <SECONDS>"
        seconds = _parse_unsigned(args[1])
        if seconds is None:
            return f"Error: '{args[1]}' is not a valid number of seconds."
        message = f"<-- [INTERVAL TASK] A {seconds}-second interval fired!"
        listener_id = self.engine.on_interval(
            PhaseId(0), float(seconds), lambda: self._output(message)
        )
        handle = self.next_handle
        self.active_listeners[handle] = listener_id
        self.next_handle += 1
        return f"--> Added {seconds}-second interval listener with handle: #{handle}"

    def _remove(self, args: list[str]) -> str:
        if args[:1] != ["interval"]:
            return "Unknown 'remove' command. Try 'remove interval'."
        if len(args) < 2:
            return "Usage: remove interval <HANDLE>"
        handle = _parse_unsigned(args[1])
        if handle is None:
            return "Error: Handle must be a number (e.g., '0', '1')."
        listener_id = self.active_listeners.pop(handle, None)
        if listener_id is None:
            return f"Error: Invalid handle #{handle}. Use 'list' to see active listeners."
        if self.engine.remove_interval_listener(listener_id):
            return "--> Listener successfully removed."
        return "--> Error: Listener not found in engine."

    def _list(self, _args: list[str]) -> str:
        lines = ["Active Listeners:"]
        lines.extend(
            f"  Handle #{handle}: {listener_id!r}"
            for handle, listener_id in sorted(self.active_listeners.items())
        )
        return "\n".join(lines)

    def _start(self, args: list[str]) -> str:
        if args[:1] != ["ticks"]:
            return "Unknown 'start' command. Try 'start ticks'."
        self.listening_to_ticks = True
        return "--> Started listening to raw tick stream."

    def _stop(self, args: list[str]) -> str:
        if args[:1] != ["ticks"]:
            return "Unknown 'stop' command. Try 'stop ticks'."
        self.listening_to_ticks = False
        return "--> Stopped listening to raw tick stream."

    def _exit(self, _args: list[str]) -> str:
        self.running = False
        return ""

    async def tick_printer(self) -> None:
        """Report every fifth raw tick while tick listening is switched on."""
        async for tick in self._tick_rx:
            if self.listening_to_ticks and tick.tick_count % 5 == 0:
                self._output(f"<-- [RAW TICK] Tick #{tick.tick_count}")

    async def _print_system_events(self) -> None:
        async for event in self._system_rx:
            self._output(f"\n<-- [SYSTEM EVENT] {event!r}\n>> ")


def _settle(future: asyncio.Future[str], result: str | None, error: Exception | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


async def _read_line(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def reader() -> None:
        try:
            line = input(prompt)
        except Exception as exc:
            loop.call_soon_threadsafe(_settle, future, None, exc)
        else:
            loop.call_soon_threadsafe(_settle, future, line, None)

    threading.Thread(target=reader, daemon=True).start()
    return await future


async def _run_engine(engine: HyperclockEngine, shutdown: asyncio.Event) -> None:
    try:
        await engine.run(shutdown)
    except Exception as exc:
        print(f"\nEngine stopped with an error: {exc}")


async def _serve() -> None:
    engine = HyperclockEngine(HyperclockConfig.default())
    shell = Shell(engine)
    printers = [
        asyncio.create_task(shell.tick_printer()),
        asyncio.create_task(shell._print_system_events()),
    ]
    name = colored(ENGINE_NAME, "cyan")
    logger.info("Spawning %s in the background...", name)
    shutdown = asyncio.Event()
    engine_task = asyncio.create_task(_run_engine(engine, shutdown))
    await asyncio.sleep(0.1)

    print(f"{name} is running. Type 'help' for commands or 'exit' to quit.")
    prompt = colored(">> ", "cyan", attrs=["bold"])
    try:
        while shell.running:
            try:
                line = await _read_line(prompt)
            except (EOFError, OSError):
                print("Exiting hypershell...")
                break
            output = shell.execute(line)
            if output:
                print(output)
    finally:
        shutdown.set()
        await engine_task
        for task in printers:
            task.cancel()
        await asyncio.gather(*printers, return_exceptions=True)


def _enable_history() -> None:
    with suppress(ImportError):
        import readline  # noqa: F401


def main(argv: Sequence[str] | None = None) -> int:
    """Start the engine in the background and read commands until exit."""
    parser = argparse.ArgumentParser(description="Interactive shell for the phase engine.")
    parser.parse_args(argv)
    if "QUIET_MODE" not in os.environ:
        print(banner_text())
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    _enable_history()
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        print("Exiting hypershell...")
    return 0