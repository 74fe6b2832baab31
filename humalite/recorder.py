"""Type out a shell script into an asciinema recording, one keystroke at a time.

A script is a plain text file. Each line is typed into the recording shell as
if by a person. Lines starting with ``#$`` are control commands instead:

* ``#$ delay <ms>`` sets the pause between typed characters.
* ``#$ wait <ms>`` sets the pause after each line or command.
"""

from __future__ import annotations

import re
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import IO, BinaryIO, Union

__all__ = [
    "CTRL_PREFIX",
    "ScriptError",
    "Shell",
    "Wait",
    "Delay",
    "Command",
    "parse_wait",
    "parse_delay",
    "parse_control",
    "Script",
    "main",
]

CTRL_PREFIX = "#$"

ERR_UNKNOWN_CTRL = "unknown control command"
ERR_NO_ARGS = "no arguments given to command"
ERR_BAD_ARG = "invalid command argument"

_DEFAULT_DELAY = 0.040
_DEFAULT_WAIT = 0.100
_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_END_OF_TRANSMISSION = b"\x04"


class ScriptError(Exception):
    """Raised when a script cannot be parsed or run."""


def _sleep(seconds: float) -> None:
    if seconds > 0:
        time.sleep(seconds)


@dataclass
class Shell:
    """A line of shell input, typed one character at a time."""

    cmd: str

    def __post_init__(self) -> None:
        if not self.cmd.endswith("\n"):
            self.cmd += "\n"

    def run(self, script: Script) -> None:
        """Type the line into the recording, pausing ``script.delay`` per character."""
        stdin = script.stdin
        if stdin is None:
            raise ScriptError("recording has not been started")
        for char in self.cmd:
            try:
                stdin.write(char.encode("utf-8"))
                stdin.flush()
            except (OSError, ValueError):
                raise SystemExit(1) from None
            _sleep(script.delay)


@dataclass(frozen=True)
class Wait:
    """Changes the pause, in seconds, after each subsequent command."""

    duration: float

    def run(self, script: Script) -> None:
        script.wait = self.duration


@dataclass(frozen=True)
class Delay:
    """Changes the pause, in seconds, between typed characters."""

    interval: float

    def run(self, script: Script) -> None:
        script.delay = self.interval


Command = Union[Shell, Wait, Delay]


def _parse_millis(opts: list[str]) -> float:
    if not opts:
        raise ScriptError(ERR_NO_ARGS)
    text = opts[0].strip()
    if not _INT_PATTERN.fullmatch(text):
        raise ScriptError(ERR_BAD_ARG)
    millis = int(text)
    if not _INT64_MIN <= millis <= _INT64_MAX:
        raise ScriptError(ERR_BAD_ARG)
    return millis / 1000


def parse_wait(opts: list[str]) -> Wait:
    """Build a ``Wait`` from its arguments; the first is a count of milliseconds."""
    return Wait(_parse_millis(opts))


def parse_delay(opts: list[str]) -> Delay:
    """Build a ``Delay`` from its arguments; the first is a count of milliseconds."""
    return Delay(_parse_millis(opts))


def parse_control(cmd: str) -> Wait | Delay:
    """Parse the text of a control line (without its ``#$`` prefix)."""
    name, *opts = cmd.split(" ")
    name = name.strip()
    if name == "delay":
        return parse_delay(opts)
    if name == "wait":
        return parse_wait(opts)
    raise ScriptError(ERR_UNKNOWN_CTRL)


def _echo(stream: IO[bytes]) -> None:
    out = getattr(sys.stdout, "buffer", None)
    read = getattr(stream, "read1", stream.read)
    while True:
        try:
            chunk = read(1024)
        except (OSError, ValueError):
            return
        if not chunk:
            return
        if out is not None:
            out.write(chunk)
            out.flush()
        else:
            sys.stdout.write(chunk.decode("utf-8", errors="replace"))
            sys.stdout.flush()


@dataclass
class Script:
    """A parsed script and the asciinema process that records it."""

    args: list[str] = field(default_factory=list)
    commands: list[Command] = field(default_factory=list)
    delay: float = _DEFAULT_DELAY
    wait: float = _DEFAULT_WAIT
    process: subprocess.Popen | None = None
    stdin: BinaryIO | None = None

    @classmethod
    def from_file(cls, path: str, args: list[str]) -> Script:
        """Parse the script at ``path``; ``args`` are passed on to ``asciinema rec``."""
        with open(path, encoding="utf-8", newline="") as handle:
            text = handle.read()

        script = cls(args=list(args))
        lines = text.split("\n")
        last = len(lines) - 1
        for number, line in enumerate(lines, start=1):
            if line == "" and number - 1 == last:
                continue
            if line.startswith(CTRL_PREFIX):
                try:
                    command = parse_control(line[len(CTRL_PREFIX):].strip())
                except ScriptError as err:
                    raise ScriptError(f"{err} (line {number})") from None
                script.commands.append(command)
            else:
                script.commands.append(Shell(line))
        return script

    def start(self) -> None:
        """Start ``asciinema rec`` and echo its output to this process's stdout."""
        self.process = subprocess.Popen(
            ["asciinema", "rec", *self.args],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        self.stdin = self.process.stdin
        for stream in (self.process.stdout, self.process.stderr):
            if stream is not None:
                threading.Thread(target=_echo, args=(stream,), daemon=True).start()

    def stop(self) -> None:
        """End the recording and wait for asciinema to exit.

        When no output file was given, asciinema asks whether to upload; the
        user answers with Enter or cancels with Ctrl-C.
        """
        if self.process is None or self.stdin is None:
            raise ScriptError("recording has not been started")
        try:
            self.stdin.write(_END_OF_TRANSMISSION)
            self.stdin.flush()
            if not self.args or self.args[0].startswith("-"):
                self._end_dialog()
        finally:
            self.process.wait()

    def _end_dialog(self) -> None:
        assert self.process is not None and self.stdin is not None
        try:
            sys.stdin.readline()
        except KeyboardInterrupt:
            self.process.send_signal(signal.SIGINT)
        else:
            self.stdin.write(b"\n")
            self.stdin.flush()

    def execute(self) -> None:
        """Run every command, pausing ``wait`` seconds after each."""
        for command in self.commands:
            command.run(self)
            _sleep(self.wait)


def _fatal(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Record the script named by the first argument; the rest go to asciinema."""
    if argv is None:
        argv = sys.argv[1:]
    prog = sys.argv[0] if sys.argv and sys.argv[0] else "recorder"
    if not argv or argv[0] in ("-h", "--help"):
        return _fatal(f"usage: {prog} <script>")

    try:
        probe = subprocess.run(
            ["asciinema", "-h"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        found = probe.returncode == 0
    except OSError:
        found = False
    if not found:
        return _fatal("can't find asciinema executable")

    try:
        script = Script.from_file(argv[0], argv[1:])
    except (OSError, ScriptError) as err:
        return _fatal(f"parsing script failed: {err}")

    try:
        script.start()
    except OSError as err:
        return _fatal(f"couldn't start recording: {err}")

    try:
        script.execute()
    finally:
        try:
            script.stop()
        except (OSError, ValueError) as err:
            return _fatal(f"couldn't stop recording: {err}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())