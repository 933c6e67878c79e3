"""
Shell Executor Module - Runs bash command chains captured, streamed or interactively
"""

import os
import queue
import subprocess
import threading
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

logger = logging.getLogger(__name__)

Commands = Union[str, List[str]]


@dataclass
class CommandResult:
    """Outcome of one shell invocation"""
    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class LineChannel:
    """Single-producer/single-consumer queue of output lines.

    The producer calls close() when the stream ends; iterating the channel
    yields lines in send order and stops once the channel is closed.
    """

    _CLOSED = object()

    def __init__(self):
        self._queue = queue.Queue()

    def send(self, line: str):
        self._queue.put(line)

    def close(self):
        self._queue.put(self._CLOSED)

    def __iter__(self):
        while True:
            item = self._queue.get()
            if item is self._CLOSED:
                return
            yield item


def _print_line(line: str):
    print(line, flush=True)


class ShellExecutor:
    """Runs `bash -c "cmd1; cmd2; ..."` in one of three modes"""

    def __init__(self, debug_mode: bool = False, shell: str = "bash"):
        self.debug_mode = debug_mode
        self.shell = shell

    @staticmethod
    def join_commands(commands: Commands) -> str:
        if isinstance(commands, str):
            return commands
        return "; ".join(commands)

    def run_captured(self, commands: Commands, cwd=None, timeout: Optional[float] = None) -> CommandResult:
        """
        Run the joined command chain and capture its output.

        Used when only the final output matters (version queries, package lists).
        Spawn failures and timeouts are logged and reported as a failed result.
        """
        cmd = self.join_commands(commands)
        logger.debug(f"RUNNING COMMAND (captured): {cmd}")

        env = os.environ.copy()
        env['LC_ALL'] = 'C'

        try:
            result = subprocess.run(
                [self.shell, "-c", cmd],
                cwd=cwd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                env=env,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"⚠️ Command timed out after {timeout} seconds: {cmd}")
            return CommandResult(cmd, -1, "", f"timed out after {timeout} seconds")
        except OSError as e:
            logger.error(f"❌ Failed to start command: {cmd}: {e}")
            return CommandResult(cmd, -1, "", str(e))

        if self.debug_mode:
            if result.stdout:
                logger.debug(f"STDOUT: {result.stdout[:500]}")
            if result.stderr:
                logger.debug(f"STDERR: {result.stderr[:500]}")
            logger.debug(f"EXIT CODE: {result.returncode}")

        return CommandResult(cmd, result.returncode, result.stdout or "", result.stderr or "")

    def run_streamed(self, commands: Commands, cwd=None, echo: bool = True,
                     sink: Optional[Callable[[str], None]] = None) -> CommandResult:
        """
        Run the joined command chain while forwarding stdout line by line.

        A worker thread reads the subprocess output and pushes every line onto
        a LineChannel; this thread drains the channel into ``sink`` until the
        worker closes it, then waits for the process and the worker.

        Args:
            commands: Command string or list of commands joined with "; "
            cwd: Working directory for the shell
            echo: Announce the command on the sink before running it
            sink: Callable receiving each output line (default: print)

        Returns:
            CommandResult with the collected stdout; stderr goes to the terminal
        """
        cmd = self.join_commands(commands)
        sink = sink or _print_line

        if echo:
            sink(f"$ {cmd}")
        logger.debug(f"RUNNING COMMAND (streamed): {cmd}")

        try:
            process = subprocess.Popen(
                [self.shell, "-c", cmd],
                cwd=cwd,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            logger.error(f"❌ Failed to start command: {cmd}: {e}")
            return CommandResult(cmd, -1, "", str(e))

        channel = LineChannel()
        worker = threading.Thread(target=self._pump, args=(process.stdout, channel), daemon=True)
        worker.start()

        lines = []
        for line in channel:
            lines.append(line)
            sink(line)

        returncode = process.wait()
        worker.join()

        if returncode != 0:
            logger.error(f"❌ Command exited with code {returncode}: {cmd}")

        stdout = "\n".join(lines) + "\n" if lines else ""
        return CommandResult(cmd, returncode, stdout, "")

    @staticmethod
    def _pump(stream, channel: LineChannel):
        try:
            for line in stream:
                channel.send(line.rstrip("\n"))
        except (OSError, ValueError) as e:
            logger.error(f"❌ Failed to read command output: {e}")
        finally:
            stream.close()
            channel.close()

    def run_interactive(self, commands: Commands, cwd=None) -> CommandResult:
        """Run with the terminal attached (pacdiff and friends need a tty)"""
        cmd = self.join_commands(commands)
        logger.debug(f"RUNNING COMMAND (interactive): {cmd}")

        try:
            result = subprocess.run([self.shell, "-c", cmd], cwd=cwd, check=False)
        except OSError as e:
            logger.error(f"❌ Failed to start command: {cmd}: {e}")
            return CommandResult(cmd, -1, "", str(e))

        if result.returncode != 0:
            logger.error(f"❌ Command exited with code {result.returncode}: {cmd}")
        return CommandResult(cmd, result.returncode)
