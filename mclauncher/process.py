import asyncio
import logging
import subprocess
from typing import Optional, Union

from .command import CommandDescription
from .reporting import LogSink

log = logging.getLogger(__name__)


class GameProcess:
    """
    Handle to a started game. The launcher never waits on it by itself.

    Wraps either a detached `subprocess.Popen` (which survives the event loop
    that started it) or an asyncio process whose output is being pumped.
    """

    def __init__(self, process: Union[subprocess.Popen, asyncio.subprocess.Process],
                 reader: Optional["asyncio.Task[None]"] = None):
        self._process = process
        self._reader = reader

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        if isinstance(self._process, subprocess.Popen):
            return self._process.poll()
        return self._process.returncode

    async def wait(self) -> int:
        if isinstance(self._process, subprocess.Popen):
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._process.wait)
        code = await self._process.wait()
        if self._reader is not None:
            await self._reader
        return code

    def terminate(self) -> None:
        if self.returncode is None:
            self._process.terminate()


async def _pump_output(stream: asyncio.StreamReader, sink: LogSink) -> None:
    while True:
        line = await stream.readline()
        if not line:
            break
        sink(line.decode(errors='replace').rstrip('\r\n'))


async def start_process(command: CommandDescription, sink: Optional[LogSink] = None) -> GameProcess:
    """
    Starts `command` and returns immediately.

    With a sink, stdout and stderr are merged and delivered line by line; the
    caller must then keep the event loop alive (e.g. by awaiting `wait()`).
    Without one, the child runs in its own session, inherits this process's
    streams and outlives both the event loop and the launcher.
    """
    log.info(f"Starting {command.executable} (cwd={command.cwd})")
    if sink is None:
        # asyncio kills children it still tracks when the loop's transport is collected
        process = subprocess.Popen(list(command.args), cwd=command.cwd, start_new_session=True)
        reader = None
    else:
        process = await asyncio.create_subprocess_exec(
            *command.args,
            cwd=command.cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        reader = asyncio.ensure_future(_pump_output(process.stdout, sink))
    log.info(f"Process started (PID: {process.pid})")
    return GameProcess(process, reader)
