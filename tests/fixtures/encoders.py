"""
Fake FFmpeg spawning for supervision tests.
"""

import itertools
from typing import Callable, List, Optional

from ffmpeg_manager.tests.fakes import PROGRESS_LINE, FakeProcess

CONNECTION_REFUSED = (
    "[tcp @ 0x55d5c9a8c0c0] Connection to tcp://host:1935 failed: Connection refused\n"
)


class FakeEncoderFarm:
    """Stands in for asyncio.create_subprocess_exec, one FakeProcess per spawn."""

    def __init__(self):
        self.processes: List[FakeProcess] = []
        self.commands: List[List[str]] = []
        self.start_failure: Optional[str] = None
        self.ignore_sigterm = False
        self.on_spawn: Optional[Callable[[], None]] = None
        self._pids = itertools.count(2000)

    async def spawn(self, *args, **kwargs) -> FakeProcess:
        if self.on_spawn is not None:
            self.on_spawn()

        process = FakeProcess(pid=next(self._pids), ignore_sigterm=self.ignore_sigterm)
        self.commands.append(list(args))
        self.processes.append(process)

        if self.start_failure is not None:
            process.write(self.start_failure)
            process.exit(1)
        else:
            process.write(PROGRESS_LINE)
        return process
