"""
Helpers shared by the supervisor tests.
"""

import asyncio

from stream_supervisor.supervisor import StreamSupervisor


async def wait_idle(supervisor: StreamSupervisor) -> None:
    """Wait until queued events are applied and no restart is pending."""
    while True:
        events = supervisor._events
        if events is not None:
            await events.join()
        task = supervisor._restart_task
        if task is None or task.done():
            if events is None or events.empty():
                return
            continue
        await asyncio.gather(task, return_exceptions=True)
