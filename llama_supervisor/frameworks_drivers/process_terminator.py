import asyncio
import os
import re
import subprocess
from typing import List

import psutil

from llama_supervisor.shared.errors import TerminationError
from llama_supervisor.shared.logger import Logger

logger = Logger.get(__name__)


class ProcessTerminator:
    """
    Terminates llama-server processes: the tracked pid and any orphan whose
    command line matches the managed binary's invocation pattern.
    """

    def __init__(self, process_pattern: str = "^./llama-server", terminate_timeout: float = 5.0):
        self.process_pattern = re.compile(process_pattern)
        self.terminate_timeout = terminate_timeout

    async def terminate_process(self, process: subprocess.Popen) -> None:
        """Terminate a subprocess we spawned, killing it if it outlives terminate_timeout."""
        if process.poll() is not None:
            return
        try:
            process.terminate()
            try:
                await asyncio.to_thread(process.wait, self.terminate_timeout)
            except subprocess.TimeoutExpired:
                logger.warning(f"Process {process.pid} ignored SIGTERM for {self.terminate_timeout}s, killing it")
                process.kill()
                await asyncio.to_thread(process.wait)
        except PermissionError as e:
            raise TerminationError(process.pid, f"Permission denied terminating process {process.pid}") from e
        logger.info(f"Terminated server process {process.pid}")

    async def terminate_pid(self, pid: int) -> bool:
        """
        Send SIGTERM to pid and wait for it, killing it if it outlives terminate_timeout.

        Returns:
            True if a process was terminated, False if it had already exited.

        Raises:
            TerminationError: If the OS refuses the signal.
        """
        try:
            proc = psutil.Process(pid)
            proc.terminate()
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied as e:
            raise TerminationError(pid, f"Permission denied terminating process {pid}") from e

        try:
            await asyncio.to_thread(proc.wait, self.terminate_timeout)
        except psutil.TimeoutExpired:
            logger.warning(f"Process {pid} ignored SIGTERM for {self.terminate_timeout}s, killing it")
            try:
                proc.kill()
                await asyncio.to_thread(proc.wait, self.terminate_timeout)
            except psutil.NoSuchProcess:
                pass
            except psutil.AccessDenied as e:
                raise TerminationError(pid, f"Permission denied killing process {pid}") from e
        except psutil.NoSuchProcess:
            pass

        logger.info(f"Terminated server process {pid}")
        return True

    def find_orphans(self) -> List[int]:
        """List pids of processes whose command line matches the invocation pattern."""
        own_pid = os.getpid()
        pids = []
        for proc in psutil.process_iter(["pid", "cmdline"]):
            try:
                cmdline = proc.info["cmdline"]
                if not cmdline or proc.info["pid"] == own_pid:
                    continue
                if self.process_pattern.match(" ".join(cmdline)):
                    pids.append(proc.info["pid"])
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return pids

    async def sweep(self) -> int:
        """Terminate every matching process. Returns how many were terminated."""
        terminated = 0
        for pid in self.find_orphans():
            logger.warning(f"Found stray llama-server process {pid}, terminating it")
            if await self.terminate_pid(pid):
                terminated += 1
        return terminated
