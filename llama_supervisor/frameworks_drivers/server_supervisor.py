from __future__ import annotations

import asyncio
import os
import subprocess
import time
from typing import Optional

from llama_supervisor.entities.device_inventory import DeviceInventory
from llama_supervisor.entities.endpoint import Endpoint
from llama_supervisor.entities.launch_config import LaunchConfig
from llama_supervisor.entities.process_handle import ProcessHandle
from llama_supervisor.entities.server_state import ServerState
from llama_supervisor.frameworks_drivers.config import LlamaServerConfig, TimingConfig
from llama_supervisor.frameworks_drivers.process_terminator import ProcessTerminator
from llama_supervisor.frameworks_drivers.server_probe import ServerProbe
from llama_supervisor.shared.errors import StartupTimeout
from llama_supervisor.shared.health_checker import HealthChecker
from llama_supervisor.shared.logger import Logger

logger = Logger.get(__name__)

CUDA_VISIBLE_DEVICES = "CUDA_VISIBLE_DEVICES"
CUDA_DEVICE_ORDER = "CUDA_DEVICE_ORDER"


class LlamaServerSupervisor:

    """
    Keeps exactly one llama-server serving the requested model at the configured endpoint.

    ensure_running() reuses a server that already serves the model, replaces one
    serving another model, and starts one when none is reachable. Use it as an
    async context manager so the server is terminated when the scope ends.
    Calls on one instance are serialized by an internal lock.
    """

    def __init__(self, llama_config: LlamaServerConfig, timing: Optional[TimingConfig] = None,
                 inventory: Optional[DeviceInventory] = None, probe: Optional[ServerProbe] = None,
                 terminator: Optional[ProcessTerminator] = None):
        self.llama_config = llama_config
        self.timing = timing or TimingConfig()
        self.inventory = inventory  # None runs llama-server on CPU only
        self.probe = probe or ServerProbe(identity_attempts=self.timing.identity_attempts)
        self.terminator = terminator or ProcessTerminator(
            llama_config.process_pattern, self.timing.terminate_timeout
        )
        self.handle: ProcessHandle | None = None
        self.lock = asyncio.Lock()

    async def __aenter__(self) -> "LlamaServerSupervisor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.terminate()

    @property
    def pid(self) -> int | None:
        return self.handle.pid if self.handle else None

    async def status(self, model_identifier: str, endpoint: Endpoint) -> ServerState:
        """Probe the endpoint with the short status-check cadence."""
        return await self.probe.probe(
            endpoint, model_identifier, self.timing.status_check_time, self.timing.status_retry_interval
        )

    async def ensure_running(self, model_identifier: str, launch_config: LaunchConfig) -> ServerState:
        """
        Make sure a llama-server serving model_identifier is reachable at launch_config's endpoint.

        Args:
            model_identifier: Model the server must report serving.
            launch_config: Settings for a new server if one has to be started.

        Returns:
            ServerState.RUNNING_CORRECT_MODEL.

        Raises:
            StartupTimeout: If a new server did not serve the model within the startup budget.
                The process is terminated before the error is raised.
            TerminationError: If an existing server could not be terminated.
        """
        async with self.lock:
            endpoint = launch_config.endpoint
            state = await self.status(model_identifier, endpoint)
            if state is ServerState.RUNNING_CORRECT_MODEL:
                return state

            if state is ServerState.RUNNING_WRONG_MODEL or self.handle is not None:
                logger.info(f"Replacing server at {endpoint.address} (state: {state.value})")
                await self._terminate()

            self.handle = self._start_server(model_identifier, launch_config)
            state = await self._wait_for_startup(model_identifier, endpoint)
            if state is ServerState.RUNNING_CORRECT_MODEL:
                logger.info(f"Started server with process PID: {self.handle.pid}")
                return state

            await self._terminate()
            if state is ServerState.RUNNING_WRONG_MODEL:
                message = f"Failed to start server with correct model {model_identifier} at {endpoint.address}"
            else:
                message = f"Failed to start server for model {model_identifier} at {endpoint.address}"
            logger.error(message)
            raise StartupTimeout(message)

    async def terminate(self) -> None:
        """Terminate the tracked server and sweep stray llama-server processes."""
        async with self.lock:
            await self._terminate()

    async def _terminate(self) -> None:
        if self.handle is not None:
            await self.terminator.terminate_process(self.handle.process)
            self.handle = None
        await self.terminator.sweep()
        # Let the OS release the port before anything binds it again
        await asyncio.sleep(self.timing.settle_delay)

    async def _wait_for_startup(self, model_identifier: str, endpoint: Endpoint) -> ServerState:
        """Poll with the startup cadence until the model is served or the budget is spent."""
        deadline = time.monotonic() + self.timing.startup_check_time
        state = ServerState.STOPPED
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            if not HealthChecker.check_process_running(self.handle.process):
                logger.warning(f"llama-server exited during startup for model {model_identifier}")
                break

            state = await self.probe.probe(endpoint, model_identifier, remaining, self.timing.startup_retry_interval)
            if state is ServerState.RUNNING_CORRECT_MODEL:
                return state

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.timing.startup_retry_interval, remaining))
        return state

    def _start_server(self, model_identifier: str, launch_config: LaunchConfig) -> ProcessHandle:
        cmd, env = self._prepare_cmd_params(launch_config)
        logger.info(f"Starting llama-server for model {model_identifier}: {' '.join(cmd)}")
        try:
            process = subprocess.Popen(cmd, cwd=self.llama_config.working_dir, env=env)
        except OSError as e:
            logger.error(f"Failed to start llama-server from {self.llama_config.working_dir}: {e}")
            raise
        return ProcessHandle(process=process, args=cmd, model=model_identifier)

    def _prepare_cmd_params(self, launch_config: LaunchConfig) -> tuple[list[str], dict[str, str]]:
        """
        Build the llama-server command line and the child's environment.

        Accelerator visibility is set only in the child's environment so the
        supervisor's own os.environ is never touched.
        """
        cmd = [self.llama_config.binary]
        env = os.environ.copy()
        # CUDA numbers devices fastest-first by default; NVML ordinals follow PCI bus order
        env[CUDA_DEVICE_ORDER] = "PCI_BUS_ID"
        if self.inventory is None:
            env[CUDA_VISIBLE_DEVICES] = ""
            cmd.extend(["--n-gpu-layers", "0"])
        else:
            ordinals = self.inventory.ordinals
            env[CUDA_VISIBLE_DEVICES] = ",".join(str(ordinal) for ordinal in ordinals)
            # --main-gpu indexes into the visible devices, not NVML ordinals
            main_gpu = ordinals.index(self.inventory.primary_ordinal)
            if len(ordinals) == 1:
                cmd.extend(["--split-mode", "none"])
            else:
                cmd.extend(["--split-mode", "layer"])
                cmd.extend(["--tensor-split", ",".join(str(ratio) for ratio in self.inventory.tensor_split())])
            cmd.extend(["--main-gpu", str(main_gpu)])
            cmd.extend(["--n-gpu-layers", str(launch_config.gpu_layers)])

        cmd.extend([
            "--model", launch_config.model_path,
            "--ctx-size", str(launch_config.ctx_size),
            "--timeout", str(launch_config.request_timeout),
            "--host", launch_config.host,
        ])
        if launch_config.verbose:
            cmd.append("--verbose")
        if launch_config.port is not None:
            cmd.extend(["--port", str(launch_config.port)])
        return cmd, env
