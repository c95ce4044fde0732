import asyncio
import subprocess
from typing import Optional

import requests

from llama_supervisor.shared.logger import Logger

logger = Logger.get(__name__)


class HealthChecker:
    """
    Utility class for performing health checks on servers and processes.
    Consolidates the single-attempt checks the probe and the health report build on.
    """

    @staticmethod
    async def check_tcp_connection(host: str, port: int, timeout: float = 1.0) -> bool:
        """
        Attempt one TCP connection to host:port.

        Args:
            host: The host address
            port: The port number
            timeout: Connect timeout in seconds

        Returns:
            True if the connection was accepted, False otherwise
        """
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug(f"TCP connection to {host}:{port} failed: {e}")
            return False

        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    @staticmethod
    async def check_http_endpoint(host: str, port: int, endpoint: str = "/health", timeout: float = 5.0) -> bool:
        """
        Check if an HTTP endpoint is responding with a successful status code.

        Args:
            host: The host address
            port: The port number
            endpoint: The health endpoint path (default: "/health")
            timeout: Request timeout in seconds

        Returns:
            True if the endpoint responds with 200 status, False otherwise
        """
        url = f"http://{host}:{port}{endpoint}"
        try:
            response = await asyncio.to_thread(
                requests.get, url, timeout=timeout,
            )
            if response.status_code == 200:
                logger.debug(f"Health check passed for {url}")
                return True
            else:
                logger.warning(f"Health check failed for {url}: status {response.status_code}")
                return False
        except Exception as e:
            logger.debug(f"Health check failed for {url}: {e}")
            return False

    @staticmethod
    def check_process_running(process: Optional[subprocess.Popen]) -> bool:
        """
        Check if a subprocess is still running.

        Args:
            process: The subprocess to check

        Returns:
            True if the process is running, False otherwise
        """
        if process is None:
            return False

        return_code = process.poll()
        if return_code is not None:
            logger.warning(f"Process has terminated with return code {return_code}")
            return False

        return True
