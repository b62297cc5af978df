"""Stopping and starting docker compose projects."""

import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

import docker

from shared.logger import get_logger

from .errors import ComposeError

logger = get_logger(__name__)

WORKING_DIR_LABEL = "com.docker.compose.project.working_dir"


class ComposeController:
    """
    Run docker compose commands for a project folder.

    Attributes:
        compose_command: Command prefix used to invoke compose
        timeout: Seconds to wait for a single compose command (None = no limit)
    """

    def __init__(
        self, compose_command: Sequence[str] = ("docker", "compose"), timeout: Optional[float] = None
    ):
        """
        Initialize compose controller.

        Args:
            compose_command: Command prefix, e.g. ("docker-compose",) for the v1 binary
            timeout: Seconds to wait for a single compose command
        """
        self.compose_command = list(compose_command)
        self.timeout = timeout
        self._client = None

    def stop_project(self, folder: Path) -> None:
        """
        Bring down all containers of the project in folder.

        Raises:
            ComposeError: If compose exits with an error
        """
        logger.info(f"Shutting down containers in {folder.name}...")
        self._run(folder, ["down"])

    def start_project(self, folder: Path) -> None:
        """
        Bring the project in folder back up, detached.

        Raises:
            ComposeError: If compose exits with an error
        """
        logger.info(f"Starting containers in {folder.name}...")
        self._run(folder, ["up", "-d"])

    def _run(self, folder: Path, args: List[str]) -> None:
        """
        Run one compose subcommand with folder as working directory.

        Args:
            folder: Project folder
            args: Compose subcommand and its arguments
        """
        command = self.compose_command + args
        try:
            result = subprocess.run(
                command,
                cwd=folder,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise ComposeError(f"Compose command not found: {self.compose_command[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise ComposeError(f"'{' '.join(command)}' timed out after {self.timeout}s in {folder}") from e

        if result.stdout:
            logger.debug(result.stdout.strip())

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise ComposeError(
                f"'{' '.join(command)}' failed in {folder} (exit {result.returncode}): {detail}"
            )

    @property
    def client(self):
        """Docker Engine client, connected on first use."""
        if self._client is None:
            try:
                self._client = docker.from_env()
                logger.debug("Connected to Docker daemon")
            except docker.errors.DockerException as e:
                logger.error(f"Failed to connect to Docker: {e}")
                raise ConnectionError(f"Cannot connect to Docker daemon: {e}")
        return self._client

    def running_containers(self, folder: Path) -> List[str]:
        """
        List running containers that compose started from folder.

        Args:
            folder: Project folder

        Returns:
            Sorted container names

        Raises:
            ConnectionError: If the Docker daemon is unreachable
        """
        label = f"{WORKING_DIR_LABEL}={folder.resolve()}"
        try:
            containers = self.client.containers.list(filters={"label": label})
        except (docker.errors.DockerException, OSError) as e:
            raise ConnectionError(f"Cannot list containers: {e}") from e
        return sorted(c.name for c in containers)
