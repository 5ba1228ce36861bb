"""Task scheduler for running workspace commands.

This module handles:
    - Batch-by-batch execution following the graph's parallel levels
    - Concurrency limiting within a batch via an asyncio semaphore
    - Fail-fast between batches (a failed batch stops the run)
    - Command lookup (workspace override, then shared default)
    - Process spawning with the resolver hook activated

Tasks never raise: a failing command becomes a ``TaskResult`` with
``success=False``. Only after the whole batch has settled does the runner
raise ``RunFailedError``, so every sibling gets to finish and report.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

from spinx.config import SpinxConfig, resolve_command
from spinx.errors import RunFailedError, WorkspaceNotFoundError
from spinx.graph import DependencyGraph
from spinx.reporting import NullReporter, Reporter

logger = logging.getLogger(__name__)

__all__ = [
    "ProcessExecutor",
    "ShellExecutor",
    "TaskResult",
    "TaskRunner",
]


@dataclass(frozen=True)
class TaskResult:
    """Outcome of one command in one workspace.

    Attributes:
        workspace: Workspace alias
        success: Whether the command exited with status 0 (or had nothing to run)
        duration: Wall-clock seconds
        command: Shell command that ran, None when the workspace had none
        error: Failure detail
        exit_code: Process exit status, None when no process was spawned
    """

    workspace: str
    success: bool
    duration: float
    command: str | None = None
    error: str | None = None
    exit_code: int | None = None

    @property
    def skipped(self) -> bool:
        return self.command is None


class ProcessExecutor(Protocol):
    """Runs a shell command and returns its exit status."""

    async def run(self, command: str, cwd: Path, env: dict[str, str]) -> int: ...


class ShellExecutor:
    """Spawns commands through the shell with inherited stdio."""

    async def run(self, command: str, cwd: Path, env: dict[str, str]) -> int:
        process = await asyncio.create_subprocess_shell(command, cwd=str(cwd), env=env)
        return await process.wait()


class TaskRunner:
    """Runs named commands across workspaces in dependency order."""

    def __init__(
        self,
        config: SpinxConfig,
        graph: DependencyGraph,
        env: dict[str, str] | None = None,
        executor: ProcessExecutor | None = None,
        reporter: Reporter | None = None,
    ):
        self.config = config
        self.graph = graph
        self.env = dict(os.environ if env is None else env)
        self.executor = executor or ShellExecutor()
        self.reporter = reporter or NullReporter()

    @property
    def concurrency(self) -> int:
        """Maximum tasks running at once within a batch."""
        return self.config.concurrency or max(len(self.graph), 1)

    async def run_all(
        self,
        command_name: str,
        filter: Iterable[str] | None = None,
    ) -> dict[str, TaskResult]:
        """Run ``command_name`` for every workspace, batch by batch.

        Args:
            command_name: Command to run (e.g. "build")
            filter: Optional aliases to restrict the run to

        Returns:
            Alias -> TaskResult for every task that ran

        Raises:
            RunFailedError: After the first batch containing a failed task.
                No later batch is started.
        """
        allowed = set(filter) if filter is not None else None
        batches = self.graph.parallel_batches()
        if allowed is not None:
            batches = [[alias for alias in batch if alias in allowed] for batch in batches]
            batches = [batch for batch in batches if batch]
        results: dict[str, TaskResult] = {}
        semaphore = asyncio.Semaphore(self.concurrency)

        self.reporter.run_started(command_name, len(batches))

        for index, batch in enumerate(batches, start=1):
            self.reporter.batch_started(index, len(batches), batch)
            logger.debug("Batch %d/%d: %s", index, len(batches), ", ".join(batch))

            batch_results = await self._run_batch(batch, command_name, semaphore)
            results.update(batch_results)

            failed = [result for result in batch_results.values() if not result.success]
            if failed:
                logger.error(
                    "Batch %d had failures: %s",
                    index,
                    ", ".join(result.workspace for result in failed),
                )
                self.reporter.batch_failed(index, failed)
                raise RunFailedError(command_name, failed, results)

        self.reporter.run_finished(results)
        return results

    async def _run_batch(
        self,
        aliases: list[str],
        command_name: str,
        semaphore: asyncio.Semaphore,
    ) -> dict[str, TaskResult]:
        async def throttled(alias: str) -> TaskResult:
            async with semaphore:
                return await self.run_task(alias, command_name)

        settled = await asyncio.gather(*(throttled(alias) for alias in aliases))
        return {result.workspace: result for result in settled}

    async def run_task(self, alias: str, command_name: str) -> TaskResult:
        """Run one command in one workspace.

        A workspace without the command is a successful no-op. Spawn errors
        and non-zero exits are returned as failed results.

        Raises:
            WorkspaceNotFoundError: If ``alias`` is not a workspace.
        """
        workspace = self.graph.workspace_of(alias)
        if workspace is None:
            raise WorkspaceNotFoundError(alias)

        command = resolve_command(workspace, command_name, self.config)
        if command is None:
            self.reporter.task_skipped(alias, command_name)
            result = TaskResult(workspace=alias, success=True, duration=0.0)
            self.reporter.task_finished(result)
            return result

        self.reporter.task_started(alias, command)
        logger.info("Running %s in %s: %s", command_name, alias, command)
        started = time.perf_counter()

        try:
            exit_code = await self.executor.run(command, Path(workspace.path), self.env)
        except Exception as exc:
            logger.error("Failed to start %s in %s: %s", command_name, alias, exc)
            result = TaskResult(
                workspace=alias,
                success=False,
                duration=time.perf_counter() - started,
                command=command,
                error=str(exc) or exc.__class__.__name__,
            )
        else:
            duration = time.perf_counter() - started
            if exit_code == 0:
                result = TaskResult(
                    workspace=alias,
                    success=True,
                    duration=duration,
                    command=command,
                    exit_code=exit_code,
                )
            else:
                result = TaskResult(
                    workspace=alias,
                    success=False,
                    duration=duration,
                    command=command,
                    error=f"Command failed with exit code {exit_code}: {command}",
                    exit_code=exit_code,
                )

        self.reporter.task_finished(result)
        return result

    async def run_single(
        self,
        alias: str,
        command_name: str,
        with_deps: bool = False,
    ) -> list[TaskResult]:
        """Run a command for one workspace, optionally after its direct dependencies.

        Dependencies run one after another, in declaration order. Their
        failures are recorded like any other task failure.

        Raises:
            WorkspaceNotFoundError: If ``alias`` is not a workspace.
        """
        if not self.graph.has(alias):
            raise WorkspaceNotFoundError(alias)

        results: list[TaskResult] = []
        if with_deps:
            for dep in self.graph.dependencies_of(alias):
                results.append(await self.run_task(dep, command_name))

        results.append(await self.run_task(alias, command_name))
        return results

    async def run_affected(
        self,
        changed_aliases: Iterable[str],
        command_name: str,
    ) -> dict[str, TaskResult]:
        """Run ``command_name`` for the changed workspaces and their dependents."""
        affected = self.graph.affected(changed_aliases)
        logger.info("Affected workspaces: %s", ", ".join(sorted(affected)))
        return await self.run_all(command_name, affected)
