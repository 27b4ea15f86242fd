"""
Chain Orchestrator - drives the active agents one stage at a time
"""
import time
from typing import TYPE_CHECKING, List

from agents.prompt_agent import prompt_agent
from schemas.chain_schemas import (
    ChainCursor,
    ChainStatus,
    ExecutionLogEntry,
    StageResult,
    StageStatus,
)
from utils.exceptions import (
    AgentExecutionFailure,
    ChainStateError,
    OperationInProgress,
    ProcessorError,
    RemoteError,
)
from utils.logger import logger

if TYPE_CHECKING:
    from chain.session import ProcessingSession


class ChainOrchestrator:
    """
    Sequential, single-flight execution of the active agent chain

    Stage flow:
    pending → running → completed

    Stage 0 reads the document text at the moment it runs; stage i > 0
    reads exactly the recorded output of stage i-1. The cursor only moves
    forward through advance(), and only after the stage under it completed.
    A failed stage leaves its result and the cursor untouched so the same
    run_stage call can be repeated.
    """

    def __init__(self, session: "ProcessingSession", agent=None):
        self.session = session
        self.agent = agent or prompt_agent

    @property
    def results(self) -> List[StageResult]:
        return self.session.results

    @property
    def cursor(self) -> ChainCursor:
        return self.session.cursor

    @property
    def stage_count(self) -> int:
        return len(self.session.results)

    @property
    def started(self) -> bool:
        return self.stage_count > 0

    def start(self, count: int) -> None:
        """
        (Re)initialize stage results and the cursor for `count` active agents

        Raises:
            InvalidSelection for an out-of-range count
            OperationInProgress while a remote call is outstanding
        """
        session = self.session
        if not session.busy_lock.acquire(blocking=False):
            raise OperationInProgress("Cannot restart the chain while a remote call is in progress")

        try:
            active = session.registry.list_active(count)
            session.active_count = len(active)
            session.results = [StageResult() for _ in active]
            session.cursor = ChainCursor()
        finally:
            session.busy_lock.release()
        logger.info(f"Chain started with {len(active)} agents", agents=[a.name for a in active])

    def stage_status(self, index: int) -> StageStatus:
        if self.results[index].is_done:
            return StageStatus.COMPLETED
        if self.cursor.running and self.cursor.position == index:
            return StageStatus.RUNNING
        return StageStatus.PENDING

    @property
    def status(self) -> ChainStatus:
        if not self.started:
            return ChainStatus.NOT_STARTED
        if self.cursor.running:
            return ChainStatus.STAGE_RUNNING
        if self.results[self.cursor.position].is_done:
            if self.cursor.position == self.stage_count - 1:
                return ChainStatus.ALL_COMPLETE
            return ChainStatus.STAGE_READY
        return ChainStatus.IDLE

    @property
    def is_complete(self) -> bool:
        return self.status == ChainStatus.ALL_COMPLETE

    def stage_input(self, index: int) -> str:
        """Input of a stage: the live document for stage 0, else the previous output"""
        if index == 0:
            return self.session.document.text
        return self.results[index - 1].output

    def current_input(self) -> str:
        return self.stage_input(self.cursor.position)

    def _check_can_run(self, index: int) -> None:
        if not self.started:
            raise ChainStateError("Chain has not been started")
        if index != self.cursor.position:
            raise ChainStateError(f"Stage {index} is not the current stage ({self.cursor.position})")
        if self.results[index].is_done:
            raise ChainStateError(f"Stage {index} has already completed")
        if index > 0 and not self.results[index - 1].is_done:
            raise ChainStateError(f"Stage {index - 1} has not completed")
        if self.cursor.running:
            raise OperationInProgress("Another stage is running")

    def run_stage(self, index: int) -> StageResult:
        """
        Execute the agent at the cursor

        The result and its trace entry are recorded before the busy lock is
        released, so no other call can observe the stage as still pending.

        Raises:
            ChainStateError, OperationInProgress if preconditions fail (no mutation)
            AgentExecutionFailure if the remote call fails (no mutation)
        """
        session = self.session
        if not session.busy_lock.acquire(blocking=False):
            raise OperationInProgress("Another remote call is in progress")

        try:
            self._check_can_run(index)
            definition = session.registry.get(index)
        except ProcessorError:
            session.busy_lock.release()
            raise

        stage_input = self.stage_input(index)
        self.cursor.running = True
        start_time = time.time()

        try:
            try:
                response = self.agent.execute(definition, stage_input)
            except RemoteError as e:
                latency = time.time() - start_time
                logger.error(f"Error executing agent {definition.name}: {e}", stage=index)
                session.trace_log.append(ExecutionLogEntry(
                    operation="stage",
                    agent_name=definition.name,
                    stage_index=index,
                    model=definition.model.value,
                    latency_ms=latency * 1000,
                    input_chars=len(stage_input),
                    error_occurred=True,
                    error_message=str(e),
                ))
                raise AgentExecutionFailure(definition.name, e) from e

            duration = time.time() - start_time
            output = response["content"]
            result = StageResult(input=stage_input, output=output, duration_seconds=duration)
            self.results[index] = result

            session.trace_log.append(ExecutionLogEntry(
                operation="stage",
                agent_name=definition.name,
                stage_index=index,
                model=response.get("model", definition.model.value),
                latency_ms=duration * 1000,
                input_chars=len(stage_input),
                output_chars=len(output),
            ))
        finally:
            self.cursor.running = False
            session.busy_lock.release()

        logger.info(
            f"Stage {index} completed: {definition.name}",
            duration=f"{duration:.2f}s",
            output_chars=len(output)
        )
        return result

    def advance(self) -> int:
        """
        Move the cursor to the next stage

        Raises:
            ChainStateError unless the current stage completed and is not the last
            OperationInProgress while a remote call is outstanding
        """
        session = self.session
        if not session.busy_lock.acquire(blocking=False):
            raise OperationInProgress("Cannot advance while a remote call is in progress")

        try:
            if not self.started:
                raise ChainStateError("Chain has not been started")
            if not self.results[self.cursor.position].is_done:
                raise ChainStateError(f"Stage {self.cursor.position} has not completed")
            if self.cursor.position >= self.stage_count - 1:
                raise ChainStateError("Chain is already at the last stage")
            self.cursor.position += 1
        finally:
            session.busy_lock.release()

        logger.info(f"Cursor advanced to stage {self.cursor.position}")
        return self.cursor.position
