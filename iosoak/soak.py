"""
IO Soak Coordinator

Runs a SegmentedRunner per pod concurrently and waits on every pod's
completion and error futures. The first failure stops the soak.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Sequence

from .config import SoakConfig, DEFAULT_CONFIG
from .duty_cycles import DutyCycle, FIO_DUTY_CYCLES
from .fio import FioExecutor
from .runner import SegmentedRunner

logger = logging.getLogger(__name__)


@dataclass
class SoakResult:
    """Outcome of a soak across all pods."""
    started_at: datetime
    ended_at: datetime | None = None
    completed: list[str] = field(default_factory=list)
    failures: dict[str, BaseException] = field(default_factory=dict)
    cancelled: list[str] = field(default_factory=list)
    
    @property
    def ok(self) -> bool:
        return not self.failures and not self.cancelled
    
    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "status": "completed" if self.ok else "failed",
            "completed": self.completed,
            "failures": {pod: str(e) for pod, e in self.failures.items()},
            "cancelled": self.cancelled,
        }


@dataclass
class _Participant:
    pod: str
    duty_cycle: DutyCycle
    done: asyncio.Future
    errors: asyncio.Future
    task: asyncio.Task | None = None


class IoSoak:
    """
    Soak test over a set of fio pods.
    
    Usage:
        soak = IoSoak(["fio-0", "fio-1"], timedelta(hours=1))
        result = await soak.run()
        if not result.ok:
            ...
    """
    
    def __init__(
        self,
        pods: Sequence[str],
        duration: timedelta,
        raw_block: bool = False,
        duty_cycles: Sequence[DutyCycle] = FIO_DUTY_CYCLES,
        config: SoakConfig = DEFAULT_CONFIG,
        executor: FioExecutor | None = None
    ):
        if not pods:
            raise ValueError("At least one pod is required")
        if duration.total_seconds() < 1:
            raise ValueError(f"Soak duration must be at least one second, got {duration}")
        if not duty_cycles:
            raise ValueError("At least one duty cycle is required")
        
        self.pods = list(pods)
        self.duration = duration
        self.raw_block = raw_block
        self.duty_cycles = list(duty_cycles)
        self.runner = SegmentedRunner(config, executor)
    
    def duty_cycle_for(self, index: int) -> DutyCycle:
        """Duty cycles are handed out round-robin."""
        return self.duty_cycles[index % len(self.duty_cycles)]
    
    def _start(self) -> list[_Participant]:
        loop = asyncio.get_running_loop()
        participants = []
        
        for ix, pod in enumerate(self.pods):
            p = _Participant(
                pod=pod,
                duty_cycle=self.duty_cycle_for(ix),
                done=loop.create_future(),
                errors=loop.create_future()
            )
            p.task = asyncio.create_task(
                self.runner.run(
                    pod,
                    self.duration,
                    p.duty_cycle.think_time,
                    p.duty_cycle.think_time_blocks,
                    self.raw_block,
                    p.done,
                    p.errors
                ),
                name=f"fio-{pod}"
            )
            participants.append(p)
        
        return participants
    
    @staticmethod
    def _collect(p: _Participant, result: SoakResult) -> bool:
        """Record a participant's signal; True once it has finished."""
        if p.done.done() and not p.done.cancelled():
            result.completed.append(p.done.result())
            return True
        if p.errors.done() and not p.errors.cancelled():
            result.failures[p.pod] = p.errors.result()
            return True
        if p.task.done():
            # The runner ended without signalling, e.g. it raised itself.
            error = None if p.task.cancelled() else p.task.exception()
            result.failures[p.pod] = error or RuntimeError(f"fio runner for {p.pod} ended without a result")
            return True
        return False
    
    async def run(self) -> SoakResult:
        """
        Run the soak until every pod completes or one fails.
        
        Returns:
            SoakResult; on failure the pods still running are cancelled
            and listed in SoakResult.cancelled
        """
        result = SoakResult(started_at=datetime.now())
        logger.info(f"Starting io soak on {len(self.pods)} pods for {self.duration} (rawBlock={self.raw_block})")
        
        participants = self._start()
        running = list(participants)
        
        try:
            while running and not result.failures:
                waitables = set()
                for p in running:
                    waitables.update((p.done, p.errors, p.task))
                await asyncio.wait(waitables, return_when=asyncio.FIRST_COMPLETED)
                
                running = [p for p in running if not self._collect(p, result)]
            
            for pod, error in result.failures.items():
                logger.error(f"fio failed on {pod}: {error}")
        
        finally:
            for p in running:
                p.task.cancel()
                result.cancelled.append(p.pod)
            if running:
                logger.warning(f"Cancelling fio on {len(running)} pods")
                await asyncio.gather(*(p.task for p in running), return_exceptions=True)
            result.ended_at = datetime.now()
        
        logger.info(
            f"io soak finished: {len(result.completed)} completed, "
            f"{len(result.failures)} failed, {len(result.cancelled)} cancelled"
        )
        return result
