"""
Segmented fio Runner

Runs fio in a loop of bounded segments to fulfil a larger duration,
so that a soak test can stop in a timely manner when an error occurs
elsewhere. Completion is reported once, on one of two futures.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Iterator

from .config import SoakConfig, DEFAULT_CONFIG
from .duty_cycles import DutyCycle
from .fio import FioExecutor

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    """Terminal state of one runner invocation."""
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Result of a runner invocation."""
    pod: str
    status: OutcomeStatus
    error: BaseException | None = None
    
    @classmethod
    def completed(cls, pod: str) -> "Outcome":
        return cls(pod=pod, status=OutcomeStatus.COMPLETED)
    
    @classmethod
    def failed(cls, pod: str, error: BaseException) -> "Outcome":
        return cls(pod=pod, status=OutcomeStatus.FAILED, error=error)
    
    def __bool__(self) -> bool:
        return self.status == OutcomeStatus.COMPLETED


def segment_lengths(total_seconds: int, segment_seconds: int = 60) -> Iterator[int]:
    """
    Split a duration into fio runs of at most segment_seconds.
    
    Every segment but the last is exactly segment_seconds long and the
    segments sum to total_seconds. Nothing is yielded for total_seconds <= 0.
    """
    if segment_seconds < 1:
        raise ValueError("segment_seconds must be positive")
    
    remaining = total_seconds
    while remaining > 0:
        runtime = min(remaining, segment_seconds)
        remaining -= runtime
        yield runtime


def _signal(channel: asyncio.Future, value: Any) -> None:
    if not channel.done():
        channel.set_result(value)


class SegmentedRunner:
    """
    Drives one pod through consecutive fio segments.
    
    Usage:
        runner = SegmentedRunner(config)
        done = loop.create_future()
        errors = loop.create_future()
        await runner.run("fio-pod", timedelta(minutes=10), 500000, 1000, False, done, errors)
    """
    
    def __init__(
        self,
        config: SoakConfig = DEFAULT_CONFIG,
        executor: FioExecutor | None = None
    ):
        self.config = config
        self.executor = executor or FioExecutor(
            kubeconfig=config.kubeconfig,
            namespace=config.namespace
        )
    
    async def _save_output(self, pod: str, output: bytes) -> None:
        """Keep the latest fio output for a pod; failures are ignored."""
        path = self.config.artifact_path(pod)
        try:
            await asyncio.to_thread(path.write_bytes, output)
        except OSError as e:
            logger.debug(f"Could not write fio output to {path}: {e}")
    
    async def run(
        self,
        pod: str,
        duration: timedelta,
        think_time: int,
        think_time_blocks: int,
        raw_block: bool,
        done: asyncio.Future,
        errors: asyncio.Future
    ) -> Outcome | None:
        """
        Run fio on a pod for the given duration.
        
        Args:
            pod: Name of the fio pod
            duration: Total time to run fio; sub-second remainders are dropped
            think_time: usecs to stall after think_time_blocks blocks
            think_time_blocks: Blocks to issue before each stall
            raw_block: True for raw block mounts, False for filesystem volumes
            done: Receives the pod name on success
            errors: Receives the fio error on failure
            
        Returns:
            The Outcome, or None if duration was under one second and
            nothing was run or signalled
        """
        duty_cycle = DutyCycle(think_time=think_time, think_time_blocks=think_time_blocks)
        fio_file = self.config.fio_filename(raw_block)
        fields = {
            "pod": pod,
            "thinktime": think_time,
            "thinktime_blocks": think_time_blocks,
            "raw_block": raw_block,
        }
        
        logger.info(
            f"Running fio: pod={pod} duration={duration} thinktime={think_time} "
            f"thinktime_blocks={think_time_blocks} rawBlock={raw_block}",
            extra={**fields, "duration": duration.total_seconds()}
        )
        
        segments = segment_lengths(int(duration.total_seconds()), self.config.segment_seconds)
        ran = False
        
        for iteration, runtime in enumerate(segments, start=1):
            ran = True
            logger.info(
                f"run fio: iteration={iteration} pod={pod} duration={runtime} "
                f"thinktime={think_time} thinktime_blocks={think_time_blocks} "
                f"rawBlock={raw_block} fioFile={fio_file}",
                extra={**fields, "iteration": iteration, "duration": runtime, "fio_file": fio_file}
            )
            
            try:
                output = await self.executor.run_fio(pod, runtime, fio_file, *duty_cycle.fio_args())
            except Exception as e:
                await self._save_output(pod, getattr(e, "output", b"") or b"")
                logger.warning(
                    f"Abort running fio: iteration={iteration} pod={pod} duration={runtime} error={e}",
                    extra={**fields, "iteration": iteration, "duration": runtime}
                )
                _signal(errors, e)
                return Outcome.failed(pod, e)
            
            await self._save_output(pod, output)
            logger.info(
                f"fio run finished: iteration={iteration} pod={pod} duration={runtime} "
                f"thinktime={think_time} thinktime_blocks={think_time_blocks} rawBlock={raw_block}",
                extra={**fields, "iteration": iteration, "duration": runtime, "fio_file": fio_file}
            )
        
        if not ran:
            logger.warning(f"Nothing to run on {pod}: duration {duration} is under one second")
            return None
        
        logger.info(
            f"Finished running fio: pod={pod} duration={duration}",
            extra={**fields, "duration": duration.total_seconds()}
        )
        _signal(done, pod)
        return Outcome.completed(pod)


async def run_io_soak_fio(
    pod: str,
    duration: timedelta,
    think_time: int,
    think_time_blocks: int,
    raw_block: bool,
    done: asyncio.Future,
    errors: asyncio.Future,
    *,
    config: SoakConfig = DEFAULT_CONFIG,
    executor: FioExecutor | None = None
) -> Outcome | None:
    """Run fio on one pod in bounded segments. See SegmentedRunner.run."""
    runner = SegmentedRunner(config, executor)
    return await runner.run(pod, duration, think_time, think_time_blocks, raw_block, done, errors)
