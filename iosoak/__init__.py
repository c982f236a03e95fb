"""
IO Soak Module

Drives fio inside target pods for long soak tests, one bounded
segment at a time, so a failure anywhere can stop the run promptly.
"""

__version__ = "1.0.0"

from .config import SoakConfig, DEFAULT_CONFIG
from .duty_cycles import DutyCycle, FIO_DUTY_CYCLES, load_duty_cycles
from .fio import FioExecutor, FioError
from .runner import SegmentedRunner, Outcome, OutcomeStatus, run_io_soak_fio, segment_lengths
from .soak import IoSoak, SoakResult

__all__ = [
    "SoakConfig",
    "DEFAULT_CONFIG",
    "DutyCycle",
    "FIO_DUTY_CYCLES",
    "load_duty_cycles",
    "FioExecutor",
    "FioError",
    "SegmentedRunner",
    "Outcome",
    "OutcomeStatus",
    "run_io_soak_fio",
    "segment_lengths",
    "IoSoak",
    "SoakResult",
]
