"""
fio Duty Cycles

A duty cycle paces fio: stall think_time usecs after every
think_time_blocks blocks. See
https://fio.readthedocs.io/en/latest/fio_doc.html#i-o-rate
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field


class DutyCycle(BaseModel):
    """fio pacing parameters."""
    model_config = ConfigDict(frozen=True)
    
    think_time: int = Field(ge=0)  # usecs
    think_time_blocks: int = Field(ge=1)
    
    def fio_args(self) -> list[str]:
        return [
            f"--thinktime={self.think_time}",
            f"--thinktime_blocks={self.think_time_blocks}",
        ]


def load_duty_cycles(path: str | Path) -> list[DutyCycle]:
    """
    Load a duty cycle table from YAML file.
    
    Args:
        path: Path to a YAML list of {think_time, think_time_blocks}
        
    Returns:
        List of DutyCycle, in file order
        
    Raises:
        yaml.YAMLError: If YAML is malformed
        ValueError: If the table is empty
        ValidationError: If an entry is invalid
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    
    if not data:
        raise ValueError(f"No duty cycles in {path}")
    
    return [DutyCycle(**entry) for entry in data]


# =============================================================================
# Built-in Duty Cycles
# =============================================================================

# Guesstimates, bearing no relation to real loads.
FIO_DUTY_CYCLES = [
    DutyCycle(think_time=500000, think_time_blocks=1000),   # 0.5 second
    DutyCycle(think_time=750000, think_time_blocks=1000),   # 0.75 second
    DutyCycle(think_time=1000000, think_time_blocks=2000),  # 1 second
    DutyCycle(think_time=1250000, think_time_blocks=2000),  # 1.25 seconds
    DutyCycle(think_time=1500000, think_time_blocks=3000),  # 1.5 seconds
    DutyCycle(think_time=1750000, think_time_blocks=3000),  # 1.75 seconds
    DutyCycle(think_time=2000000, think_time_blocks=4000),  # 2 seconds
]
