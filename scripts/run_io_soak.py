#!/usr/bin/env python3
"""
Run an fio Soak Test

Runs fio in each of the given pods for the requested duration, in
bounded segments, and stops everything on the first failure.

Usage:
    python scripts/run_io_soak.py fio-0 fio-1 --duration 3600
    python scripts/run_io_soak.py fio-0 --duration 600 --raw-block --config soak.yaml
    python scripts/run_io_soak.py fio-0 fio-1 --duration 600 --duty-cycles cycles.yaml --output /tmp/soak
"""

import argparse
import asyncio
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path

# Add project to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from iosoak import DEFAULT_CONFIG, FIO_DUTY_CYCLES, IoSoak, SoakConfig, SoakResult, load_duty_cycles

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run an fio soak test against pods")
    parser.add_argument("pods", nargs="+", help="fio pod names")
    parser.add_argument("--duration", type=int, required=True, help="Soak duration in seconds")
    parser.add_argument("--raw-block", action="store_true", help="Pods use raw block volumes")
    parser.add_argument("--config", type=Path, help="Soak config YAML")
    parser.add_argument("--duty-cycles", type=Path, help="Duty cycle table YAML")
    parser.add_argument("--output", type=Path, help="Directory for the JSON result")
    args = parser.parse_args(argv)
    if args.duration < 1:
        parser.error(f"--duration must be at least 1 second, got {args.duration}")
    return args


def save_result(result: SoakResult, output_dir: Path) -> Path:
    """Save the soak result to JSON."""
    output_dir.mkdir(parents=True, exist_ok=True)
    
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_path = output_dir / f"io_soak_{timestamp}.json"
    
    with open(output_path, "w") as f:
        json.dump(result.to_dict(), f, indent=2)
    
    logger.info(f"Saved result to {output_path}")
    return output_path


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    
    config = SoakConfig.from_yaml(args.config) if args.config else DEFAULT_CONFIG
    duty_cycles = load_duty_cycles(args.duty_cycles) if args.duty_cycles else FIO_DUTY_CYCLES
    
    soak = IoSoak(
        args.pods,
        timedelta(seconds=args.duration),
        raw_block=args.raw_block,
        duty_cycles=duty_cycles,
        config=config
    )
    result = await soak.run()
    
    if args.output:
        save_result(result, args.output)
    
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
