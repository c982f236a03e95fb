"""
IO Soak Coordinator Test Suite

Pre-Mortem Failure Categories:
1. Setup Failure - Degenerate soak accepted
2. Fan-in Failure - Pod results lost or misattributed
3. Shutdown Failure - Other pods keep running after a failure

Usage:
    pytest tests/test_io_soak.py -v -m soak
"""

import importlib.util
import json
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from iosoak import FIO_DUTY_CYCLES, DutyCycle, FioError, IoSoak


# =============================================================================
# Category 1: Setup Failure
# =============================================================================

class TestSetup:
    
    @pytest.mark.soak
    @pytest.mark.parametrize("pods,duration,cycles", [
        ([], timedelta(seconds=60), FIO_DUTY_CYCLES),
        (["fio-0"], timedelta(0), FIO_DUTY_CYCLES),
        (["fio-0"], timedelta(milliseconds=500), FIO_DUTY_CYCLES),
        (["fio-0"], timedelta(seconds=60), []),
    ])
    def test_degenerate_soak_rejected(self, pods, duration, cycles):
        with pytest.raises(ValueError):
            IoSoak(pods, duration, duty_cycles=cycles)
    
    @pytest.mark.soak
    def test_duty_cycles_round_robin(self):
        cycles = [DutyCycle(think_time=1, think_time_blocks=1), DutyCycle(think_time=2, think_time_blocks=2)]
        soak = IoSoak(["a", "b", "c"], timedelta(seconds=1), duty_cycles=cycles)
        
        assert [soak.duty_cycle_for(i).think_time for i in range(3)] == [1, 2, 1]


# =============================================================================
# Category 2: Fan-in Failure
# =============================================================================

class TestFanIn:
    
    @pytest.mark.soak
    @pytest.mark.asyncio
    async def test_all_pods_complete(self, soak_config, fake_executor):
        executor = fake_executor()
        soak = IoSoak(["fio-0", "fio-1", "fio-2"], timedelta(seconds=130), config=soak_config, executor=executor)
        
        result = await soak.run()
        
        assert result.ok
        assert sorted(result.completed) == ["fio-0", "fio-1", "fio-2"]
        assert result.failures == {}
        assert result.cancelled == []
        for pod in soak.pods:
            assert executor.runtimes(pod) == [60, 60, 10]
    
    @pytest.mark.soak
    @pytest.mark.asyncio
    async def test_each_pod_gets_its_duty_cycle(self, soak_config, fake_executor):
        executor = fake_executor()
        await IoSoak(["fio-0", "fio-1"], timedelta(seconds=5), raw_block=True,
                     config=soak_config, executor=executor).run()
        
        calls = {c[0]: c for c in executor.calls}
        assert calls["fio-0"][2:] == ("/dev/sdm", "--thinktime=500000", "--thinktime_blocks=1000")
        assert calls["fio-1"][2:] == ("/dev/sdm", "--thinktime=750000", "--thinktime_blocks=1000")
    
    @pytest.mark.soak
    @pytest.mark.asyncio
    async def test_failure_attributed_to_pod(self, soak_config, fake_executor):
        executor = fake_executor(fail_on={"fio-1": 1})
        result = await IoSoak(["fio-0", "fio-1"], timedelta(seconds=30),
                              config=soak_config, executor=executor).run()
        
        assert not result.ok
        assert list(result.failures) == ["fio-1"]
        assert isinstance(result.failures["fio-1"], FioError)
        assert result.to_dict()["status"] == "failed"


# =============================================================================
# Category 3: Shutdown Failure
# =============================================================================

class TestShutdown:
    
    @pytest.mark.soak
    @pytest.mark.asyncio
    async def test_failure_cancels_running_pods(self, soak_config, fake_executor):
        executor = fake_executor(fail_on={"fio-0": 2}, hang={"fio-1"})
        result = await IoSoak(["fio-0", "fio-1"], timedelta(seconds=600),
                              config=soak_config, executor=executor).run()
        
        assert list(result.failures) == ["fio-0"]
        assert result.cancelled == ["fio-1"]
        assert result.completed == []
        assert executor.runtimes("fio-0") == [60, 60]
        assert executor.runtimes("fio-1") == [60]
        assert result.ended_at is not None


# =============================================================================
# Script
# =============================================================================

def _load_script():
    path = Path(__file__).parent.parent / "scripts" / "run_io_soak.py"
    spec = importlib.util.spec_from_file_location("run_io_soak", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestScript:
    
    @pytest.mark.soak
    @pytest.mark.asyncio
    async def test_main_writes_result(self, tmp_path, fake_executor):
        script = _load_script()
        config_path = tmp_path / "soak.yaml"
        config_path.write_text(f"artifact_dir: {tmp_path}\n")
        executor = fake_executor(fail_on={"fio-1": 1})
        
        with patch("iosoak.runner.FioExecutor", return_value=executor):
            code = await script.main([
                "fio-0", "fio-1", "--duration", "90",
                "--config", str(config_path), "--output", str(tmp_path / "out")
            ])
        
        assert code == 1
        [saved] = (tmp_path / "out").glob("io_soak_*.json")
        data = json.loads(saved.read_text())
        assert data["status"] == "failed"
        assert "fio-1" in data["failures"]
    
    @pytest.mark.soak
    @pytest.mark.parametrize("duration", ["0", "-10"])
    def test_non_positive_duration_rejected(self, duration, capsys):
        script = _load_script()
        
        with pytest.raises(SystemExit) as excinfo:
            script.parse_args(["fio-0", "--duration", duration])
        
        assert excinfo.value.code == 2
        assert "--duration must be at least 1 second" in capsys.readouterr().err
