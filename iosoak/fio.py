"""
fio Executor

Runs fio inside a pod with kubectl exec and captures its output.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


# Fixed job description; runtime, filename and pacing are added per run.
DEFAULT_FIO_ARGS = (
    "--name=benchtest",
    "--verify_fatal=1",
    "--verify_async=2",
    "--direct=1",
    "--rw=randrw",
    "--ioengine=libaio",
    "--bs=4k",
    "--iodepth=16",
    "--numjobs=1",
    "--size=50m",
    "--time_based",
)


class FioError(Exception):
    """Raised when fio could not be run or exited non-zero."""
    
    def __init__(self, pod: str, returncode: int | None, output: bytes = b"", reason: str = ""):
        self.pod = pod
        self.returncode = returncode
        self.output = output
        detail = reason or f"exit status {returncode}"
        super().__init__(f"fio failed on pod {pod}: {detail}")


class FioExecutor:
    """
    Runs fio in target pods.
    
    Usage:
        executor = FioExecutor(namespace="default")
        output = await executor.run_fio("fio-pod", 60, "/volume/fiotestfile", "--thinktime=500000")
    """
    
    def __init__(
        self,
        kubeconfig: str | None = None,
        namespace: str | None = None,
        kubectl: str = "kubectl",
        fio_args: tuple[str, ...] = DEFAULT_FIO_ARGS
    ):
        self.kubeconfig = kubeconfig
        self.namespace = namespace
        self.kubectl = kubectl
        self.fio_args = fio_args
    
    def build_command(self, pod: str, seconds: int, filename: str, *args: str) -> list[str]:
        """
        Build the kubectl exec command line for one fio run.
        
        Args:
            pod: Pod to run fio in
            seconds: fio runtime
            filename: Device or file fio exercises
            *args: Extra fio arguments, e.g. pacing
            
        Returns:
            Command as an argument list
        """
        cmd = [self.kubectl, "exec", pod]
        if self.namespace:
            cmd.extend(["-n", self.namespace])
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        
        cmd.extend(["--", "fio", *self.fio_args])
        cmd.append(f"--filename={filename}")
        cmd.append(f"--runtime={seconds}")
        cmd.extend(args)
        return cmd
    
    async def run_fio(self, pod: str, seconds: int, filename: str, *args: str) -> bytes:
        """
        Run fio once in a pod.
        
        Returns:
            Combined stdout/stderr of fio
            
        Raises:
            FioError: If kubectl could not be launched or fio exited non-zero
        """
        cmd = self.build_command(pod, seconds, filename, *args)
        logger.debug(f"Running: {' '.join(cmd)}")
        
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT
            )
        except OSError as e:
            raise FioError(pod, None, reason=str(e)) from e
        
        try:
            stdout, _ = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
            await proc.wait()
            raise
        output = stdout or b""
        
        if proc.returncode != 0:
            logger.error(f"fio on {pod} exited with {proc.returncode}")
            raise FioError(pod, proc.returncode, output)
        
        return output
