"""
Soak Configuration

Pydantic model for the settings shared by every fio runner in a soak.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator


class SoakConfig(BaseModel):
    """
    Soak test configuration.
    
    Usage:
        config = SoakConfig.from_yaml("soak.yaml")
        print(config.segment_seconds)
    """
    segment_seconds: int = Field(60, ge=1)  # Ceiling on a single fio run
    fio_fs_filename: str = "/volume/fiotestfile"
    fio_block_filename: str = "/dev/sdm"
    artifact_dir: Path = Path("/tmp")
    kubeconfig: str | None = None
    namespace: str | None = None
    
    @field_validator("fio_fs_filename", "fio_block_filename")
    @classmethod
    def validate_filename(cls, v):
        if not v or not v.strip():
            raise ValueError("fio filename cannot be empty")
        return v
    
    def fio_filename(self, raw_block: bool) -> str:
        """Select the fio target for raw block or filesystem volumes."""
        return self.fio_block_filename if raw_block else self.fio_fs_filename
    
    def artifact_path(self, pod: str) -> Path:
        """Where the last fio output for a pod is kept."""
        return self.artifact_dir / f"{Path(pod).name}.out"
    
    @classmethod
    def from_yaml(cls, path: str | Path) -> "SoakConfig":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
    
    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)


DEFAULT_CONFIG = SoakConfig()
