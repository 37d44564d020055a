"""
Training Configuration

Defaults reproduce the fixed configuration of the flower classifier: 17
classes, 224x224 inputs, 20 epochs of Adam with validation every 5 epochs.
"""

import os
from dataclasses import dataclass, field
from typing import Tuple

VALID_DEVICES = ("auto", "cpu", "cuda")


class ConfigError(ValueError):
    """A configuration that cannot produce a run."""


@dataclass
class TrainingConfig:
    """Configuration for a training run."""
    data_root: str = "./data/17_flowers"
    class_names_path: str = "./data/17_flowers_name.txt"
    class_num: int = 17
    img_size: int = 224

    # Data loading
    batch_size: int = 32
    valid_batch_size: int = 1
    test_batch_size: int = 1
    train_shuffle: bool = True
    valid_shuffle: bool = True
    train_workers: int = 2
    valid_workers: int = 2
    test_workers: int = 0

    # Optimization
    learning_rate: float = 1e-4
    betas: Tuple[float, float] = (0.5, 0.999)
    start_epoch: int = 1
    total_epoch: int = 20

    # Evaluation
    valid: bool = True
    test: bool = True
    valid_interval: int = 5
    verbose: bool = False

    # Network topology
    num_channels: int = 64
    growth_rate: int = 32
    num_convs_in_dense_blocks: Tuple[int, ...] = field(default_factory=lambda: (4, 4, 4, 4))

    device: str = "auto"
    output_dir: str = "./results"

    @property
    def train_dir(self) -> str:
        return os.path.join(self.data_root, "train")

    @property
    def valid_dir(self) -> str:
        return os.path.join(self.data_root, "valid")

    @property
    def test_dir(self) -> str:
        return os.path.join(self.data_root, "test")

    def validate(self):
        """Raise ConfigError for settings that cannot produce a run."""
        positive = {
            "class_num": self.class_num,
            "img_size": self.img_size,
            "batch_size": self.batch_size,
            "valid_batch_size": self.valid_batch_size,
            "test_batch_size": self.test_batch_size,
            "start_epoch": self.start_epoch,
            "total_epoch": self.total_epoch,
            "valid_interval": self.valid_interval,
            "growth_rate": self.growth_rate,
            "num_channels": self.num_channels,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")

        if self.start_epoch > self.total_epoch:
            raise ConfigError(
                f"start_epoch ({self.start_epoch}) is after total_epoch ({self.total_epoch})"
            )
        if not self.num_convs_in_dense_blocks or min(self.num_convs_in_dense_blocks) <= 0:
            raise ConfigError("num_convs_in_dense_blocks needs at least one positive entry")
        for name in ("train_workers", "valid_workers", "test_workers"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")
        if self.device not in VALID_DEVICES:
            raise ConfigError(f"Unsupported device: {self.device}")
