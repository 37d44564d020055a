"""
DenseNet Training Module

This module runs the train / validate / test workflow for the DenseNet flower
classifier and records metrics to TensorBoard and CSV.
"""

import logging
import math
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import torch
import torch.nn as nn
import torch.nn.functional as F
import torch.optim as optim
from torch.utils.data import DataLoader
from torch.utils.tensorboard import SummaryWriter
from tqdm import tqdm

from densenet_flowers.config import TrainingConfig
from densenet_flowers.model import DenseNet, count_parameters, get_model_size
from densenet_flowers.monitor import SystemMonitor

logger = logging.getLogger(__name__)

CHECKPOINT_NAME = "densenet_flowers.pth"


@dataclass
class EpochRecord:
    """Mean training loss of one epoch."""
    epoch: int
    train_loss: float


@dataclass
class EvaluationResult:
    """Container for validation or test results."""
    loss: float
    accuracy: float
    matched: int
    total: int
    class_accuracy: Dict[str, float] = field(default_factory=dict)


@dataclass
class TrainingHistory:
    """Per-epoch training loss plus validation results keyed by epoch."""
    epochs: List[EpochRecord] = field(default_factory=list)
    validation: Dict[int, EvaluationResult] = field(default_factory=dict)

    @property
    def train_epochs(self) -> List[int]:
        return [record.epoch for record in self.epochs]

    @property
    def train_losses(self) -> List[float]:
        return [record.train_loss for record in self.epochs]

    def to_dataframe(self) -> pd.DataFrame:
        rows = []
        for record in self.epochs:
            result = self.validation.get(record.epoch)
            rows.append({
                "epoch": record.epoch,
                "train_loss": record.train_loss,
                "valid_loss": result.loss if result else np.nan,
                "valid_accuracy": result.accuracy if result else np.nan,
            })
        return pd.DataFrame(rows, columns=["epoch", "train_loss", "valid_loss", "valid_accuracy"])


def build_model(config: TrainingConfig) -> DenseNet:
    """Create the DenseNet described by the configuration."""
    return DenseNet(
        config.class_num,
        num_channels=config.num_channels,
        growth_rate=config.growth_rate,
        num_convs_in_dense_blocks=config.num_convs_in_dense_blocks,
    )


def sanity_check(config: TrainingConfig) -> torch.Size:
    """Forward one random image through a fresh network and return the output shape."""
    net = build_model(config)
    net.eval()
    x = torch.randn(1, 3, config.img_size, config.img_size)
    with torch.no_grad():
        return net(x).shape


class DenseNetTrainer:
    """Trains, validates and tests a DenseNet classifier."""

    def __init__(self, config: TrainingConfig, class_names: Sequence[str],
                 device: str = "cpu", output_dir: Optional[str] = None):
        self.config = config
        self.class_names = list(class_names)
        self.device = torch.device(device)
        self.output_dir = output_dir or config.output_dir
        self.history = TrainingHistory()

        # Create output directories
        os.makedirs(self.output_dir, exist_ok=True)
        os.makedirs(os.path.join(self.output_dir, "models"), exist_ok=True)
        self.writer = SummaryWriter(os.path.join(self.output_dir, "tensorboard"))

        self.model = build_model(config).to(self.device)
        self.optimizer = optim.Adam(
            self.model.parameters(), lr=config.learning_rate, betas=tuple(config.betas)
        )
        self.criterion = nn.NLLLoss(ignore_index=-100, reduction="mean")

        total_params, trainable_params = count_parameters(self.model)
        logger.info(f"Model created: {total_params:,} total parameters, "
                    f"{trainable_params:,} trainable, {get_model_size(self.model):.2f} MB")

    def _compute_loss(self, output: torch.Tensor, labels: torch.Tensor) -> torch.Tensor:
        return self.criterion(F.log_softmax(output, dim=1), labels)

    def train_epoch(self, loader: DataLoader, epoch: int) -> float:
        """Run one optimization pass over the loader and return the mean mini-batch loss."""
        self.model.train()
        loss_sum = 0.0
        first = True

        for images, labels, _ in tqdm(loader, desc=f"Epoch {epoch}", leave=False):
            if first and self.config.verbose:
                logger.info(f"First batch labels: {labels.tolist()}")
                first = False

            images = images.to(self.device)
            labels = labels.to(self.device)

            output = self.model(images)
            loss = self._compute_loss(output, labels)

            self.optimizer.zero_grad()
            loss.backward()
            self.optimizer.step()

            loss_sum += loss.item()

        avg_loss = loss_sum / len(loader)
        self.history.epochs.append(EpochRecord(epoch, avg_loss))
        self.writer.add_scalar("Loss/train", avg_loss, epoch)
        return avg_loss

    def evaluate(self, loader: DataLoader, per_class: bool = False) -> EvaluationResult:
        """Compute mean loss and accuracy without updating the model."""
        self.model.eval()
        num_classes = len(self.class_names)
        class_match = torch.zeros(num_classes, dtype=torch.long)
        class_counter = torch.zeros(num_classes, dtype=torch.long)
        total_loss = 0.0
        total_match = 0
        total_counter = 0
        iterations = 0

        with torch.no_grad():
            for images, labels, _ in tqdm(loader, desc="Evaluating", leave=False):
                images = images.to(self.device)
                labels = labels.to(self.device)

                output = self.model(images)
                loss = self._compute_loss(output, labels)

                correct = output.argmax(dim=1) == labels
                total_match += int(correct.sum().item())
                total_counter += labels.size(0)
                total_loss += loss.item()
                iterations += 1

                if per_class:
                    labels_cpu = labels.cpu()
                    class_counter += torch.bincount(labels_cpu, minlength=num_classes)
                    class_match += torch.bincount(labels_cpu[correct.cpu()], minlength=num_classes)

        avg_loss = total_loss / iterations if iterations else math.nan
        accuracy = total_match / total_counter if total_counter else math.nan

        class_accuracy = {}
        if per_class:
            for i, name in enumerate(self.class_names):
                count = int(class_counter[i])
                class_accuracy[name] = int(class_match[i]) / count if count else math.nan

        return EvaluationResult(
            loss=avg_loss,
            accuracy=accuracy,
            matched=total_match,
            total=total_counter,
            class_accuracy=class_accuracy,
        )

    def fit(self, train_loader: DataLoader,
            valid_loader: Optional[DataLoader] = None) -> TrainingHistory:
        """Train from start_epoch to total_epoch, validating every valid_interval epochs."""
        start_epoch, total_epoch = self.config.start_epoch, self.config.total_epoch
        logger.info(f"Training for epochs {start_epoch}..{total_epoch}, "
                    f"{len(train_loader)} iterations per epoch")

        for epoch in range(start_epoch, total_epoch + 1):
            logger.info("--------------- Training --------------------")
            avg_loss = self.train_epoch(train_loader, epoch)
            logger.info(f"epoch: {epoch}/{total_epoch}, avg_loss: {avg_loss:.6f}")

            ram_usage, vram_usage = SystemMonitor.get_memory_usage()
            logger.info(f"RAM usage: {ram_usage:.2f} MB, VRAM usage: {vram_usage:.2f} MB, "
                        f"process: {SystemMonitor.get_process_memory():.2f} MB")

            if self.config.valid and valid_loader is not None and epoch % self.config.valid_interval == 0:
                logger.info("--------------- validation --------------------")
                result = self.evaluate(valid_loader)
                self.history.validation[epoch] = result
                self.writer.add_scalar("Loss/validation", result.loss, epoch)
                self.writer.add_scalar("Accuracy/validation", result.accuracy, epoch)
                logger.info(f"Validation accuracy: {result.accuracy:.4f}")

        return self.history

    def test(self, loader: DataLoader) -> EvaluationResult:
        """Evaluate on the test split with per-class accuracy."""
        result = self.evaluate(loader, per_class=True)

        logger.info("Test accuracy ==========")
        for name, accuracy in result.class_accuracy.items():
            logger.info(f"{name}: {accuracy:.4f}")
            if not math.isnan(accuracy):
                self.writer.add_scalar(f"Test_Accuracy/{name}", accuracy)
        logger.info(f"Test accuracy: {result.accuracy:.4f}")
        self.writer.add_scalar("Accuracy/test", result.accuracy)

        return result

    def save_checkpoint(self, filename: str = CHECKPOINT_NAME) -> str:
        """Save model weights."""
        path = os.path.join(self.output_dir, "models", filename)
        torch.save(self.model.state_dict(), path)
        logger.info(f"Model saved to {path}")
        return path

    def load_checkpoint(self, path: str):
        """Restore model weights saved by save_checkpoint."""
        state_dict = torch.load(path, map_location=self.device)
        self.model.load_state_dict(state_dict)
        logger.info(f"Model loaded from {path}")

    def save_history(self, filename: str = "training_history.csv") -> Optional[pd.DataFrame]:
        """Save per-epoch metrics to CSV."""
        if not self.history.epochs:
            logger.warning("No training history to save")
            return None

        df = self.history.to_dataframe()
        output_path = os.path.join(self.output_dir, filename)
        df.to_csv(output_path, index=False)
        logger.info(f"Training history saved to {output_path}")
        return df

    def save_test_results(self, result: EvaluationResult,
                          filename: str = "test_accuracy.csv") -> pd.DataFrame:
        """Save per-class and overall test accuracy to CSV."""
        rows: List[Tuple[str, float]] = list(result.class_accuracy.items())
        rows.append(("overall", result.accuracy))
        df = pd.DataFrame(rows, columns=["class_name", "accuracy"])

        output_path = os.path.join(self.output_dir, filename)
        df.to_csv(output_path, index=False)
        logger.info(f"Test results saved to {output_path}")
        return df

    def cleanup(self):
        """Clean up resources."""
        self.writer.close()
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
