"""
DenseNet Model Module

This module assembles the DenseNet topology from four block types: the
BN-ReLU-Conv block, the dense block, the transition block and the classifier.
"""

from typing import Sequence, Tuple

import torch
import torch.nn as nn
import torch.nn.functional as F


class ConvBlock(nn.Sequential):
    """Batch normalization, activation and convolution, concatenated with the input."""

    def __init__(self, input_channels: int, num_channels: int):
        super().__init__(
            nn.BatchNorm2d(input_channels),
            nn.ReLU(),
            nn.Conv2d(input_channels, num_channels, kernel_size=3, padding=1),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        y = super().forward(x)
        return torch.cat([x, y], dim=1)


class DenseBlock(nn.Sequential):
    """Stack of conv blocks; each one adds `num_channels` feature maps."""

    def __init__(self, num_convs: int, input_channels: int, num_channels: int):
        super().__init__(*[
            ConvBlock(num_channels * i + input_channels, num_channels)
            for i in range(num_convs)
        ])


class TransitionBlock(nn.Sequential):
    """Reduces channels with a 1x1 convolution and halves the spatial size."""

    def __init__(self, input_channels: int, num_channels: int):
        super().__init__(
            nn.BatchNorm2d(input_channels),
            nn.ReLU(),
            nn.Conv2d(input_channels, num_channels, kernel_size=1),
            nn.AvgPool2d(kernel_size=2, stride=2),
        )


class DenseNet(nn.Module):
    """
    DenseNet classifier.

    Four dense blocks with a growth rate of 32 (128 channels added per block),
    a transition layer halving the channel count between consecutive blocks,
    and a linear classifier on globally pooled features.
    """

    def __init__(self, num_classes: int, in_channels: int = 3, num_channels: int = 64,
                 growth_rate: int = 32,
                 num_convs_in_dense_blocks: Sequence[int] = (4, 4, 4, 4)):
        super().__init__()
        self.growth_rate = growth_rate
        self.num_convs_in_dense_blocks = tuple(num_convs_in_dense_blocks)

        self.features = nn.Sequential(
            nn.Conv2d(in_channels, num_channels, kernel_size=7, stride=2, padding=3),
            nn.BatchNorm2d(num_channels),
            nn.ReLU(),
            nn.MaxPool2d(kernel_size=3, stride=2, padding=1),
        )

        last = len(self.num_convs_in_dense_blocks) - 1
        for i, num_convs in enumerate(self.num_convs_in_dense_blocks):
            self.features.append(DenseBlock(num_convs, num_channels, growth_rate))
            # Output channels of the previous dense block
            num_channels += num_convs * growth_rate
            if i != last:
                self.features.append(TransitionBlock(num_channels, num_channels // 2))
                num_channels = num_channels // 2

        self.features.append(nn.BatchNorm2d(num_channels))
        self.num_features = num_channels

        self.classifier = nn.Linear(num_channels, num_classes)

        self._init_weights()

    def _init_weights(self):
        """Official init from the torchvision DenseNet."""
        for module in self.modules():
            if isinstance(module, nn.Conv2d):
                nn.init.kaiming_normal_(module.weight)
            elif isinstance(module, nn.BatchNorm2d):
                nn.init.constant_(module.weight, 1)
                nn.init.constant_(module.bias, 0)
            elif isinstance(module, nn.Linear):
                nn.init.constant_(module.bias, 0)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        features = self.features(x)
        out = F.relu(features)
        out = F.adaptive_avg_pool2d(out, (1, 1))
        out = torch.flatten(out, 1)
        return self.classifier(out)


def count_parameters(model: nn.Module) -> Tuple[int, int]:
    """Return total and trainable parameter counts."""
    total_params = sum(p.numel() for p in model.parameters())
    trainable_params = sum(p.numel() for p in model.parameters() if p.requires_grad)
    return total_params, trainable_params


def get_model_size(model: nn.Module) -> float:
    """Calculate model size in MB."""
    param_size = sum(p.numel() * p.element_size() for p in model.parameters())
    buffer_size = sum(b.numel() * b.element_size() for b in model.buffers())
    return (param_size + buffer_size) / (1024 * 1024)
