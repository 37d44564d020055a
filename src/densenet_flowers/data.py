"""
Flower Dataset and Data Loaders

Images live in a directory-per-class layout (``<split>/<class name>/*.jpg``).
Labels follow the order of the class-name file rather than the directory
sort order.
"""

import logging
import os
from collections import Counter
from typing import Dict, List, Sequence, Tuple

import torch
import torchvision.transforms as transforms
from torch.utils.data import DataLoader
from torchvision import datasets

logger = logging.getLogger(__name__)

# Pixel value normalization for ImageNet
IMAGENET_MEAN = [0.485, 0.456, 0.406]
IMAGENET_STD = [0.229, 0.224, 0.225]


class DatasetError(Exception):
    """A dataset split is missing or holds no images."""


def build_transform(img_size: int) -> transforms.Compose:
    """Resize, convert to a [0, 1] tensor and normalize."""
    return transforms.Compose([
        transforms.Resize((img_size, img_size),
                          interpolation=transforms.InterpolationMode.BILINEAR),
        transforms.ToTensor(),
        transforms.Normalize(mean=IMAGENET_MEAN, std=IMAGENET_STD),
    ])


class ImageFolderWithPaths(datasets.ImageFolder):
    """ImageFolder whose classes come from a class-name list; items carry their path."""

    def __init__(self, root: str, class_names: Sequence[str], transform=None):
        if not os.path.isdir(root):
            raise DatasetError(f"Dataset directory not found: {root}")
        self._class_names = list(class_names)

        super().__init__(root, transform=transform, allow_empty=True)

        if not self.samples:
            raise DatasetError(f"No images found under {root}")

        counts = Counter(self.targets)
        missing = [name for i, name in enumerate(self.classes) if counts[i] == 0]
        if missing:
            logger.warning(f"{root}: no images for classes {missing}")

    def find_classes(self, directory: str) -> Tuple[List[str], Dict[str, int]]:
        classes = list(self._class_names)
        if len(set(classes)) != len(classes):
            raise DatasetError(f"Duplicate class names: {classes}")
        return classes, {name: i for i, name in enumerate(classes)}

    def __getitem__(self, index: int):
        image, label = super().__getitem__(index)
        path = self.samples[index][0]
        return image, label, path


def create_dataloader(dataset, batch_size: int, shuffle: bool, num_workers: int) -> DataLoader:
    """Wrap a dataset in a DataLoader."""
    return DataLoader(
        dataset,
        batch_size=batch_size,
        shuffle=shuffle,
        num_workers=num_workers,
        pin_memory=torch.cuda.is_available(),
    )
