"""
Loss curve plotting.
"""

import logging
from typing import Optional

import matplotlib.pyplot as plt

from densenet_flowers.trainer import TrainingHistory

logger = logging.getLogger(__name__)


def plot_loss_curve(history: TrainingHistory, output_path: Optional[str] = None,
                    show: bool = False) -> Optional[str]:
    """Plot mean training loss per epoch; save and/or display the figure."""
    if not history.epochs:
        raise ValueError("Training history is empty, nothing to plot")

    # 600x500 pixels
    fig = plt.figure(figsize=(6, 5), dpi=100)
    plt.plot(history.train_epochs, history.train_losses, "b", label="Train loss")
    plt.ylabel("loss")
    plt.xlabel("epoch")
    plt.legend()

    if output_path:
        fig.savefig(output_path)
        logger.info(f"Saved training plot to {output_path}")
    if show:
        plt.show()
    plt.close(fig)

    return output_path
