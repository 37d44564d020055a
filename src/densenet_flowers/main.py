"""
Main Application for DenseNet Flower Classification

This module orchestrates the complete workflow: sanity check of the network,
class-name loading, dataset preparation, training with periodic validation,
testing, and saving of results and the loss curve.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

import torch

from densenet_flowers.class_names import ClassNamesError, load_class_names
from densenet_flowers.config import VALID_DEVICES, ConfigError, TrainingConfig
from densenet_flowers.data import (
    DatasetError,
    ImageFolderWithPaths,
    build_transform,
    create_dataloader,
)
from densenet_flowers.plotting import plot_loss_curve
from densenet_flowers.trainer import DenseNetTrainer, EvaluationResult, sanity_check

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(output_dir: str, verbose: bool = False):
    """Log to stdout and to <output_dir>/training.log."""
    os.makedirs(output_dir, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(os.path.join(output_dir, 'training.log')),
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )


def setup_device(device: str) -> str:
    """Setup and validate device configuration."""
    if device == "auto":
        device = "cuda" if torch.cuda.is_available() else "cpu"
    elif device == "cuda" and not torch.cuda.is_available():
        logger.warning("CUDA requested but not available, falling back to CPU")
        device = "cpu"

    if device == "cuda":
        logger.info(f"CUDA available. Training on GPU: {torch.cuda.get_device_name(0)}")
    else:
        logger.info("Training on CPU.")
    return device


class FlowerClassificationPipeline:
    """Runs training, validation and testing for one configuration."""

    def __init__(self, config: TrainingConfig, show_plot: bool = False):
        config.validate()
        self.config = config
        self.show_plot = show_plot
        self.device = setup_device(config.device)
        self.transform = build_transform(config.img_size)
        self.class_names: List[str] = []
        self.trainer: Optional[DenseNetTrainer] = None
        self.test_result: Optional[EvaluationResult] = None

    def run(self) -> Optional[EvaluationResult]:
        config = self.config

        logger.info(f"Sanity check output shape: {tuple(sanity_check(config))}")

        self.class_names = load_class_names(config.class_names_path, config.class_num)

        train_dataset = ImageFolderWithPaths(config.train_dir, self.class_names, self.transform)
        train_loader = create_dataloader(
            train_dataset, config.batch_size, config.train_shuffle, config.train_workers
        )
        logger.info(f"total training images : {len(train_dataset)}")

        valid_loader = None
        if config.valid:
            valid_dataset = ImageFolderWithPaths(config.valid_dir, self.class_names, self.transform)
            valid_loader = create_dataloader(
                valid_dataset, config.valid_batch_size, config.valid_shuffle, config.valid_workers
            )
            logger.info(f"total validation images : {len(valid_dataset)}")

        self.trainer = DenseNetTrainer(config, self.class_names, self.device, config.output_dir)
        try:
            self.trainer.fit(train_loader, valid_loader)

            if config.test:
                test_dataset = ImageFolderWithPaths(config.test_dir, self.class_names, self.transform)
                test_loader = create_dataloader(
                    test_dataset, config.test_batch_size, False, config.test_workers
                )
                logger.info(f"total test images : {len(test_dataset)}")
                self.test_result = self.trainer.test(test_loader)
                self.trainer.save_test_results(self.test_result)

            self.trainer.save_history()
            self.trainer.save_checkpoint()
            plot_loss_curve(
                self.trainer.history,
                os.path.join(config.output_dir, "train_loss.png"),
                show=self.show_plot,
            )
        finally:
            self.trainer.cleanup()

        return self.test_result

    def print_final_summary(self):
        """Print final summary to console."""
        if self.trainer is None or not self.trainer.history.epochs:
            logger.warning("No results to summarize")
            return

        df = self.trainer.history.to_dataframe()

        print("\n" + "=" * 80)
        print("DENSENET FLOWER CLASSIFICATION - FINAL SUMMARY")
        print("=" * 80)
        print(f"\nEpochs trained: {len(df)}")
        print(f"Device: {self.device}")
        print(f"Final train loss: {df['train_loss'].iloc[-1]:.4f}")
        print(f"Best train loss: {df['train_loss'].min():.4f}")

        validated = df.dropna(subset=['valid_accuracy'])
        if not validated.empty:
            print(f"Best validation accuracy: {validated['valid_accuracy'].max():.4f} "
                  f"(epoch {int(validated.loc[validated['valid_accuracy'].idxmax(), 'epoch'])})")

        if self.test_result is not None:
            print(f"Test accuracy: {self.test_result.accuracy:.4f} "
                  f"({self.test_result.matched}/{self.test_result.total})")

        print("\n" + "=" * 80)
        print(f"Results saved to: {self.config.output_dir}")
        print(f"TensorBoard logs: {os.path.join(self.config.output_dir, 'tensorboard')}")
        print("=" * 80)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    defaults = TrainingConfig()
    parser = argparse.ArgumentParser(description="DenseNet Flower Classification")
    parser.add_argument("--data-root", default=defaults.data_root,
                        help="Directory holding train/valid/test splits")
    parser.add_argument("--class-names", default=defaults.class_names_path,
                        help="Text file with one class name per line")
    parser.add_argument("--class-num", type=int, default=defaults.class_num,
                        help="Expected number of classes")
    parser.add_argument("--img-size", type=int, default=defaults.img_size,
                        help="Input image size")
    parser.add_argument("--batch-size", type=int, default=defaults.batch_size,
                        help="Training mini-batch size")
    parser.add_argument("--epochs", type=int, default=defaults.total_epoch,
                        help="Last epoch to train")
    parser.add_argument("--start-epoch", type=int, default=defaults.start_epoch,
                        help="First epoch number")
    parser.add_argument("--lr", type=float, default=defaults.learning_rate,
                        help="Adam learning rate")
    parser.add_argument("--valid-interval", type=int, default=defaults.valid_interval,
                        help="Validate every N epochs")
    parser.add_argument("--train-workers", type=int, default=defaults.train_workers,
                        help="Data loading workers for training")
    parser.add_argument("--valid-workers", type=int, default=defaults.valid_workers,
                        help="Data loading workers for validation")
    parser.add_argument("--no-valid", action="store_true",
                        help="Skip validation")
    parser.add_argument("--no-test", action="store_true",
                        help="Skip the test split")
    parser.add_argument("--verbose", action="store_true",
                        help="Log first-batch labels and debug messages")
    parser.add_argument("--device", default=defaults.device, choices=list(VALID_DEVICES),
                        help="Device to train on")
    parser.add_argument("--output-dir", default=defaults.output_dir,
                        help="Output directory for results")
    parser.add_argument("--show-plot", action="store_true",
                        help="Display the loss curve when done")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> TrainingConfig:
    return TrainingConfig(
        data_root=args.data_root,
        class_names_path=args.class_names,
        class_num=args.class_num,
        img_size=args.img_size,
        batch_size=args.batch_size,
        start_epoch=args.start_epoch,
        total_epoch=args.epochs,
        learning_rate=args.lr,
        valid_interval=args.valid_interval,
        train_workers=args.train_workers,
        valid_workers=args.valid_workers,
        valid=not args.no_valid,
        test=not args.no_test,
        verbose=args.verbose,
        device=args.device,
        output_dir=args.output_dir,
    )


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    args = parse_args(argv)
    config = config_from_args(args)
    configure_logging(config.output_dir, config.verbose)

    logger.info("Starting DenseNet flower classification")
    logger.info(f"Current path is {os.getcwd()}")
    logger.info(f"Output directory: {config.output_dir}")

    try:
        pipeline = FlowerClassificationPipeline(config, show_plot=args.show_plot)
        pipeline.run()
        pipeline.print_final_summary()
    except (ClassNamesError, DatasetError, ConfigError) as e:
        logger.error(f"Error : {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Training failed: {e}")
        raise

    logger.info("Done!")


if __name__ == "__main__":
    main()
