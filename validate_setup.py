#!/usr/bin/env python3
"""
Validation Script for DenseNet Flower Classification

This script validates that the environment, the dataset layout and the
class-name file are properly set up before running a full training.
"""

import os
import sys
import argparse
import importlib
import shutil
import torch

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src'))

from densenet_flowers.class_names import ClassNamesError, load_class_names
from densenet_flowers.config import TrainingConfig
from densenet_flowers.model import DenseNet, count_parameters

SPLITS = ("train", "valid", "test")


def print_status(message, status="INFO"):
    """Print status message with color coding."""
    colors = {
        "INFO": "\033[94m",
        "SUCCESS": "\033[92m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "RESET": "\033[0m"
    }

    status_symbol = {
        "INFO": "ℹ️",
        "SUCCESS": "✅",
        "WARNING": "⚠️",
        "ERROR": "❌"
    }

    print(f"{colors[status]}{status_symbol[status]} {message}{colors['RESET']}")


def check_python_version():
    """Check Python version compatibility."""
    print_status("Checking Python version...")

    version = sys.version_info
    if version.major == 3 and version.minor >= 9:
        print_status(f"Python {version.major}.{version.minor}.{version.micro} - Compatible", "SUCCESS")
        return True
    else:
        print_status(f"Python {version.major}.{version.minor}.{version.micro} - Requires Python 3.9+", "ERROR")
        return False


def check_dependencies():
    """Check if all required dependencies are installed."""
    print_status("Checking dependencies...")

    required_packages = [
        'torch',
        'torchvision',
        'tensorboard',
        'numpy',
        'pandas',
        'PIL',
        'tqdm',
        'psutil',
        'matplotlib'
    ]

    missing_packages = []

    for package in required_packages:
        try:
            importlib.import_module(package)
            print_status(f"  {package} - Installed", "SUCCESS")
        except ImportError:
            print_status(f"  {package} - Missing", "ERROR")
            missing_packages.append(package)

    if missing_packages:
        print_status(f"Missing packages: {', '.join(missing_packages)}", "ERROR")
        print_status("Install with: pip install -e .", "INFO")
        return False

    return True


def check_pytorch_setup():
    """Check PyTorch installation and CUDA availability."""
    print_status("Checking PyTorch setup...")

    print_status(f"PyTorch version: {torch.__version__}", "SUCCESS")

    if torch.cuda.is_available():
        gpu_count = torch.cuda.device_count()
        gpu_name = torch.cuda.get_device_name(0) if gpu_count > 0 else "Unknown"
        print_status(f"CUDA available: {torch.version.cuda} ({gpu_count} GPU(s))", "SUCCESS")
        print_status(f"GPU: {gpu_name}", "SUCCESS")
    else:
        print_status("CUDA not available - will train on CPU", "WARNING")

    return True


def check_dataset_layout(data_root):
    """Check that every split directory exists and holds class directories."""
    print_status(f"Checking dataset layout under {data_root}...")

    ok = True
    for split in SPLITS:
        split_dir = os.path.join(data_root, split)
        if not os.path.isdir(split_dir):
            print_status(f"  {split_dir} - Missing", "ERROR")
            ok = False
            continue

        class_dirs = [d for d in os.listdir(split_dir) if os.path.isdir(os.path.join(split_dir, d))]
        if class_dirs:
            print_status(f"  {split_dir} - {len(class_dirs)} class directories", "SUCCESS")
        else:
            print_status(f"  {split_dir} - No class directories", "ERROR")
            ok = False

    return ok


def check_class_name_file(path, class_num):
    """Check that the class-name file holds exactly class_num names."""
    print_status(f"Checking class name file {path}...")

    try:
        class_names = load_class_names(path, class_num)
    except ClassNamesError as e:
        print_status(str(e), "ERROR")
        return False

    print_status(f"{len(class_names)} class names loaded", "SUCCESS")
    return True


def check_model_loading(class_num=17, img_size=224):
    """Test that the DenseNet can be built and run forward."""
    print_status("Testing model construction...")

    try:
        model = DenseNet(class_num)
        model.eval()
        with torch.no_grad():
            output = model(torch.randn(1, 3, img_size, img_size))

        total_params, _ = count_parameters(model)
        print_status(f"Model parameters: {total_params:,}", "SUCCESS")

        if tuple(output.shape) != (1, class_num):
            print_status(f"Unexpected output shape {tuple(output.shape)}", "ERROR")
            return False
        print_status(f"Output shape: {tuple(output.shape)}", "SUCCESS")

        return True
    except Exception as e:
        print_status(f"Failed to build model: {e}", "ERROR")
        return False


def check_output_directories(output_dir="test_output"):
    """Check if output directories can be created."""
    print_status("Checking output directories...")

    try:
        os.makedirs(os.path.join(output_dir, "tensorboard"), exist_ok=True)
        os.makedirs(os.path.join(output_dir, "models"), exist_ok=True)

        print_status("Output directories can be created", "SUCCESS")

        shutil.rmtree(output_dir)

        return True
    except OSError as e:
        print_status(f"Failed to create output directories: {e}", "ERROR")
        return False


def main(argv=None):
    """Main validation function."""
    defaults = TrainingConfig()
    parser = argparse.ArgumentParser(description="Validate the training environment")
    parser.add_argument("--data-root", default=defaults.data_root)
    parser.add_argument("--class-names", default=defaults.class_names_path)
    parser.add_argument("--class-num", type=int, default=defaults.class_num)
    args = parser.parse_args(argv)

    print("DenseNet Flower Classification - Validation")
    print("=" * 60)

    checks = [
        ("Python Version", check_python_version),
        ("Dependencies", check_dependencies),
        ("PyTorch Setup", check_pytorch_setup),
        ("Dataset Layout", lambda: check_dataset_layout(args.data_root)),
        ("Class Name File", lambda: check_class_name_file(args.class_names, args.class_num)),
        ("Model Loading", lambda: check_model_loading(args.class_num)),
        ("Output Directories", check_output_directories)
    ]

    results = []

    for check_name, check_func in checks:
        print(f"\n--- {check_name} ---")
        try:
            result = check_func()
            results.append((check_name, result))
        except Exception as e:
            print_status(f"Check failed with exception: {e}", "ERROR")
            results.append((check_name, False))

    # Summary
    print("\n" + "=" * 60)
    print("VALIDATION SUMMARY")
    print("=" * 60)

    passed = 0
    total = len(results)

    for check_name, result in results:
        status = "PASS" if result else "FAIL"
        symbol = "✅" if result else "❌"
        print(f"{symbol} {check_name}: {status}")
        if result:
            passed += 1

    print(f"\nOverall: {passed}/{total} checks passed")

    if passed == total:
        print_status("All checks passed! System is ready for training.", "SUCCESS")
        return True
    else:
        print_status(f"{total - passed} checks failed. Please fix the issues before training.", "ERROR")
        return False


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
