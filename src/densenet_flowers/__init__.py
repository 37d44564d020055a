"""
DenseNet Flower Classification Package

This package defines a DenseNet image classifier and the training, validation
and test workflow for the 17-category flower dataset.
"""

__version__ = "0.1.0"
__author__ = "MLOps Engineer"
