"""
classeval: Reproducible classification evaluation pipeline.

This package loads small tabular datasets, performs stratified train/test
splits, normalizes features without leakage, fits pluggable scikit-learn
classifiers (LDA, k-NN, logistic regression) and reports accuracy,
confusion matrices and ROC curves.
"""

from importlib.metadata import version

__version__ = version("classeval")

__all__ = ["__version__"]
