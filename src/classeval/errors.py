"""
Error taxonomy for the evaluation pipeline.

Every error carries the name of the pipeline stage it was raised in.
Stages that raise directly may leave it unset; the pipeline stamps it
before the error reaches the caller.
"""


class ClassevalError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    @property
    def kind(self) -> str:
        """Error kind as reported to users."""
        return type(self).__name__

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class MalformedInputError(ClassevalError):
    """Delimited input has inconsistent row widths or a missing header/label."""


class InsufficientDataError(ClassevalError):
    """Too few rows (per class) for the requested operation."""


class ZeroVarianceError(ClassevalError):
    """A feature has zero standard deviation in the training data."""

    def __init__(self, feature: str, *, stage: str | None = None) -> None:
        super().__init__(
            f"Feature '{feature}' has zero variance in training data",
            stage=stage,
        )
        self.feature = feature


class ConvergenceError(ClassevalError):
    """The underlying fitting algorithm did not converge."""


class SchemaMismatchError(ClassevalError):
    """A table does not match the columns or types a stage expects."""


class UnsupportedMultiClassError(ClassevalError):
    """An operation defined for two classes was given more."""
