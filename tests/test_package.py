"""Basic package tests to verify installation."""


def test_package_imports() -> None:
    """Verify the main package can be imported."""
    import classeval

    assert classeval.__version__


def test_config_module_imports() -> None:
    """Verify config module structure is correct."""
    from classeval.config import (
        DatasetConfig,
        EvaluationConfig,
        ModelSpec,
        NormalizationConfig,
        PipelineConfig,
        SplitConfig,
        TrackingConfig,
        load_config,
    )

    assert PipelineConfig is not None
    assert DatasetConfig is not None
    assert SplitConfig is not None
    assert NormalizationConfig is not None
    assert ModelSpec is not None
    assert EvaluationConfig is not None
    assert TrackingConfig is not None
    assert load_config is not None


def test_error_taxonomy() -> None:
    """All pipeline errors share a base class."""
    from classeval.errors import (
        ClassevalError,
        ConvergenceError,
        InsufficientDataError,
        MalformedInputError,
        SchemaMismatchError,
        UnsupportedMultiClassError,
        ZeroVarianceError,
    )

    for error in (
        ConvergenceError,
        InsufficientDataError,
        MalformedInputError,
        SchemaMismatchError,
        UnsupportedMultiClassError,
        ZeroVarianceError,
    ):
        assert issubclass(error, ClassevalError)


def test_error_reports_stage() -> None:
    """Stage name is part of the message once set."""
    from classeval.errors import InsufficientDataError

    error = InsufficientDataError("too few rows", stage="split")
    assert error.kind == "InsufficientDataError"
    assert str(error) == "[split] too few rows"
