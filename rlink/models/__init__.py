"""Statistical models fitted in the engine."""
from .regression import (
    LinearMixedEffectsModel, LinearRegressionModel, ModelVariable, RegressionModel,
)
from .anova import ANOVAModel

__all__ = [
    "RegressionModel", "LinearRegressionModel", "LinearMixedEffectsModel",
    "ModelVariable", "ANOVAModel",
]
