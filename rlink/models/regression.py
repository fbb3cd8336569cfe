"""
Regression Models

Wrappers for regression models fitted in the engine. The fitted object stays
in R (mirrored under the wrapper's identity) and derived values are pulled on
first access and cached for the lifetime of the wrapper.

Usage:
    from rlink.models.regression import LinearRegressionModel

    model = LinearRegressionModel.generate("y", ["x1", "x2"], data, session=session)
    model.r_2_adjusted
    [v.name for v in model.significant_variables()]

Constraints:
- ``generate`` and every accessor open their own exclusive block; do not
  call them from inside one.
"""
from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from typing import Any, Dict, List as PyList, Optional, Sequence, Tuple, Type

from rlink.core.channel import EngineSession, get_default_session
from rlink.core.datatype import RDatatype, class_names, pull_variable
from rlink.core.errors import TypeMismatchError
from rlink.core.registry import register_datatype
from rlink.types.language import Formula, Options
from rlink.types.list import List
from rlink.types.s4class import S4Class

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class ModelVariable:
    """A model term with its coefficient and p-value."""

    name: str
    coefficient: float
    pvalue: float

    @property
    def is_intercept(self) -> bool:
        return self.name == "(Intercept)"

    def is_significant(self, alpha: float = 0.05) -> bool:
        return self.pvalue <= alpha


class RegressionModel(RDatatype):
    """
    Generic regression model. Subclasses declare ``r_model_name`` (the R
    fitting function) and how the fitted object is pulled.
    """

    r_model_name: str = ""

    @classmethod
    def can_pull(cls, r_type, r_class):
        return False

    @staticmethod
    def generate(
        object_type: Type[RegressionModel],
        model_type: str,
        dependent_variable: str,
        independent_variables: Sequence[str],
        data,
        session: Optional[EngineSession] = None,
        **options,
    ) -> RegressionModel:
        """
        Fit ``model_type(dependent ~ independents, data=data, ...)`` in the
        engine and pull it back as ``object_type``.

        Args:
            object_type: wrapper class expected back from the engine
            model_type: R fitting function (e.g. ``"lm"``)
            dependent_variable: left part of the formula
            independent_variables: terms joined with ``+`` on the right part
            data: frame assigned to ``<model_type>.data``
            session: engine session (defaults to the shared one)
            options: extra arguments of the fitting function, rendered as R
        """
        session = session or get_default_session()
        formula = Formula(dependent_variable, " + ".join(independent_variables))
        mapped = Options.from_dict(options).to_r()
        mapped = f", {mapped}" if mapped else ""

        result_name = f"{model_type}.model.result"
        with session.exclusive():
            session.assign(f"{model_type}.data", data)
            session.eval(f"{result_name} <- {model_type}({formula.to_r()}, data={model_type}.data{mapped})")
            result = session[result_name]
            if not isinstance(result, object_type):
                raise TypeMismatchError(
                    "RLNK-1002",
                    f"The engine returned {type(result).__name__} while building a {model_type} model",
                    expected=object_type.__name__,
                    actual=type(result).__name__,
                )
            result.r_mirror_to(session, result_name)

        result.dependent_variable = dependent_variable
        result.data = data
        result.options = options
        return result

    def __init__(self, model, session: EngineSession):
        self._model = model
        self._session = session
        self.dependent_variable: Optional[str] = None
        self.data = None
        self.options: Dict[str, Any] = {}
        self.extra_terms: PyList[str] = []

        self._residuals = _UNSET
        self._fitted = _UNSET
        self._summary = _UNSET
        self._variables: Optional[PyList[ModelVariable]] = None

    @property
    def model(self):
        """The inner List (or S4 object) pulled from the engine."""
        return self._model

    def load_in_r_as(self, session, variable_name):
        self._model.load_in_r_as(session, variable_name)

    def r_hash(self) -> str:
        return self._model.r_hash()

    def field(self, name: str) -> Any:
        """Element ``name`` of the inner model (e.g. ``"df.residual"``)."""
        return self._model[name]

    # =========================================================================
    # Cached engine results
    # =========================================================================

    def _pull_once(self, slot: str, expression: str) -> Any:
        if getattr(self, slot) is _UNSET:
            with self._session.exclusive():
                setattr(self, slot, self._session[expression.format(model=self.r_mirror(self._session))])
        return getattr(self, slot)

    @property
    def residuals(self) -> PyList[float]:
        return self._pull_once("_residuals", "residuals({model})")

    @property
    def fitted(self) -> PyList[float]:
        return self._pull_once("_fitted", "fitted({model})")

    @property
    def summary(self):
        """Result of ``summary()`` in R."""
        return self._pull_once("_summary", "summary({model})")

    @property
    def actuals(self) -> PyList[float]:
        """Observed values, as fitted plus residual."""
        return [fitted + residual for fitted, residual in zip(self.fitted, self.residuals)]

    @property
    def r_2(self) -> float:
        return self.summary["r.squared"]

    @property
    def r_2_adjusted(self) -> float:
        return self.summary["adj.r.squared"]

    @property
    def mse(self) -> float:
        return statistics.variance(self.residuals)

    @property
    def coefficients(self):
        """Coefficient matrix from the summary (estimates, errors, p-values)."""
        return self.summary["coefficients"]

    # =========================================================================
    # Variables
    # =========================================================================

    @property
    def variables(self) -> PyList[ModelVariable]:
        """Name, estimate and p-value of every term."""
        if self._variables is None:
            coefficients = self.coefficients
            self._variables = [
                ModelVariable(name, coefficients[name, "Estimate"], coefficients[name, "Pr(>|t|)"])
                for name in coefficients.rownames
            ]
        return self._variables

    def significant_variables(self, alpha: float = 0.05) -> PyList[ModelVariable]:
        return [variable for variable in self.variables if variable.is_significant(alpha)]

    def backward_selection(
        self, excluded: Sequence[ModelVariable] = ()
    ) -> Tuple[RegressionModel, PyList[ModelVariable]]:
        """
        Drop non-significant terms one at a time, least significant first,
        while the adjusted R squared does not decrease.

        Returns the selected model and the dropped variables in order.
        """
        excluded = list(excluded)
        terms = [variable for variable in self.variables if not variable.is_intercept]
        candidates = sorted(
            (variable for variable in terms if not variable.is_significant()),
            key=lambda variable: variable.pvalue,
            reverse=True,
        )

        for candidate in candidates:
            independents = [variable.name for variable in terms if variable is not candidate]
            new_model = RegressionModel.generate(
                type(self),
                self.r_model_name,
                self.dependent_variable,
                independents + self.extra_terms,
                self.data,
                session=self._session,
                **self.options,
            )
            new_model.extra_terms = list(self.extra_terms)

            if new_model.r_2_adjusted >= self.r_2_adjusted:
                logger.debug(f"Excluded {candidate.name}")
                return new_model.backward_selection(excluded + [candidate])

        return self, excluded

    def __repr__(self):
        return f"<{type(self).__name__} {self.dependent_variable} on {self.r_model_name}>"


@register_datatype
class LinearRegressionModel(RegressionModel):
    """Linear regression fitted with ``lm``."""

    pull_priority = 1
    r_model_name = "lm"

    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "list" and class_names(r_class) == [cls.r_model_name]

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        return cls(pull_variable(session, variable, forced=List), session)

    @classmethod
    def generate(cls, dependent_variable, independent_variables, data, session=None, **options):
        return RegressionModel.generate(
            cls, cls.r_model_name, dependent_variable, independent_variables, data, session=session, **options
        )


@register_datatype
class LinearMixedEffectsModel(RegressionModel):
    """Linear mixed effects model fitted with ``lmerTest::lmer``."""

    pull_priority = 1
    r_model_name = "lmer"
    r_class_name = "lmerModLmerTest"

    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "S4" and class_names(r_class) == [cls.r_class_name]

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        return cls(pull_variable(session, variable, forced=S4Class), session)

    @classmethod
    def generate(cls, dependent_variable, fixed_effects, random_effects, data, session=None, **options):
        """Fit ``y ~ fixed + (1|random)``; installs lmerTest and rsq when missing."""
        session = session or get_default_session()
        session.prerequisite("lmerTest")
        session.prerequisite("rsq")

        random_terms = [f"(1|{effect})" for effect in random_effects]
        result = RegressionModel.generate(
            cls,
            cls.r_model_name,
            dependent_variable,
            list(fixed_effects) + random_terms,
            data,
            session=session,
            **options,
        )
        result.extra_terms = random_terms
        return result

    @property
    def summary(self):
        if self._summary is _UNSET:
            with self._session.exclusive():
                self._session.eval(f"tmp.summary <- summary({self.r_mirror(self._session)})")
                self._session.eval('mode(tmp.summary$objClass) <- "list"')
                self._session.eval("tmp.summary$logLik <- attributes(tmp.summary$logLik)")
                self._summary = self._session["tmp.summary"]
        return self._summary

    def _rsq(self, adjusted: bool) -> float:
        with self._session.exclusive():
            self._session.eval(
                f"tmp.rsq <- rsq({self.r_mirror(self._session)}, adj={'TRUE' if adjusted else 'FALSE'})"
            )
            return self._session["tmp.rsq"]

    @property
    def r_2(self) -> float:
        return self._rsq(False)

    @property
    def r_2_adjusted(self) -> float:
        return self._rsq(True)
