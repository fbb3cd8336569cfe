"""Mirror for ANOVA models (``aov``) in R."""
from __future__ import annotations

import logging
from typing import Optional

from rlink.core.channel import EngineSession, get_default_session
from rlink.core.datatype import RDatatype, class_names, pull_variable
from rlink.core.errors import TypeMismatchError
from rlink.core.registry import register_datatype
from rlink.types.language import Formula, Options
from rlink.types.list import List

logger = logging.getLogger(__name__)


@register_datatype
class ANOVAModel(RDatatype):
    """
    Fitted ``aov`` object. Its class vector also contains ``"lm"``, so it
    outranks the generic List wrapper by priority.
    """

    pull_priority = 1

    @classmethod
    def can_pull(cls, r_type, r_class):
        return r_type == "list" and "aov" in class_names(r_class)

    @classmethod
    def pull_variable(cls, session, variable, r_type, r_class):
        return cls(pull_variable(session, variable, forced=List), session)

    @classmethod
    def generate(cls, formula: Formula, data, session: Optional[EngineSession] = None, **options) -> ANOVAModel:
        """Fit ``aov(formula, data=data, ...)``; options are rendered as R."""
        session = session or get_default_session()
        mapped = Options.from_dict(options).to_r()
        mapped = f", {mapped}" if mapped else ""

        with session.exclusive():
            session.assign("aov.data", data)
            session.eval(f"aov.model.result <- aov({formula.to_r()}, data=aov.data{mapped})")
            result = session["aov.model.result"]
            if not isinstance(result, cls):
                raise TypeMismatchError(
                    "RLNK-1002",
                    f"The engine returned {type(result).__name__} while building an aov model",
                    expected=cls.__name__,
                    actual=type(result).__name__,
                )
            result.r_mirror_to(session, "aov.model.result")
        return result

    def __init__(self, model, session: EngineSession):
        self._model = model
        self._session = session
        self._summary = None

    @property
    def model(self):
        return self._model

    def load_in_r_as(self, session, variable_name):
        self._model.load_in_r_as(session, variable_name)

    def r_hash(self) -> str:
        return self._model.r_hash()

    @property
    def summary(self):
        """Result of ``summary()`` on the model, pulled once."""
        if self._summary is None:
            with self._session.exclusive():
                self._session.eval(f"aov.smr <- summary({self.r_mirror(self._session)})")
                self._summary = self._session["aov.smr"]
        return self._summary

    def __repr__(self):
        return f"<ANOVAModel {self._model!r}>"
