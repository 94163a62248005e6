# induction_engine/errors.py
"""Error taxonomy for the induction decision engine."""


class InductionEngineError(Exception):
    """Base class for engine errors."""


class InputError(InductionEngineError):
    """Raised when fact data for a single trainset is malformed or missing.

    Never aborts a batch: the affected trainset is routed to IBL with a
    synthetic blocker and the rest of the fleet is processed normally.
    """

    def __init__(self, trainset_id: str, blocker: str, detail: str = ""):
        self.trainset_id = trainset_id
        self.blocker = blocker
        self.detail = detail
        super().__init__(f"{trainset_id}: {blocker}" + (f" ({detail})" if detail else ""))


class ConfigError(InductionEngineError):
    """Raised when a run parameter or weights document is invalid."""


class PersistenceError(InductionEngineError):
    """Raised when the run recorder or scenario store cannot write."""


class FactSourceUnavailableError(InductionEngineError):
    """Raised when the fact-loading collaborator is unreachable or times out."""


class RunNotFoundError(InductionEngineError):
    """Raised when a run id has no stored record."""
