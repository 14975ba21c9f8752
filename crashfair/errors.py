class FairnessError(Exception):
    """Base class for engine errors."""


class ValidationError(FairnessError):
    """A player seed was rejected; the round is unaffected."""


class StateError(FairnessError):
    """An operation was invoked out of lifecycle order."""


class IntegrityError(FairnessError):
    """Fatal to the round: suspected tampering or an implementation bug."""


class ParseError(IntegrityError):
    pass
