"""Exceptions raised while loading and querying user-agent rule sets."""


class RulesError(ValueError):
    """Raised when a rule set is malformed and cannot be loaded."""


class ReferenceNotFoundError(LookupError):
    """Raised when a reference table is queried with an unregistered key."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"Unknown {kind} '{key}'")
