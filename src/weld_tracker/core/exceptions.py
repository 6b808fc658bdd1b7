"""Custom exceptions for Weld Tracker."""


class WeldTrackerError(Exception):
    """Base exception for all Weld Tracker errors."""

    pass


class ConfigurationError(WeldTrackerError):
    """Invalid static configuration, such as technique profile weights."""

    def __init__(self, message: str = "Invalid configuration") -> None:
        self.message = message
        super().__init__(self.message)


class UnknownTechniqueError(ConfigurationError):
    """Technique identifier has no registered profile."""

    def __init__(self, technique: object) -> None:
        self.technique = technique
        super().__init__(f"Unknown welding technique: {technique!r}")


class SessionStateError(WeldTrackerError):
    """Operation is not valid in the current session phase."""

    def __init__(self, message: str = "Invalid session state") -> None:
        self.message = message
        super().__init__(self.message)


class ValidationCodeError(WeldTrackerError):
    """Certificate validation code is malformed."""

    def __init__(self, message: str = "Invalid validation code") -> None:
        self.message = message
        super().__init__(self.message)


class RecordFormatError(WeldTrackerError):
    """Serialized session data could not be decoded."""

    def __init__(self, message: str = "Invalid session record") -> None:
        self.message = message
        super().__init__(self.message)
