"""Exceptions raised by the timing setup tool."""


class TimingSetupError(Exception):
    pass


class InvalidInputError(TimingSetupError, ValueError):
    """A position quantity could not be encoded.

    quantity is one of 'latitude', 'longitude', 'height';
    reason is one of 'non-numeric', 'non-finite', 'out-of-range'.
    """

    def __init__(self, quantity, reason, detail=""):
        self.quantity = quantity
        self.reason = reason
        self.detail = detail
        msg = f"invalid {quantity}: {reason}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class ConfigError(TimingSetupError, ValueError):
    pass


class ReceiverUnreachable(TimingSetupError):
    pass


class SetupError(TimingSetupError):
    """A required configuration step failed and the run was aborted."""

    def __init__(self, label, output="", summary=None):
        self.label = label
        self.output = output
        self.summary = summary
        super().__init__(f"{label} failed: {output.strip() or 'no output'}")
