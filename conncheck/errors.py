"""
Exceptions raised by conncheck
"""


class ConnCheckError(Exception):
    pass


class ConfigurationError(ConnCheckError, ValueError):
    """A check was declared in a way that can never be run (bad port, bad loss bounds...)."""
    pass


class ProbeContractError(ConnCheckError, RuntimeError):
    """The probe tool claimed success but its result could not be decoded."""

    def __init__(self, msg, output=None):
        super().__init__(msg)
        self.output = output


class ConnectivityError(ConnCheckError, AssertionError):
    """Raised when a check runs out of attempts and nobody installed an on_fail callback."""

    def __init__(self, msg, location=None):
        super().__init__(msg)
        self.message = msg
        self.location = location

    def __str__(self):
        if self.location:
            return "{}\n\n(check called from {})".format(self.message, self.location)
        return self.message
