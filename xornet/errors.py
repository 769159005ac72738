class NetworkError(Exception):
    """Base class for every error raised by the network engine."""


class InvalidArchitectureError(NetworkError, ValueError):
    """Raised when a layer-size list cannot describe a network."""


class ShapeMismatchError(NetworkError, ValueError):
    """Raised when an input or target vector does not match its layer size."""
    def __init__(self, what, expected, got):
        super().__init__(f"{what} has length {got}, expected {expected}")
        self.expected = expected
        self.got = got


class TopologyError(NetworkError):
    """Raised when a network no longer satisfies its layered topology."""
