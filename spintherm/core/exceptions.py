"""Exceptions raised by spintherm."""


class SingularMatrixError(ArithmeticError):
    """Raised when inverting (or taking the adjugate of) a matrix with zero determinant."""


class InvalidConfigurationError(ValueError):
    """Raised when a system or bath is set up in a way the equations cannot handle."""


class UnsupportedMethodError(ValueError):
    """Raised for an unknown integrator, thermostat, thermal stepper or pulse shape."""


class EncodingError(ValueError):
    """Raised when an entity cannot be rendered to its JSON representation."""
