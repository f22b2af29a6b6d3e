class EchobeamWarning(UserWarning):
    pass


class InsufficientPrecisionWarning(EchobeamWarning):
    """
    Issued when the data type cannot carry the requested computation accurately,
    e.g. half-precision data resampled in the frequency domain.
    """


class NumericalDegradationWarning(EchobeamWarning):
    """
    Issued when an inversion is close to singular and its result was guarded.
    """


class ResamplingArtefactWarning(EchobeamWarning):
    """
    Issued when a complex image is resampled onto a grid it was not computed on.
    """


class InvalidDimension(ValueError):
    """
    Raised when an array has an invalid dimension.
    """

    @classmethod
    def message_auto(cls, array_name, expected_dimension, current_dimension=None):
        current = (
            " (current: {})".format(current_dimension)
            if current_dimension is not None
            else ""
        )
        message = "Dimension of array '{}' must be {}{}.".format(
            array_name, expected_dimension, current
        )
        return cls(message)


class InvalidShape(ValueError):
    """
    Raised when an array has an invalid shape.
    """

    @classmethod
    def message_auto(cls, array_name, expected_shape, current_shape=None):
        current = (
            " (current: {})".format(current_shape) if current_shape is not None else ""
        )
        message = "Array '{}' must have shape {}{}.".format(
            array_name, expected_shape, current
        )
        return cls(message)

    @classmethod
    def broadcast_mismatch(cls, array_name, other_name, axis, size, other_size):
        message = (
            "Array '{}' cannot be broadcast against '{}' along axis {}: "
            "size {} vs {}.".format(array_name, other_name, axis, size, other_size)
        )
        return cls(message)


class NotAnArray(TypeError):
    def __init__(self, array_name, message=None):
        if message is None:
            message = " '{}' must be an array. Try to convert to numpy.array first.".format(
                array_name
            )
        super().__init__(message)


class PreconditionError(ValueError):
    """
    Raised when the inputs of a computation are rejected before any expensive work.
    """


class UnsupportedConfiguration(PreconditionError):
    """
    Raised when a combination of inputs is valid on its own but not supported by
    an algorithm.
    """
