class CompressionError(Exception):
    pass


class InvalidArgument(CompressionError, ValueError):
    pass


class DecodeFailure(CompressionError):
    pass


class ResizeFailure(CompressionError):
    pass
