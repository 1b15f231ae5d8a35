class DirectionDetectionError(Exception):
    """Base class for errors raised by the direction detection package"""


class ConfigurationError(DirectionDetectionError, ValueError):
    """The transform context cannot be created for the requested image size"""


class InvalidImageError(DirectionDetectionError, ValueError):
    """A frame does not match the engine's size or pixel layout"""


class EngineClosedError(DirectionDetectionError, RuntimeError):
    """The engine's transform context has already been released"""
