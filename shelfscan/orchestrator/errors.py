ERR_NOT_READY = "ENGINE_NOT_READY"
ERR_RECOGNITION = "RECOGNITION_ERROR"
ERR_SOURCE = "SOURCE_UNAVAILABLE"
ERR_BAD_IMAGE = "BAD_IMAGE"
ERR_UNKNOWN = "UNKNOWN"


class ScanError(Exception):
    code = ERR_UNKNOWN


class EngineNotReady(ScanError):
    """Detector back end has not finished initializing."""
    code = ERR_NOT_READY


class RecognitionError(ScanError):
    """Text recognition call failed."""
    code = ERR_RECOGNITION


class SourceUnavailable(ScanError):
    """No frame available from the active visual source."""
    code = ERR_SOURCE
