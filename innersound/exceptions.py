"""Error taxonomy for capture, decoding and analysis."""

from .models.session import FailureReason


class InnerSoundError(Exception):
    """Base class for all InnerSound errors."""


class AcquisitionError(InnerSoundError):
    """Capture device could not be acquired."""

    reason = FailureReason.ACQUISITION_FAILED

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class PermissionDeniedError(AcquisitionError):
    reason = FailureReason.PERMISSION_DENIED

    def __init__(self, message: str = "Microphone access denied"):
        super().__init__(message)


class DeviceNotFoundError(AcquisitionError):
    reason = FailureReason.DEVICE_NOT_FOUND

    def __init__(self, message: str = "No microphone detected"):
        super().__init__(message)


class AcquisitionFailedError(AcquisitionError):
    reason = FailureReason.ACQUISITION_FAILED


class DecodeError(InnerSoundError):
    """Bytes could not be decoded into PCM samples."""


class AnalysisError(InnerSoundError):
    """Feature extraction, pitch estimation or decoding failed.

    The original exception is kept as ``__cause__``.
    """
