"""Microphone acquisition through PyAudio."""

import errno
import logging
from typing import Optional

import pyaudio

from ..exceptions import (
    AcquisitionError,
    AcquisitionFailedError,
    DeviceNotFoundError,
    PermissionDeniedError,
)
from ..models.session import CaptureConfig

logger = logging.getLogger(__name__)

# PortAudio error codes that mean the input device is missing or gone
PA_INVALID_DEVICE = -9996
PA_DEVICE_UNAVAILABLE = -9985
DEVICE_MISSING_CODES = (PA_INVALID_DEVICE, PA_DEVICE_UNAVAILABLE)


def map_acquisition_error(error: OSError) -> AcquisitionError:
    """Classify an OSError raised while opening the microphone."""
    code = error.errno
    if isinstance(error, PermissionError) or code in (errno.EACCES, errno.EPERM):
        return PermissionDeniedError()
    message = str(error)
    if "permission" in message.lower() or "not allowed" in message.lower():
        return PermissionDeniedError()
    if code in DEVICE_MISSING_CODES:
        return DeviceNotFoundError()
    return AcquisitionFailedError(message)


class CaptureHandle:
    """An open input stream. ``close()`` may be called any number of times."""

    def __init__(self,
                 pyaudio_instance: pyaudio.PyAudio,
                 stream: pyaudio.Stream,
                 sample_rate: int,
                 channels: int,
                 config: CaptureConfig):
        self._pyaudio = pyaudio_instance
        self._stream = stream
        self.sample_rate = sample_rate
        self.channels = channels
        self.config = config
        self.closed = False

    def read(self, frames: int) -> bytes:
        """Read ``frames`` frames of native-endian int16 PCM."""
        return self._stream.read(frames, exception_on_overflow=False)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._stream.stop_stream()
            self._stream.close()
        finally:
            self._pyaudio.terminate()
        logger.info("Audio stream closed")


class PyAudioDevice:
    """Device capture collaborator backed by PortAudio."""

    def __init__(self,
                 sample_rate: int = 44100,
                 channels: int = 1,
                 block_size: int = 1024,
                 device_index: Optional[int] = None):
        """Initialize device settings.

        Args:
            sample_rate: Capture sample rate in Hz
            channels: Number of input channels
            block_size: Frames per PortAudio buffer
            device_index: PortAudio input device, the default device when None
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.block_size = block_size
        self.device_index = device_index

    @classmethod
    def from_config(cls, config) -> "PyAudioDevice":
        return cls(
            sample_rate=config.get('audio.sample_rate', 44100),
            channels=config.get('audio.channels', 1),
            block_size=config.get('audio.block_size', 1024),
            device_index=config.get('audio.device_index'),
        )

    def acquire(self, config: CaptureConfig) -> CaptureHandle:
        """Open the microphone.

        PortAudio has no echo cancellation, noise suppression or gain control;
        the CaptureConfig is kept on the handle for the host to honour.

        Raises:
            PermissionDeniedError: access to the microphone was refused
            DeviceNotFoundError: there is no usable input device
            AcquisitionFailedError: any other failure
        """
        try:
            pyaudio_instance = pyaudio.PyAudio()
        except OSError as e:
            raise map_acquisition_error(e) from e

        try:
            if self.device_index is None:
                try:
                    info = pyaudio_instance.get_default_input_device_info()
                except OSError as e:
                    raise DeviceNotFoundError() from e
                logger.debug(f"Default input device: {info.get('name')}")

            stream = pyaudio_instance.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.device_index,
                frames_per_buffer=self.block_size,
            )
        except AcquisitionError:
            pyaudio_instance.terminate()
            raise
        except OSError as e:
            pyaudio_instance.terminate()
            raise map_acquisition_error(e) from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, {self.channels} channel(s), "
                    f"{self.block_size} frames/buffer, {config}")
        return CaptureHandle(pyaudio_instance, stream, self.sample_rate, self.channels, config)

    def release(self, handle: CaptureHandle) -> None:
        handle.close()
