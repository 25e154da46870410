from __future__ import annotations


class TuneGrabError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class ToolInvocationError(TuneGrabError):
    pass


class EmptyOutputError(TuneGrabError):
    pass


class MetadataParseError(TuneGrabError):
    pass


class VolumeDetectionError(TuneGrabError):
    pass


class AudioDecodeError(TuneGrabError):
    pass


class TagWriteError(TuneGrabError):
    pass


class PersistError(TuneGrabError):
    pass


class CoverDecodeError(TuneGrabError):
    pass
