"""Error taxonomy shared by every pipeline stage."""


class VidaskError(Exception):
    """Base class for all errors that terminate a run."""

    stage = "run"

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ConfigurationError(VidaskError):
    """Missing credential, bad config file, or missing required argument."""

    stage = "config"


class InputValidationError(VidaskError, ValueError):
    """Malformed source reference or impossible probe values."""

    stage = "input"


class CollaboratorError(VidaskError):
    """An external service (download, ffmpeg, OpenAI) failed.

    ``detail`` carries the collaborator's structured error payload when it
    returned one (e.g. the JSON body of an API error).
    """

    def __init__(self, stage: str, message: str, detail: object = None):
        super().__init__(message, stage=stage)
        self.detail = detail


class CacheCorruptionError(VidaskError):
    """A persisted cache document exists but is not valid structured data."""

    stage = "cache"

    def __init__(self, path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
