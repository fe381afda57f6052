"""Custom Exceptions for the TibetScribe application."""

class TibetScribeError(Exception):
    """Base class for exceptions in this module."""
    pass

class ConfigurationError(TibetScribeError):
    """Exception raised for errors in configuration loading."""
    pass

class FileSystemError(TibetScribeError):
    """Exception raised for file system related errors (permissions, not found etc)."""
    pass

class ImageLoadError(TibetScribeError):
    """Exception raised when an image file cannot be read or is not an image."""
    pass

# --- Input validation (raised immediately, no pipeline stage is entered) ---

class NoImagesError(TibetScribeError):
    """Exception raised when a run is started from an empty image list."""
    pass

class EmptyInputError(TibetScribeError):
    """Exception raised when manual or edited text is blank."""
    pass

# --- Analysis service failures ---

class TranscriptionError(TibetScribeError):
    """Exception raised for errors during transcription of a single image.

    Recoverable: the run continues as long as one image succeeds.
    """
    pass

class FormattingError(TibetScribeError):
    """Exception raised when merging page transcripts fails. Fatal to the run."""
    pass

class TranslationError(TibetScribeError):
    """Exception raised for errors during translation. Fatal to the run."""
    pass

class ExplanationError(TibetScribeError):
    """Exception raised when explaining a selected phrase fails."""
    pass

class AlternatesError(TibetScribeError):
    """Exception raised when fetching alternate translations fails."""
    pass
