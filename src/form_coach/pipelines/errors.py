"""
Exception hierarchy for the form analysis pipeline.

Precondition errors are raised before any frame is read. Per-frame
estimation failures never surface here; they are downgraded to
"no pose this frame" by the sampler.
"""


class FormAnalysisError(Exception):
    """Base class for all analysis failures surfaced to the caller."""


class PreconditionError(FormAnalysisError):
    """An input precondition was violated; nothing was processed."""


class ConsentRequiredError(PreconditionError):
    def __init__(self, message: str = "Video analysis requires explicit consent."):
        super().__init__(message)


class ExerciseNotIdentifiedError(PreconditionError):
    def __init__(self, message: str = "An exercise must be selected before analysis."):
        super().__init__(message)


class PoseBackendInitError(FormAnalysisError):
    def __init__(
        self,
        message: str = "Failed to initialize pose detection. Please refresh and try again.",
    ):
        super().__init__(message)


class PoseSourceNotInitializedError(FormAnalysisError):
    def __init__(self, message: str = "Pose detector not initialized"):
        super().__init__(message)


class VideoSourceError(FormAnalysisError):
    """The video could not be opened or read."""


class AnalysisCancelledError(FormAnalysisError):
    """Raised when the caller's cancel check fires between frames."""


class FrameSequenceError(FormAnalysisError, ValueError):
    """Pose frames are not numbered 0, 1, 2, ... in timestamp order."""
