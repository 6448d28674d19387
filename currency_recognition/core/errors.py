"""Error types shared by the detection pipeline and its collaborators."""


class InferenceError(RuntimeError):
    """A single inference call failed; the round is recorded as absent."""


class SourceUnavailableError(RuntimeError):
    """The camera or image file could not provide a frame."""


class EmptyCandidateSetError(ValueError):
    """Best-candidate selection was attempted on an empty detection list."""
