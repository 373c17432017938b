class PipelineError(Exception):
    """Base class for errors raised inside the generation pipeline."""
    pass

class FatalInputError(PipelineError):
    """Raised when the request carries no usable prompt."""
    pass

class StageFatalError(PipelineError):
    """Raised when Prepare or Generate produced nothing after every fallback."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} stage failed: {message}")
        self.stage = stage
        self.message = message
