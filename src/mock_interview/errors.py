"""Exception types shared by the evaluation pipeline and the HTTP layer."""

from __future__ import annotations


class MockInterviewError(Exception):
    """Base class for all service errors."""

    status_code: int = 500


class ConfigError(MockInterviewError, ValueError):
    """Configuration value out of range or unknown."""


class InvalidRequest(MockInterviewError):
    status_code = 400


class InterviewNotFound(MockInterviewError):
    status_code = 404

    def __init__(self, interview_id: str):
        super().__init__(f"Interview not found: {interview_id}")
        self.interview_id = interview_id


class EvaluationInProgress(MockInterviewError):
    """Another request holds the evaluation lock and produced no result in time."""

    status_code = 409

    def __init__(self, interview_id: str):
        super().__init__(
            f"Interview {interview_id} is still being evaluated, try again later"
        )
        self.interview_id = interview_id


class GenerationFailure(MockInterviewError):
    pass


class MalformedEvaluation(MockInterviewError):
    pass


class PersistenceFailure(MockInterviewError):
    pass


class TranscriptionFailure(MockInterviewError):
    status_code = 502


class SynthesisFailure(MockInterviewError):
    status_code = 502
