"""
Exceptions raised by the suggestion pipeline
"""

from devcollab.core.job_queue import NonRetryableJobError


class SuggestionGenerationError(Exception):
    """Generation could not produce a payload"""


class ProfileNotFoundError(SuggestionGenerationError, NonRetryableJobError):
    """The user has no profile to build prompts from; retrying will not help"""

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class InferenceError(SuggestionGenerationError):
    """The inference endpoint failed or was unreachable"""

    def __init__(self, message: str, model: str = None, status_code: int = None):
        super().__init__(message)
        self.model = model
        self.status_code = status_code


class InferenceRateLimitedError(InferenceError):
    """The provider answered 429 for this model"""


class MalformedResponseError(InferenceError):
    """The completion was not the JSON shape we asked for"""


class CacheUnavailableError(Exception):
    """The suggestion cache storage could not be read or written"""
