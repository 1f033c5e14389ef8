"""
Retry policies applied by the HTTP transport wrapper
"""

from typing import Optional

import httpx


class RetryPolicy:
    """
    Decides whether a failed attempt is retried and how long to wait first.

    ``attempt`` is 1 for the first retry. A response or a transport error is
    passed, never both.
    """

    def __init__(self, retry_count: int = 3):
        self.retry_count = retry_count

    def should_retry(
        self,
        attempt: int,
        response: Optional[httpx.Response] = None,
        error: Optional[Exception] = None,
    ) -> bool:
        if attempt > self.retry_count:
            return False
        if error is not None:
            return self.is_retryable_error(error)
        if response is not None:
            return self.is_retryable_status(response.status_code)
        return False

    @staticmethod
    def is_retryable_status(status_code: int) -> bool:
        if status_code < 400:
            return False
        if status_code == 408:
            return True
        if status_code < 500:
            return False
        return status_code not in (501, 505)

    @staticmethod
    def is_retryable_error(error: Exception) -> bool:
        return isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError))

    def interval(self, attempt: int) -> float:
        raise NotImplementedError


class NoRetryPolicy(RetryPolicy):
    def __init__(self):
        super().__init__(retry_count=0)

    def interval(self, attempt: int) -> float:
        return 0


class LinearRetryPolicy(RetryPolicy):
    """Waits the same interval before every retry."""

    def __init__(self, retry_count: int = 3, retry_interval: float = 30):
        super().__init__(retry_count)
        self.retry_interval = retry_interval

    def interval(self, attempt: int) -> float:
        return self.retry_interval


class ExponentialRetryPolicy(RetryPolicy):
    """
    Doubles the wait between retries, starting at ``min_retry_interval`` and
    reaching ``max_retry_interval`` on the last retry.
    """

    def __init__(
        self,
        retry_count: int = 3,
        min_retry_interval: float = 10,
        max_retry_interval: float = 90,
    ):
        super().__init__(retry_count)
        self.min_retry_interval = min_retry_interval
        self.max_retry_interval = max_retry_interval

    def interval(self, attempt: int) -> float:
        if self.retry_count <= 1:
            return self.min_retry_interval
        step = (self.max_retry_interval - self.min_retry_interval) / (2 ** (self.retry_count - 1))
        return min(
            self.min_retry_interval + step * (2 ** (attempt - 1)),
            self.max_retry_interval,
        )
