"""Package API and external tool exceptions."""

from typing import List, Optional


class PackageAPIError(Exception):
    """Base exception for package API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        """Initialize package API error.

        Args:
            message: Error message
            status_code: HTTP status code
            response_data: Response data from API
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class AuthenticationError(PackageAPIError):
    """Credential rejected by the API or registry (401/403)."""

    pass


class NotFoundError(PackageAPIError):
    """Package, version or artifact does not exist at the source."""

    pass


class TransientError(PackageAPIError):
    """Network failure, timeout or server-side error worth retrying."""

    pass


class RateLimitError(TransientError):
    """Rate limit exceeded error."""

    def __init__(self, message: str, retry_after: int = 60, **kwargs):
        """Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds to wait before retry
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ToolError(PackageAPIError):
    """External command exited with a non-zero status."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        exit_code: Optional[int] = None,
        stdout: str = '',
        stderr: str = '',
    ):
        super().__init__(message)
        self.command = command or []
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    @property
    def output(self) -> str:
        """Combined output used for classification."""
        return f'{self}\n{self.stderr}\n{self.stdout}'.lower()

    @property
    def is_unauthorized(self) -> bool:
        return 'unauthorized' in self.output

    @property
    def is_not_found(self) -> bool:
        return 'not found' in self.output


class PrerequisiteError(Exception):
    """A required tool or credential could not be prepared before migration."""

    pass
