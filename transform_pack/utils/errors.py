"""Custom exception classes for the transformation pack service."""


class TransformPackError(Exception):
    """Base exception for all service errors."""
    pass


class ConfigurationError(TransformPackError):
    """Configuration or initialization errors."""
    pass


class APIError(TransformPackError):
    """Base class for API-related errors."""
    pass


class ProviderError(APIError):
    """Generic provider API error with status code."""
    
    def __init__(self, provider: str, message: str, status_code: int = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider} error: {message}")


class CredentialError(ProviderError):
    """API key missing or rejected by the provider. Never retried."""
    
    def __init__(self, provider: str, message: str = "API key not valid", status_code: int = None):
        super().__init__(provider, message, status_code)


class RateLimitError(ProviderError):
    """API rate limit exceeded."""
    
    def __init__(self, provider: str, retry_after: int = None):
        self.retry_after = retry_after
        message = f"Rate limit exceeded"
        if retry_after:
            message += f", retry after {retry_after}s"
        super().__init__(provider, message, 429)


class OutputError(TransformPackError):
    """Generated payloads could not be packaged into an archive."""
    pass


class ImageProcessingError(TransformPackError):
    """Error processing uploaded image data."""
    pass


class JobNotFoundError(TransformPackError):
    """No job registered under the given id."""
    pass
