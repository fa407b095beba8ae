class PipelineError(Exception):
    """Raised for any pipeline-related failure to unify error handling."""
    status_code = 500


class ValidationError(PipelineError):
    """Bad input, or a provider answer that does not match the expected shape."""
    status_code = 400


class QuizValidationError(ValidationError):
    pass


class ExplanationValidationError(ValidationError):
    pass


class ResponseFormatError(ValidationError):
    """A provider answered, but not in the shape that was asked for."""
    status_code = 502


class NotFoundError(PipelineError):
    status_code = 404


class MaterializationError(PipelineError):
    pass


class ProviderError(PipelineError):
    """A completion provider failed; carries the provider name."""

    def __init__(self, provider, message):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class OcrError(PipelineError):
    """OCR failed for a single page."""

    def __init__(self, page_number, message):
        self.page_number = page_number
        super().__init__(f"OCR failed for page {page_number}: {message}")
