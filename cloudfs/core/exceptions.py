class CloudError(Exception):
    """Base class for namespace errors. ``kind`` names the error for callers."""

    kind = "error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.kind)
        self.detail = detail or self.kind


class Forbidden(CloudError):
    kind = "forbidden"

    def __init__(self, detail: str = "Permission denied.") -> None:
        super().__init__(detail)


class NotFound(CloudError):
    kind = "not_found"


class CreateFailed(CloudError):
    kind = "create_failed"


class Conflict(CreateFailed):
    kind = "conflict"


class TooLarge(CreateFailed):
    kind = "too_large"


class QuotaExceeded(CreateFailed):
    kind = "quota_exceeded"


class PhysicalWriteFailure(CreateFailed):
    kind = "physical_write_failure"
