class RefreshError(Exception):
    """Base class for failures recorded as a per-target outcome."""


class FetchError(RefreshError):
    pass


class RewriteError(RefreshError):
    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class ValidationError(RefreshError):
    pass


class PublishError(RefreshError):
    pass
