from __future__ import annotations


class SizingError(ValueError):
    """Base class for configuration errors that abort a sizing call."""


class UnknownGpuError(SizingError):
    def __init__(self, gpu_id: str, known: list[str] | None = None) -> None:
        self.gpu_id = gpu_id
        self.known = known or []
        message = f"Unknown GPU model: {gpu_id!r}"
        if self.known:
            message += f" (known: {', '.join(self.known)})"
        super().__init__(message)


class InvalidDeploymentError(SizingError):
    pass
