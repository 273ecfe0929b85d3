"""Compute backend failures."""

from __future__ import annotations


class ComputeBackendError(RuntimeError):
    """A backend could not acquire or use one of its resources."""

    def __init__(self, resource: str, message: str) -> None:
        super().__init__(f"{resource}: {message}")
        self.resource = resource


class DeviceUnavailableError(ComputeBackendError):
    pass


class DeviceAllocationError(ComputeBackendError):
    pass


class KernelLoadError(ComputeBackendError):
    pass


class KernelBuildError(ComputeBackendError):
    pass
