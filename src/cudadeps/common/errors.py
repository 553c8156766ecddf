"""Exceptions raised by cudadeps for fatal conditions."""


class CudaDepsError(Exception):
    """Base class for all cudadeps errors."""


class NotFunctionalError(CudaDepsError):
    """Raised by accessors when toolkit resolution failed."""

    def __init__(self, reason: str = "cudadeps is not functional"):
        super().__init__(reason)
        self.reason = reason


class ProvisionError(CudaDepsError):
    """Raised by fetch collaborators when a bundle cannot be supplied."""


class ToolkitError(CudaDepsError):
    """Raised when a located toolkit is missing a required component."""


class HostCompilerError(CudaDepsError):
    """Raised when no host compiler compatible with the toolkit exists."""

    def __init__(self, message: str, toolkit_version=None, max_compiler_version=None):
        super().__init__(message)
        self.toolkit_version = toolkit_version
        self.max_compiler_version = max_compiler_version
