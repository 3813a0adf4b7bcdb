from typing import Optional


class VehicleResolutionError(Exception):
    """Base class for failures raised by the resolution pipeline."""


class VinValidationError(VehicleResolutionError):
    """The VIN is not 17 characters from the VIN alphabet."""

    def __init__(self, vin: str, message: str = "VIN must be 17 characters (A-Z, 0-9, excluding I, O, Q)"):
        super().__init__(message)
        self.vin = vin


class UpstreamError(VehicleResolutionError):
    """The decoder service failed, timed out or answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class VinNotFoundError(VehicleResolutionError):
    """The decoder answered but had no usable vehicle for the VIN."""

    def __init__(self, vin: str):
        super().__init__(f"No vehicle found for VIN {vin}")
        self.vin = vin


class EnrichmentFailure(VehicleResolutionError):
    """The assistant could not produce a usable patch. Never surfaced to callers."""


class UnexpectedResolutionError(VehicleResolutionError):
    """Any other failure while resolving a VIN."""
