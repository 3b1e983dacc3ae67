"""Exceptions raised at the scan-cycle boundary."""


class CareerCRMError(Exception):
    """Base class for tracker errors."""


class ListingError(CareerCRMError):
    """The email source could not list candidate messages."""


class ScanInProgressError(CareerCRMError):
    """A scan cycle was triggered while another one is still running."""
