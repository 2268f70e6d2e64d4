class AsnInfoError(Exception):
    """Base class for errors raised by the asninfo service."""


class InvalidRequest(AsnInfoError):
    status_code = 400


class PayloadTooLarge(AsnInfoError):
    status_code = 413

    def __init__(self, max_asns: int):
        super().__init__(f"payload too large, max ASNs per request is {max_asns}")
        self.max_asns = max_asns


class LoaderFailure(AsnInfoError):
    """The external data source could not produce a full snapshot.

    `code` is coarse: 1 = ASN data, 2 = countries, 3 = no usable records.
    """

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code


class StoreNotReady(AsnInfoError):
    """Snapshot read before the initial load installed one."""
