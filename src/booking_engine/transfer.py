"""Mapping between transfer-type labels and (pickup kind, dropoff kind) pairs."""

import logging
import re

from .core.exceptions import UnknownTransferTypeError
from .models.trip import EndpointKind, TransferType

logger = logging.getLogger(__name__)

# Bookable combinations; the backend has no cruise-to-cruise product.
VALID_TRANSFER_TYPES: tuple[TransferType, ...] = (
    TransferType(pickup=EndpointKind.CITY, dropoff=EndpointKind.CITY),
    TransferType(pickup=EndpointKind.CITY, dropoff=EndpointKind.AIRPORT),
    TransferType(pickup=EndpointKind.AIRPORT, dropoff=EndpointKind.CITY),
    TransferType(pickup=EndpointKind.AIRPORT, dropoff=EndpointKind.AIRPORT),
    TransferType(pickup=EndpointKind.CITY, dropoff=EndpointKind.CRUISE),
    TransferType(pickup=EndpointKind.CRUISE, dropoff=EndpointKind.CITY),
    TransferType(pickup=EndpointKind.AIRPORT, dropoff=EndpointKind.CRUISE),
    TransferType(pickup=EndpointKind.CRUISE, dropoff=EndpointKind.AIRPORT),
)

ALL_LABELS: tuple[str, ...] = tuple(t.label for t in VALID_TRANSFER_TYPES)

# Longest spelling first so "cruise port" wins over "cruise"
_KIND_SPELLINGS: tuple[tuple[str, EndpointKind], ...] = (
    ("cruise port", EndpointKind.CRUISE),
    ("cruise_port", EndpointKind.CRUISE),
    ("cruise", EndpointKind.CRUISE),
    ("airport", EndpointKind.AIRPORT),
    ("city", EndpointKind.CITY),
)

_SEPARATOR = re.compile(r"^\s*(.+?)[\s_]+to[\s_]+(.+?)\s*$", re.IGNORECASE)


def _match_kind(fragment: str, label: str) -> EndpointKind:
    normalized = " ".join(fragment.lower().split())
    for spelling, kind in _KIND_SPELLINGS:
        if normalized == spelling:
            return kind
    raise UnknownTransferTypeError(label)


def resolve(label: str) -> TransferType:
    """Resolve "Airport to City" (or the wire token "airport_to_city") to its pair."""
    match = _SEPARATOR.match(label or "")
    if match is None:
        raise UnknownTransferTypeError(label)

    transfer_type = TransferType(
        pickup=_match_kind(match.group(1), label),
        dropoff=_match_kind(match.group(2), label),
    )
    if transfer_type not in VALID_TRANSFER_TYPES:
        raise UnknownTransferTypeError(label)
    return transfer_type


def reverse(label: str) -> str:
    """Canonical label of the transfer type with pickup and dropoff swapped."""
    return resolve(label).reversed().label


def label_for(transfer_type: TransferType) -> str:
    return transfer_type.label


def token_for(transfer_type: TransferType) -> str:
    return transfer_type.token


def resolve_or_keep(label: str, previous: TransferType | None) -> TransferType | None:
    """Resolve a label, falling back to the previous value when it is unknown."""
    try:
        return resolve(label)
    except UnknownTransferTypeError as e:
        kept = previous.label if previous else "no transfer type"
        logger.warning(f"{e.message}; keeping {kept}")
        return previous
