"""VIN validation, decoding and compatible-part lookup.

Decoding uses the free NHTSA vPIC service. Malformed VINs are rejected
locally before any request is made. Lookups are not retried; the caller
surfaces the error and the user can try again.
"""

import re
from typing import Dict, Iterable, List, Optional

import requests  # type: ignore[import-untyped]

from partshop.config import REQUEST_TIMEOUT, VIN_DECODE_URL
from partshop.logging_config import get_logger, log_shop_event
from partshop.models import Product, VehicleInfo

__all__ = [
    "VinValidationError",
    "VinDecodeError",
    "clean_vin",
    "validate_vin",
    "vin_problem",
    "decode_vin",
    "find_compatible_parts",
]

logger = get_logger("vin")

VIN_LENGTH = 17
VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")
_INVALID_CHARS = re.compile(r"[^A-HJ-NPR-Z0-9]")

# Position weights; the 9th character (index 8) is the check digit
_WEIGHTS = [8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2]
_TRANSLITERATION: Dict[str, int] = {
    **{str(d): d for d in range(10)},
    "A": 1, "B": 2, "C": 3, "D": 4, "E": 5, "F": 6, "G": 7, "H": 8,
    "J": 1, "K": 2, "L": 3, "M": 4, "N": 5, "P": 7, "R": 9,
    "S": 2, "T": 3, "U": 4, "V": 5, "W": 6, "X": 7, "Y": 8, "Z": 9,
}


class VinValidationError(ValueError):
    """Raised when a VIN is malformed (length, characters or check digit)."""
    pass


class VinDecodeError(RuntimeError):
    """Raised when the decode service fails or cannot decode the VIN."""
    pass


def clean_vin(raw: str) -> str:
    """Upper-case and drop characters a VIN cannot contain (including I, O, Q)."""
    return _INVALID_CHARS.sub("", (raw or "").upper())


def _check_digit(vin: str) -> str:
    total = sum(_TRANSLITERATION.get(ch, 0) * weight for ch, weight in zip(vin, _WEIGHTS))
    remainder = total % 11
    return "X" if remainder == 10 else str(remainder)


def vin_problem(vin: str) -> Optional[str]:
    """Describe what is wrong with a VIN, or None if it is valid."""
    if not vin or len(vin) != VIN_LENGTH:
        return f"VIN must be exactly {VIN_LENGTH} characters."
    if not VIN_PATTERN.match(vin):
        return "VIN contains invalid characters (I, O and Q are not allowed)."
    if vin[8] != _check_digit(vin):
        return "VIN check digit does not match."
    return None


def validate_vin(vin: str) -> bool:
    return vin_problem(vin) is None


def _engine_description(result: Dict[str, str]) -> Optional[str]:
    displacement = result.get("DisplacementL")
    engine_model = result.get("EngineModel")
    if displacement:
        return f"{displacement}L {engine_model or 'Engine'}"
    return engine_model or None


def decode_vin(vin: str, session: Optional[requests.Session] = None) -> VehicleInfo:
    """Decode a VIN into vehicle details.

    Args:
        vin: VIN as typed by the user; it is cleaned before validation.
        session: Optional requests.Session for connection reuse.

    Returns:
        VehicleInfo with make, model and year ("Unknown" when missing).

    Raises:
        VinValidationError: If the VIN is malformed (no request is made).
        VinDecodeError: If the service is unreachable or rejects the VIN.
    """
    vin = clean_vin(vin)
    problem = vin_problem(vin)
    if problem:
        raise VinValidationError(problem)

    url = VIN_DECODE_URL.format(vin=vin)
    http = session or requests
    try:
        resp = http.get(url, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        payload = resp.json()
    except requests.exceptions.RequestException as e:
        logger.error(f"VIN decode request failed for {vin}: {e}")
        log_shop_event("vin_decode_failed", {"vin": vin, "error": str(e)})
        raise VinDecodeError("Failed to decode VIN. Please try again later.") from e
    except ValueError as e:
        logger.error(f"VIN decode returned invalid JSON for {vin}: {e}")
        raise VinDecodeError("Failed to decode VIN. Please try again later.") from e

    results = payload.get("Results") or []
    if not results:
        raise VinDecodeError("VIN decode service returned no results.")
    result = results[0]

    error_code = str(result.get("ErrorCode", "0")).strip()
    if error_code != "0":
        message = result.get("ErrorText") or "Invalid VIN number"
        log_shop_event("vin_decode_rejected", {"vin": vin, "error_code": error_code, "error": message})
        raise VinDecodeError(message)

    vehicle = VehicleInfo(
        make=result.get("Make") or "Unknown",
        model=result.get("Model") or "Unknown",
        year=result.get("ModelYear") or "Unknown",
        engine=_engine_description(result),
        body_class=result.get("BodyClass") or None,
        fuel_type=result.get("FuelTypePrimary") or None,
        drive_type=result.get("DriveType") or None,
    )
    log_shop_event("vin_decoded", {"vin": vin, "make": vehicle.make, "model": vehicle.model, "year": vehicle.year})
    return vehicle


def find_compatible_parts(products: Iterable[Product], vehicle: VehicleInfo) -> List[Product]:
    """Products whose compatible vehicles mention the make, model or year.

    Matching is case-insensitive substring matching, the same as catalog
    search. "Unknown" and empty values never match.
    """
    needles = [
        str(value).lower()
        for value in (vehicle.make, vehicle.model, vehicle.year)
        if value and str(value).strip() and str(value) != "Unknown"
    ]
    if not needles:
        return []
    return [
        p for p in products
        if any(needle in p.compatible_vehicles.lower() for needle in needles)
    ]
