import re
from datetime import date
from typing import Optional

# Position 10 model-year codes for the first cycle. I, O, Q, U, Z and 0 are never used.
YEAR_CODE_BASE = {
    'A': 1980, 'B': 1981, 'C': 1982, 'D': 1983, 'E': 1984, 'F': 1985,
    'G': 1986, 'H': 1987, 'J': 1988, 'K': 1989, 'L': 1990, 'M': 1991,
    'N': 1992, 'P': 1993, 'R': 1994, 'S': 1995, 'T': 1996, 'V': 1997,
    'W': 1998, 'X': 1999, 'Y': 2000,
    '1': 2001, '2': 2002, '3': 2003, '4': 2004, '5': 2005,
    '6': 2006, '7': 2007, '8': 2008, '9': 2009,
}
YEAR_CYCLE = 30

VIN_PATTERN = re.compile(r'^[A-HJ-NPR-Z0-9]{17}$')


def normalize_vin(vin) -> str:
    """Strip and uppercase raw VIN input. Non-string input becomes an empty string."""
    if vin is None:
        return ''
    return str(vin).strip().upper()


def is_valid_vin(vin: str) -> bool:
    """True when the VIN is 17 characters from the VIN alphabet (no I, O or Q)."""
    return bool(vin) and VIN_PATTERN.match(vin) is not None


def decode_model_year(vin: str, today: Optional[date] = None) -> Optional[int]:
    """
    Decode the model year from the 10th VIN character.

    Codes repeat every 30 years, so the most recent candidate that does not
    exceed next year is chosen (e.g. 'L' is 2020 from 2019 onwards, 1990 before).

    Args:
        vin: Normalized VIN.
        today: Reference date, defaults to the current date.

    Returns:
        The decoded year, or None when the character is not a year code.
    """
    if not vin or len(vin) < 10:
        return None
    base = YEAR_CODE_BASE.get(vin[9].upper())
    if base is None:
        return None

    ceiling = (today or date.today()).year + 1
    if base > ceiling:
        return None
    cycles = (ceiling - base) // YEAR_CYCLE
    return base + cycles * YEAR_CYCLE
