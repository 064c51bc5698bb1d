"""Zodiac classification derived from a birth date.

The sign is always recomputed from the birth date; callers never persist
it as an independent fact.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class ZodiacSign:
    """Display data for one tropical zodiac sign."""

    sign: str
    symbol: str
    element: str
    traits: list[str] = field(default_factory=list)
    dates: str = ""

    def to_dict(self) -> dict:
        return {
            "sign": self.sign,
            "symbol": self.symbol,
            "element": self.element,
            "traits": list(self.traits),
            "dates": self.dates,
        }


# (sign, (start month, start day), (end month, end day))
_ZODIAC_TABLE: list[tuple[ZodiacSign, tuple[int, int], tuple[int, int]]] = [
    (ZodiacSign("Aries", "♈", "Fire", ["Bold", "Energetic", "Independent"],
                "March 21 - April 19"), (3, 21), (4, 19)),
    (ZodiacSign("Taurus", "♉", "Earth", ["Reliable", "Patient", "Practical"],
                "April 20 - May 20"), (4, 20), (5, 20)),
    (ZodiacSign("Gemini", "♊", "Air", ["Curious", "Adaptable", "Expressive"],
                "May 21 - June 20"), (5, 21), (6, 20)),
    (ZodiacSign("Cancer", "♋", "Water", ["Nurturing", "Intuitive", "Protective"],
                "June 21 - July 22"), (6, 21), (7, 22)),
    (ZodiacSign("Leo", "♌", "Fire", ["Confident", "Creative", "Generous"],
                "July 23 - August 22"), (7, 23), (8, 22)),
    (ZodiacSign("Virgo", "♍", "Earth", ["Analytical", "Helpful", "Detail-oriented"],
                "August 23 - September 22"), (8, 23), (9, 22)),
    (ZodiacSign("Libra", "♎", "Air", ["Diplomatic", "Balanced", "Social"],
                "September 23 - October 22"), (9, 23), (10, 22)),
    (ZodiacSign("Scorpio", "♏", "Water", ["Intense", "Passionate", "Mysterious"],
                "October 23 - November 21"), (10, 23), (11, 21)),
    (ZodiacSign("Sagittarius", "♐", "Fire", ["Adventurous", "Optimistic", "Free-spirited"],
                "November 22 - December 21"), (11, 22), (12, 21)),
    (ZodiacSign("Capricorn", "♑", "Earth", ["Ambitious", "Disciplined", "Responsible"],
                "December 22 - January 19"), (12, 22), (1, 19)),
    (ZodiacSign("Aquarius", "♒", "Air", ["Independent", "Innovative", "Humanitarian"],
                "January 20 - February 18"), (1, 20), (2, 18)),
    (ZodiacSign("Pisces", "♓", "Water", ["Compassionate", "Artistic", "Intuitive"],
                "February 19 - March 20"), (2, 19), (3, 20)),
]

ZODIAC_SIGNS: list[ZodiacSign] = [entry[0] for entry in _ZODIAC_TABLE]


def parse_birth_date(value: date | str) -> date:
    """Parse a birth date from a ``date`` or an ISO string.

    Only the calendar date is used; a time or offset suffix is ignored so the
    day never shifts with the local timezone.

    Raises:
        ValueError: If the value is not a recognizable ISO date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = (value or "").strip()
    if not text:
        raise ValueError("Birth date is empty")
    return date.fromisoformat(text[:10])


def classify_birth_date(value: date | str) -> ZodiacSign:
    """Return the zodiac sign for a birth date.

    Example::

        classify_birth_date("1990-07-10").sign  # "Cancer"
    """
    born = parse_birth_date(value)
    month_day = (born.month, born.day)

    for sign, start, end in _ZODIAC_TABLE:
        if start <= end:
            if start <= month_day <= end:
                return sign
        elif month_day >= start or month_day <= end:
            # Wraps the year end (Capricorn)
            return sign

    raise AssertionError(f"No zodiac sign covers {month_day}")  # pragma: no cover
