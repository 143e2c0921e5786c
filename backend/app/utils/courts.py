"""
Canonical parser for court number lists.

Handles both string ("1,5,6") and list ([1, "5", 6]) inputs so we never
silently corrupt values (e.g. list("1,5,6") -> ['1', ',', '5', ...]).
"""
from typing import Iterable, List, Optional, Union


def parse_court_numbers(court_numbers: Optional[Union[str, Iterable]]) -> List[int]:
    """
    Normalize court_numbers to a sorted list of unique positive ints.

    - None or "" -> []
    - String (e.g. "8, 3") -> split on commas, strip whitespace, drop empties -> [3, 8]
    - List (e.g. ["1", 5]) -> coerce each to int, drop empties and non-numeric tokens
    """
    if court_numbers is None:
        return []
    if isinstance(court_numbers, str):
        tokens = [x.strip() for x in court_numbers.split(",")]
    elif isinstance(court_numbers, int):
        tokens = [str(court_numbers)]
    else:
        tokens = [str(x).strip() for x in court_numbers]

    numbers = set()
    for token in tokens:
        if not token or not token.lstrip("-").isdigit():
            continue
        value = int(token)
        if value > 0:
            numbers.add(value)
    return sorted(numbers)


def court_label(court_number: int) -> str:
    """Display label used in conflict and block messages."""
    return f"Court {court_number}"
