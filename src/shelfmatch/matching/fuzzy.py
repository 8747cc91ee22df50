# ABOUTME: Fuzzy comparison helpers for noisy shelf metadata (brand, size, flavor).
# ABOUTME: Shared by the text pre-filter and the multi-candidate selection tie-break.

import re
from difflib import SequenceMatcher

_PUNCT_RE = re.compile(r"[^\w\s&]")
_SPACE_RE = re.compile(r"\s+")

# Token-overlap similarity lives in [0.5, 0.8]; substring is a flat 0.8.
_SUBSTRING_SCORE = 0.8
_OVERLAP_BASE = 0.5
_OVERLAP_SPAN = 0.3
_MIN_OVERLAP_TOKEN = 3

_BRAND_RATIO = 0.85
_FLAVOR_RATIO = 0.8
_MIN_FLAVOR_PREFIX = 3

_FLAVOR_NOISE_WORDS = frozenset({"flavor", "flavored", "flavour", "natural", "with", "and"})

_SIZE_RE = re.compile(
    r"(\d+(?:[.,]\d+)?)\s*"
    r"(fl\.?\s*oz|fluid\s+ounces?|oz|ounces?|lbs?|pounds?|kg|kilograms?|g|grams?"
    r"|ml|milliliters?|l|liters?|litres?|ct|count|pk|pack)\b",
    re.IGNORECASE,
)

# canonical unit -> (dimension, factor to base unit: grams, milliliters, or items)
_UNITS: dict[str, tuple[str, float]] = {
    "fl oz": ("volume", 29.5735),
    "oz": ("mass", 28.3495),
    "lb": ("mass", 453.592),
    "kg": ("mass", 1000.0),
    "g": ("mass", 1.0),
    "ml": ("volume", 1.0),
    "l": ("volume", 1000.0),
    "ct": ("count", 1.0),
}

_UNIT_ALIASES: dict[str, str] = {
    "oz": "oz",
    "ounce": "oz",
    "ounces": "oz",
    "lb": "lb",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    "kg": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "g": "g",
    "gram": "g",
    "grams": "g",
    "ml": "ml",
    "milliliter": "ml",
    "milliliters": "ml",
    "l": "l",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    "ct": "ct",
    "count": "ct",
    "pk": "ct",
    "pack": "ct",
}


def _canonical_unit(raw: str) -> str | None:
    unit = _SPACE_RE.sub(" ", raw.lower().replace(".", " ")).strip()
    if unit.startswith("fl"):
        return "fl oz"
    return _UNIT_ALIASES.get(unit)


def normalize_text(text: str | None) -> str:
    """Lowercase, drop punctuation (keeping '&'), and collapse whitespace."""
    if not text:
        return ""
    return _SPACE_RE.sub(" ", _PUNCT_RE.sub("", text.lower())).strip()


def string_similarity(a: str | None, b: str | None) -> float:
    """Score two strings in [0, 1]: exact, substring, then token overlap.

    Exact match scores 1.0 and one containing the other 0.8. Otherwise shared
    tokens of three or more characters score 0.5-0.8 by overlap ratio.
    """
    s1 = normalize_text(a)
    s2 = normalize_text(b)
    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return _SUBSTRING_SCORE

    words1 = s1.split()
    words2 = s2.split()
    common = [w for w in words1 if w in words2 and len(w) >= _MIN_OVERLAP_TOKEN]
    if common:
        overlap = len(common) / max(len(words1), len(words2))
        return _OVERLAP_BASE + overlap * _OVERLAP_SPAN
    return 0.0


def brands_compatible(a: str | None, b: str | None) -> bool:
    """Whether two brand strings name the same brand, allowing minor misspellings."""
    s1 = normalize_text(a).replace(" ", "")
    s2 = normalize_text(b).replace(" ", "")
    if not s1 or not s2:
        return False
    if s1 == s2 or s1 in s2 or s2 in s1:
        return True
    return SequenceMatcher(None, s1, s2).ratio() >= _BRAND_RATIO


def parse_size(text: str | None) -> tuple[float, str] | None:
    """Parse the first quantity in a size descriptor into (base amount, dimension).

    "8 oz" -> (226.796, "mass"); "1.5 L" -> (1500.0, "volume"). Returns None
    when no recognizable quantity is present.
    """
    if not text:
        return None
    match = _SIZE_RE.search(text)
    if not match:
        return None
    unit = _canonical_unit(match.group(2))
    if unit is None:
        return None
    amount = float(match.group(1).replace(",", "."))
    dimension, factor = _UNITS[unit]
    return amount * factor, dimension


def sizes_compatible(a: str | None, b: str | None, tolerance: float = 0.2) -> bool | None:
    """Compare two size descriptors with a relative numeric tolerance.

    Mass and volume are treated as equivalent at water density, since shelf
    tags freely mix "oz" and "fl oz". Returns None when either side cannot be
    parsed, so callers can treat unknown sizes as neutral evidence.
    """
    left = parse_size(a)
    right = parse_size(b)
    if left is None or right is None:
        return None

    (amount_a, dim_a), (amount_b, dim_b) = left, right
    if (dim_a == "count") != (dim_b == "count"):
        return False
    largest = max(amount_a, amount_b)
    if largest <= 0:
        return amount_a == amount_b
    return abs(amount_a - amount_b) / largest <= tolerance


def _flavor_tokens(text: str | None) -> list[str]:
    return [w for w in normalize_text(text).split() if w not in _FLAVOR_NOISE_WORDS]


def flavors_compatible(a: str | None, b: str | None) -> bool | None:
    """Compare flavors by meaning rather than exact wording.

    "Strawberry" matches "Straw" and "Strawberry Flavor". Returns None when
    either side carries no flavor words.
    """
    tokens_a = _flavor_tokens(a)
    tokens_b = _flavor_tokens(b)
    if not tokens_a or not tokens_b:
        return None

    for left in tokens_a:
        for right in tokens_b:
            shorter, longer = sorted((left, right), key=len)
            if len(shorter) >= _MIN_FLAVOR_PREFIX and longer.startswith(shorter):
                return True
            if SequenceMatcher(None, left, right).ratio() >= _FLAVOR_RATIO:
                return True
    return False
