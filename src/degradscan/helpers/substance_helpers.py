import re

_WHITESPACE = re.compile(r"\s+")


def normalize_substance_name(name: str) -> str:
    """Lowercase and trim; inner whitespace runs collapse to a single space."""
    return _WHITESPACE.sub(" ", name.strip()).lower()


def substance_cache_key(name: str) -> str:
    """Cache key for a substance, e.g. ``"Acetic  Acid "`` -> ``"substance_acetic_acid"``."""
    return "substance_" + normalize_substance_name(name).replace(" ", "_")
