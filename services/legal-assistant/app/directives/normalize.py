import unicodedata


def normalize_name(value: str | None) -> str:
    """Fold a free-text name so "José  Pérez" and "jose perez" compare equal."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(stripped.casefold().split())
