"""Title normalization and display formatting."""
import re

# Listings that are never screenings, compared on the normalized title
EXCLUDED_TITLES = frozenset({
    'rent the beacon',
})

_QUOTE = '"'


def _strip_quotes(title: str) -> str:
    """Remove exactly one leading and one trailing double quote."""
    if title.startswith(_QUOTE):
        title = title[1:]
    if title.endswith(_QUOTE):
        title = title[:-1]
    return title


def normalize_title(raw_title: str) -> str:
    """
    Build the lookup key for a title.

    Args:
        raw_title: Title as scraped or read from a side-table

    Returns:
        Quote-stripped, trimmed, lower-cased title
    """
    return _strip_quotes(raw_title or '').strip().lower()


def is_excluded(raw_title: str) -> bool:
    """Return True for placeholder listings that must never become events."""
    return normalize_title(raw_title) in EXCLUDED_TITLES


def _format_word(word: str) -> str:
    match = re.search(r'[A-Za-z]', word)
    if not match:
        return word
    index = match.start()
    return word[:index] + word[index].upper() + word[index + 1:].lower()


def format_title(raw_title: str) -> str:
    """
    Title-case a string for display.

    The first alphabetic character of every space-delimited word is
    upper-cased and the rest of the word lower-cased. Anything before that
    character is kept verbatim, and words without letters pass through.

    Args:
        raw_title: Title or series name to format

    Returns:
        Display form, e.g. '"the RED house"' -> 'The Red House'
    """
    return ' '.join(
        _format_word(word) for word in _strip_quotes(raw_title or '').split(' ')
    )
