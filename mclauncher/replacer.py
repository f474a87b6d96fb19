import logging
from typing import Any, Dict, Iterable, List

log = logging.getLogger(__name__)


def replace_text(value: Any, replacements: Dict[str, str]) -> Any:
    """
    Replaces every occurrence of each key in `replacements` within `value`.
    Plain substring replacement, no regular expressions.

    Args:
        value: The string to patch. Non-string values (numbers, booleans from
               a JSON config) are returned untouched.
        replacements: Mapping of search string to replacement string.

    Returns:
        The patched string, or the original value if it is not a string.
    """
    if not isinstance(value, str):
        return value

    patched = value
    for search, replacement in replacements.items():
        if isinstance(search, str) and isinstance(replacement, str):
            patched = patched.replace(search, replacement)
        else:
            log.warning(f"replace_text: skipping non-string replacement for key '{search}'")
    return patched


def expand_placeholders(args: Iterable[str], values: Dict[str, str]) -> List[str]:
    """
    Expands `${name}` placeholders in launch arguments.

    Args:
        args: Argument templates, e.g. ``"-Djava.library.path=${natives_directory}"``.
        values: Placeholder values keyed by bare name (``natives_directory``).

    Returns:
        A new list with every known placeholder substituted. Unknown
        placeholders are left as they are.
    """
    replacements = {f"${{{key}}}": str(val) for key, val in values.items()}
    return [replace_text(arg, replacements) for arg in args]
