"""Dotted-segment wildcard matching used to discover metric labels.

Patterns are split on ``.`` and compared segment by segment. A ``*``
segment matches any segment, including one that is missing at the end of
the label, and a ``*`` inside a segment matches any run of characters.
Labels may have more segments than the pattern. A pattern without any
``*`` must equal the label exactly.

    foo.*      -> foo.bar.tex, foo.bike.tex
    foo.*.tex  -> foo.bar.tex, foo.bike.tex
    foo.bar.*  -> foo.bar.tex
"""

import re
from typing import Callable, Iterable, List, Pattern, Union

SEPARATOR = "."

Matcher = Callable[[str, Iterable[str]], List[str]]


def _compile_segment(segment: str) -> Union[str, Pattern]:
    if segment == "*" or "*" not in segment:
        return segment
    return re.compile("^" + ".*".join(re.escape(part) for part in segment.split("*")) + "$")


def wildcard_match(pattern: str, label: str, separator: str = SEPARATOR) -> bool:
    if "*" not in pattern:
        return pattern == label

    label_parts = label.split(separator)
    for index, segment in enumerate(pattern.split(separator)):
        part = _compile_segment(segment)
        if part == "*":
            continue
        if index >= len(label_parts):
            return False
        if isinstance(part, str):
            if part != label_parts[index]:
                return False
        elif not part.match(label_parts[index]):
            return False
    return True


def match(pattern: str, labels: Iterable[str]) -> List[str]:
    """Return the labels matching ``pattern``, in iteration order."""
    return [label for label in labels if wildcard_match(pattern, label)]
