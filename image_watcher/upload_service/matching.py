"""Wildcard directory patterns and directory tag resolution."""
from typing import Iterable, List, Optional, Sequence

from image_watcher.settings import WatchRule


def split_pattern(pattern: str) -> List[str]:
    """Splits a directory pattern on `*` into its literal parts."""
    return pattern.split("*")


def is_path_match(path: str, parts: Sequence[str]) -> bool:
    """
    Checks whether a path satisfies a pattern already split on `*`.

    The first part must be a prefix of the path and the last part a suffix of
    what remains after the prefix. Middle parts must appear in order; each is
    consumed at its first occurrence without backtracking. A single part (no
    wildcard in the pattern) requires the whole path to be equal to it.
    """
    if not parts:
        return False
    if len(parts) == 1:
        return path == parts[0]

    first, middle, last = parts[0], parts[1:-1], parts[-1]
    if not path.startswith(first):
        return False
    position = len(first)

    for part in middle:
        found = path.find(part, position)
        if found < 0:
            return False
        position = found + len(part)

    return path[position:].endswith(last)


def tag_for_directory(
    directory: str, rules: Iterable[WatchRule], use_wildcard: bool
) -> Optional[str]:
    """Returns the tag of the first rule matching the directory, or None."""
    for rule in rules:
        if use_wildcard:
            if is_path_match(directory, split_pattern(rule.directory_pattern)):
                return rule.tag
        elif directory == rule.directory_pattern:
            return rule.tag
    return None
