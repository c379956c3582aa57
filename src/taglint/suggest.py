from __future__ import annotations

from typing import Iterable


def levenshtein_distance(left: str, right: str) -> int:
    if len(left) < len(right):
        return levenshtein_distance(right, left)
    if not right:
        return len(left)
    prev_row = list(range(len(right) + 1))
    for i, left_char in enumerate(left):
        curr_row = [i + 1]
        for j, right_char in enumerate(right):
            insertions = prev_row[j + 1] + 1
            deletions = curr_row[j] + 1
            substitutions = prev_row[j] + (left_char != right_char)
            curr_row.append(min(insertions, deletions, substitutions))
        prev_row = curr_row
    return prev_row[-1]


class SuggestionIndex:
    """Nearest-match lookup over a fixed tag vocabulary.

    Calling the index with a member returns it unchanged, so comparing the
    result with the input doubles as the membership test. Anything else maps
    to the member with the smallest edit distance; ties go to the member that
    appears first in the vocabulary.
    """

    def __init__(self, values: Iterable[str]) -> None:
        self._values = tuple(values)
        if not self._values:
            raise ValueError("SuggestionIndex requires at least one value")
        self._members = frozenset(self._values)

    @property
    def values(self) -> tuple[str, ...]:
        return self._values

    def __contains__(self, candidate: object) -> bool:
        return candidate in self._members

    def __call__(self, candidate: str) -> str:
        return self.closest(candidate)

    def closest(self, candidate: str) -> str:
        if candidate in self._members:
            return candidate
        best = self._values[0]
        best_distance = levenshtein_distance(candidate, best)
        for value in self._values[1:]:
            distance = levenshtein_distance(candidate, value)
            if distance < best_distance:
                best = value
                best_distance = distance
        return best
