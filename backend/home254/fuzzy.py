"""Fuzzy string matching helpers

Small and dependency free on purpose so the router stays cheap to call per token
"""

from __future__ import annotations


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit cost for insert, delete and substitute"""
    # Rows walk b and columns walk a
    table = [[0] * (len(a) + 1) for _ in range(len(b) + 1)]
    for i in range(len(b) + 1):
        table[i][0] = i
    for j in range(len(a) + 1):
        table[0][j] = j
    for i in range(1, len(b) + 1):
        for j in range(1, len(a) + 1):
            if b[i - 1] == a[j - 1]:
                table[i][j] = table[i - 1][j - 1]
            else:
                table[i][j] = 1 + min(
                    table[i - 1][j - 1],  # substitute
                    table[i][j - 1],      # insert
                    table[i - 1][j],      # delete
                )
    return table[len(b)][len(a)]


def similarity(a: str, b: str) -> float:
    """Score two strings between 0 and 1

    Exact matches score 1.0 and containment in either direction scores 0.8
    Anything else falls back to normalised edit distance
    """
    s1 = a.lower()
    s2 = b.lower()
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.8
    longest = max(len(s1), len(s2))
    return (longest - edit_distance(s1, s2)) / longest
