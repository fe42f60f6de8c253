"""Jira issue key extraction from free text"""

import re
from typing import Iterable, List, Pattern, Sequence, Union

DEFAULT_ISSUE_PATTERN = r"(?<![A-Z0-9])([A-Z][A-Z0-9]{1,9}-[0-9]{1,6})(?![A-Z0-9])"

# Prefixes that look like issue keys but are usually standards or encodings (SHA-256, UTF-8).
DEFAULT_BLOCKLIST = [
    "SHA", "UTF", "ISO", "TCP", "UDP", "HTTP", "HTTPS", "SSL", "TLS",
    "SSH", "DNS", "FTP", "SMTP", "IMAP", "POP", "API", "URL", "URI",
    "XML", "JSON", "YAML", "HTML", "CSS", "RFC", "IEEE", "ANSI", "ASCII",
]


def compile_pattern(pattern: Union[str, Pattern[str], None]) -> Pattern[str]:
    if pattern is None or pattern == "":
        return re.compile(DEFAULT_ISSUE_PATTERN)
    if isinstance(pattern, str):
        return re.compile(pattern)
    return pattern


def extract_keys(
    text: str,
    projects: Sequence[str],
    blocklist: Sequence[str],
    pattern: Union[str, Pattern[str], None] = None,
) -> List[str]:
    """Find issue keys in text, dropping blocklisted and foreign project prefixes."""
    regex = compile_pattern(pattern)
    keys = []
    for m in regex.finditer(text or ""):
        key = m.group(0)
        prefix = key.split("-")[0]
        if prefix in blocklist:
            continue
        if projects and prefix not in projects:
            continue
        keys.append(key)
    return keys


def _sort_key(key: str):
    prefix, _, number = key.partition("-")
    try:
        return (prefix, 0, int(number), "")
    except ValueError:
        return (prefix, 1, 0, number)


def merge_and_sort(keys: Iterable[str]) -> List[str]:
    """Unique keys, ordered by project prefix then issue number."""
    return sorted(set(keys), key=_sort_key)


def extract_keys_from_texts(
    texts: Iterable[str],
    projects: Sequence[str],
    blocklist: Sequence[str],
    pattern: Union[str, Pattern[str], None] = None,
) -> List[str]:
    regex = compile_pattern(pattern)
    found: List[str] = []
    for text in texts:
        found.extend(extract_keys(text, projects, blocklist, regex))
    return merge_and_sort(found)
