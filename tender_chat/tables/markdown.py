import re
from typing import List

from tender_chat.schemas.table import MarkdownTable

_SEPARATOR = re.compile(r"^\|[\s\-|:]+\|$")


def _split_row(line: str) -> List[str]:
    return [cell.strip() for cell in line.strip().strip("|").split("|")]


def extract_tables(text: str) -> List[MarkdownTable]:
    """Lift every pipe table out of assistant text, in order of appearance."""
    tables: List[MarkdownTable] = []
    headers: List[str] = []
    rows: List[List[str]] = []

    def flush():
        if headers:
            tables.append(MarkdownTable(headers=list(headers), rows=[list(row) for row in rows]))
        headers.clear()
        rows.clear()

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if line.startswith("|") and line.endswith("|") and len(line) > 1:
            if _SEPARATOR.match(line):
                continue
            cells = _split_row(line)
            if not headers:
                headers.extend(cells)
            else:
                # Pad or trim to the header width
                rows.append((cells + [""] * len(headers))[:len(headers)])
        elif headers:
            flush()
    flush()
    return tables


def first_table(text: str):
    tables = extract_tables(text)
    return tables[0] if tables else None
