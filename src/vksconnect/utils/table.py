"""Parsing for the column-aligned tables printed by the vcf CLI."""

import re

_COLUMN_GAP = re.compile(r"\s{2,}")


def _is_noise(line: str) -> bool:
    stripped = line.strip()
    # vcf prefixes progress/log lines with markers like "[ok]" or "[i]"
    return not stripped or stripped.startswith("[")


def parse_table(output: str) -> list[dict[str, str]]:
    """Parse a CLI table into a list of row dictionaries.

    The first non-noise line is the header. Header keys are lower-cased with
    spaces replaced by underscores. Cells are split on runs of two or more
    spaces; when that does not line up with the header (an empty cell, or a
    single space between columns), the row is split on any whitespace and
    assigned to the header keys positionally.

    Args:
        output: Raw command output

    Returns:
        List of rows keyed by normalized header name
    """
    lines = [line for line in output.splitlines() if not _is_noise(line)]
    if not lines:
        return []

    header = [
        column.strip().lower().replace(" ", "_")
        for column in _COLUMN_GAP.split(lines[0].strip())
    ]
    if len(header) == 1:
        header = lines[0].strip().lower().split()

    rows = []
    for line in lines[1:]:
        cells = _COLUMN_GAP.split(line.strip())
        if len(cells) != len(header):
            cells = line.split()
        rows.append({key: value for key, value in zip(header, cells)})

    return rows
