"""
Standings text parser.
Turns OCR text of a standings table into ParsedRow entries.

Three layouts are recognized, tried in this order:
  1) tabular text with a header line ("Rank,Player,Points,Record")
  2) blocks starting with an ordinal ("1st. Alice\\nPoints: 9\\nRECORD 3-0-0")
  3) loose lines ("1 Alice 9pts 3-0-0")
The first layout that yields rows wins; rows are never mixed across layouts.
"""

import re
from typing import Dict, List, Optional

from standings_import.models import ParsedRow


RECORD_RE = re.compile(r'\b([0-9]+-[0-9]+(?:-[0-9]+)?)\b')
NON_DIGITS_RE = re.compile(r'[^0-9]+')

HEADER_RANK_RE = re.compile(r'rank|place')
HEADER_PLAYER_RE = re.compile(r'player|name')
HEADER_POINTS_RE = re.compile(r'points|pts')
HEADER_RECORD_RE = re.compile(r'record|w-?l(?:-?d)?')

ORDINAL_RE = re.compile(r'([0-9]+)(?:st|nd|rd|th)\b', re.IGNORECASE)
BLOCK_SPLIT_RE = re.compile(r'\n(?=\s*[0-9]+(?:st|nd|rd|th)\b)', re.IGNORECASE)
ORDINAL_SEPARATOR_RE = re.compile(r'^[\s.:)\-]+')
METADATA_LINE_RE = re.compile(r'points?:|record|status', re.IGNORECASE)
PLACEMENT_WORD_RE = re.compile(r'^(?:place|finish|seed)[.:]?$', re.IGNORECASE)
BLOCK_POINTS_RE = re.compile(r'points?\s*:?\s*([0-9]+)', re.IGNORECASE)

LEADING_RANK_RE = re.compile(r'^\s*([0-9]+)\b')
RANK_PREFIX_RE = re.compile(r'^\s*[0-9]+\b\.?\s*')
POINTS_PHRASE_RE = re.compile(r'\bpoints?\s*:?\s*([0-9]+)', re.IGNORECASE)
POINTS_SUFFIX_RE = re.compile(r'\b([0-9]+)\s*pts?\b', re.IGNORECASE)
WHITESPACE_RUN_RE = re.compile(r'\s{2,}')


def _normalize(text: str) -> str:
    return (text or '').replace('\r', '').strip()


def _digits(value: str) -> Optional[int]:
    digits = NON_DIGITS_RE.sub('', value or '')
    return int(digits) if digits else None


def _first_record(value: str) -> Optional[str]:
    match = RECORD_RE.search(value or '')
    return match.group(1) if match else None


def _find_column(header: List[str], pattern: re.Pattern) -> Optional[int]:
    for index, cell in enumerate(header):
        if pattern.search(cell):
            return index
    return None


def parse_tabular(text: str) -> List[ParsedRow]:
    """
    Parse delimited text whose first line is a header.

    Returns an empty list when the first line is not a recognizable header.
    """
    text = _normalize(text)
    first_line = text.split('\n')[0].lower()
    if '\t' in first_line:
        separator = '\t'
    elif ',' in first_line:
        separator = ','
    else:
        return []

    if not (HEADER_RANK_RE.search(first_line) and HEADER_PLAYER_RE.search(first_line)):
        return []

    lines = [line for line in text.split('\n') if line]
    header = [cell.strip() for cell in lines[0].lower().split(separator)]
    columns: Dict[str, Optional[int]] = {
        'rank': _find_column(header, HEADER_RANK_RE),
        'player': _find_column(header, HEADER_PLAYER_RE),
        'points': _find_column(header, HEADER_POINTS_RE),
        'record': _find_column(header, HEADER_RECORD_RE),
    }

    rows = []
    for line in lines[1:]:
        cells = [cell.strip() for cell in line.split(separator)]

        def cell(name: str) -> str:
            index = columns[name]
            if index is None or index >= len(cells):
                return ''
            return cells[index]

        row = ParsedRow(
            rank=_digits(cell('rank')) or 0,
            player=cell('player'),
            points=_digits(cell('points')),
            record=_first_record(cell('record')),
        )
        if row.is_valid():
            rows.append(row)
    return rows


def _block_player(lines: List[str]) -> str:
    first = ORDINAL_RE.search(lines[0])
    remainder = ORDINAL_SEPARATOR_RE.sub('', lines[0][first.end():]).strip()

    # "1st Place" carries no name; the player is on a following line
    if PLACEMENT_WORD_RE.match(remainder):
        remainder = ''

    candidates = ([remainder] if remainder else []) + lines[1:]
    for candidate in candidates:
        if not METADATA_LINE_RE.search(candidate):
            return re.sub(r'\.$', '', candidate).strip()
    return ''


def parse_blocks(text: str) -> List[ParsedRow]:
    """
    Parse block text where every entry starts with an ordinal line.

    Returns an empty list when no block starts with an ordinal.
    """
    text = _normalize(text)
    rows = []
    for block in BLOCK_SPLIT_RE.split(text):
        lines = [line.strip() for line in block.split('\n') if line.strip()]
        if not lines:
            continue
        ordinal = ORDINAL_RE.match(lines[0])
        if not ordinal:
            # preamble before the first ordinal line
            continue

        points = BLOCK_POINTS_RE.search(block)
        row = ParsedRow(
            rank=int(ordinal.group(1)),
            player=_block_player(lines),
            points=int(points.group(1)) if points else None,
            record=_first_record(block),
        )
        if row.is_valid():
            rows.append(row)
    return rows


def parse_loose_lines(text: str) -> List[ParsedRow]:
    """Parse each line on its own as '<rank> <player> [points] [record]'."""
    rows = []
    for line in _normalize(text).split('\n'):
        rank = LEADING_RANK_RE.search(line)
        if not rank:
            continue

        points = POINTS_PHRASE_RE.search(line) or POINTS_SUFFIX_RE.search(line)
        player = RANK_PREFIX_RE.sub('', line, count=1)
        player = POINTS_PHRASE_RE.sub('', player, count=1)
        player = POINTS_SUFFIX_RE.sub('', player, count=1)
        player = RECORD_RE.sub('', player, count=1)
        player = WHITESPACE_RUN_RE.sub(' ', player).strip()

        row = ParsedRow(
            rank=int(rank.group(1)),
            player=player,
            points=int(points.group(1)) if points else None,
            record=_first_record(line),
        )
        if row.is_valid():
            rows.append(row)
    return rows


STRATEGIES = (
    ('tabular', parse_tabular),
    ('block', parse_blocks),
    ('loose', parse_loose_lines),
)


def detect_layout(text: str) -> Optional[str]:
    """Name of the first strategy that yields rows for this text, or None."""
    for name, strategy in STRATEGIES:
        if strategy(text):
            return name
    return None


def parse_standings(text: str) -> List[ParsedRow]:
    """
    Parse standings text into rows, in the order they appear.

    Never raises on malformed input; unparseable text yields an empty list.
    """
    for _name, strategy in STRATEGIES:
        rows = strategy(text)
        if rows:
            return rows
    return []
