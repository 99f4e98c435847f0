"""
Expansion of aggregate standings records into atomic match records.

A row with record "2-1-0" becomes two Win records followed by one Loss
record. Ids, deck ids and timestamps are left empty; MatchStore stamps them
when the records are committed.
"""

import logging
import re
from typing import List, Optional, Tuple, Union

from standings_import.models import MatchRecord, MatchResult, ParsedRow, UNKNOWN_INKS


RECORD_STRING_RE = re.compile(r'^\s*([0-9]+)-([0-9]+)(?:-([0-9]+))?\s*$')


def parse_record(record: Optional[str]) -> Optional[Tuple[int, int, int]]:
    """
    Split a record string into (wins, losses, draws).

    Returns None when the string is missing or not of the form W-L or W-L-D.
    """
    if not record:
        return None
    match = RECORD_STRING_RE.match(record)
    if not match:
        return None
    wins, losses, draws = match.groups()
    return int(wins), int(losses), int(draws or 0)


def expand_row(
    row: ParsedRow,
    record_less_result: Union[str, MatchResult] = MatchResult.WIN,
    logger: Optional[logging.Logger] = None
) -> List[MatchRecord]:
    """
    Expand one parsed row into match records.

    Args:
        row: Parsed standings row
        record_less_result: Outcome assigned when the row carries no record
        logger: Logger instance

    Returns:
        W + L + D records for a row with a record, otherwise exactly one
    """
    tally = parse_record(row.record)

    if tally is None:
        result = MatchResult.from_value(record_less_result)
        if logger:
            logger.warning(
                f"Rank {row.rank} ({row.player}) has no record; "
                f"storing a single {result.label} as a placeholder"
            )
        return [MatchRecord(
            result=result,
            round=f"{row.rank}-1",
            opponent=row.player,
            opponent_inks=UNKNOWN_INKS,
            notes=str(row.points) if row.points is not None else '',
        )]

    records = []
    sequence = 0
    for result, count in zip((MatchResult.WIN, MatchResult.LOSS, MatchResult.DRAW), tally):
        for index in range(1, count + 1):
            sequence += 1
            records.append(MatchRecord(
                result=result,
                round=f"{row.rank}-{sequence}",
                opponent=row.player,
                opponent_inks=UNKNOWN_INKS,
                notes=f"{result.label} {index}/{count} vs {row.player}",
            ))
    return records


def expand_rows(
    rows: List[ParsedRow],
    record_less_result: Union[str, MatchResult] = MatchResult.WIN,
    logger: Optional[logging.Logger] = None
) -> List[MatchRecord]:
    """Expand every row in order; see expand_row."""
    records = []
    for row in rows:
        records.extend(expand_row(row, record_less_result, logger))

    if logger:
        logger.info(f"Expanded {len(rows)} standings rows into {len(records)} match records")
    return records
