"""
Loading of reflectance records into a CurveSeries.

Input files are comma separated, one wavelength per row. Two layouts are
understood:

- single: ``wavelength, r1, r2, ...``
- multi:  ``wavelength, r1, wavelength, r2, ...``

Every reflectance field is a replicate measurement for the row's wavelength.
Replicates outside [0, 100] are discarded before averaging.
"""
import io
import logging
import math
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .curve import CurveSeries

logger = logging.getLogger(__name__)

HEADER_HINT = "\n  ** Consider turning \"Skip Header\" on. **"


class ParsingMode(Enum):
    """Column layout of the input file. AUTO is resolved from the first data row."""
    SINGLE = 'single'
    MULTI = 'multi'
    AUTO = 'auto'

    @classmethod
    def from_name(cls, name: Union[str, "ParsingMode"]) -> "ParsingMode":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown parsing mode: {name}. Must be one of {[m.value for m in cls]}")


class ParseError(ValueError):
    """A file could not be turned into a CurveSeries."""


class EmptyParseError(ParseError):
    """No data rows left once the header has been handled."""

    def __init__(self):
        super().__init__("no parsable rows")


class NumericParseError(ParseError):
    """A field that must be numeric is not."""

    def __init__(self, row: int, text: str, header_hint: bool = False):
        self.row = row
        self.text = text
        self.header_hint = header_hint
        message = f"Error: can not read a number at line {row}. Found '{text}'"
        if header_hint:
            message += HEADER_HINT
        super().__init__(message)


def resolve_parsing_mode(first_row: Sequence[str]) -> ParsingMode:
    """Pick SINGLE or MULTI from the first data row.

    The row is MULTI when it has an even number of fields and every
    wavelength slot (0, 2, 4, ...) holds exactly the same text.
    """
    if len(first_row) % 2 != 0:
        return ParsingMode.SINGLE
    reference = first_row[0]
    if all(first_row[idx] == reference for idx in range(2, len(first_row), 2)):
        return ParsingMode.MULTI
    return ParsingMode.SINGLE


def reduce_replicates(values: Sequence[float]) -> float:
    """Combine replicate readings into one reflectance value.

    Mean of the replicates in [0, 100]. Without any valid replicate the value is
    clipped to the violated boundary: 100 if the mean of the invalid ones is
    above 100, else 0. No replicates at all gives 0.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    valid = (arr >= 0) & (arr <= 100)
    if np.any(valid):
        return float(np.mean(arr[valid]))
    return 100.0 if float(np.mean(arr)) > 100 else 0.0


def _split_records(text: str, skip_header: bool) -> List[List[str]]:
    """Split the text into trimmed string records, dropping blank lines and the header."""
    lines = [ln for ln in text.splitlines() if ln.strip()]
    if skip_header:
        lines = lines[1:]
    if not lines:
        return []

    try:
        df = pd.read_csv(
            io.StringIO("\n".join(lines)),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        raise ParseError(f"Error: cannot parse file: {e}")

    records: List[List[str]] = []
    for row_idx, row in enumerate(df.itertuples(index=False, name=None)):
        if any(pd.isna(field) for field in row):
            raise ParseError(
                f"Error: inconsistent number of fields at line {row_idx + 1}"
            )
        records.append([str(field).strip() for field in row])
    return records


class CurveParser:
    """Create CurveSeries objects from CSV text."""

    def __init__(self, skip_header: bool = False,
                 parsing_mode: Union[str, ParsingMode] = ParsingMode.AUTO):
        self.skip_header = bool(skip_header)
        self.parsing_mode = ParsingMode.from_name(parsing_mode)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "CurveParser":
        """Build a parser from the 'parser' section of the configuration."""
        cfg = (config or {}).get('parser', {}) or {}
        return cls(
            skip_header=bool(cfg.get('skip_header', False)),
            parsing_mode=cfg.get('parsing_mode', ParsingMode.AUTO.value),
        )

    def _number_or_raise(self, row: int, text: str) -> float:
        # float() also takes digit separators ("5_00"), which are not valid input
        try:
            value = math.nan if '_' in text else float(text)
        except ValueError:
            value = math.nan
        if math.isnan(value):
            raise NumericParseError(row, text, header_hint=(row == 1 and not self.skip_header))
        return value

    def parse(self, content: str) -> CurveSeries:
        """
        Parse CSV text into a CurveSeries.

        Every field must be a number. An empty field, such as the one left by a
        trailing comma in `500,10,`, is rejected rather than read as 0.

        Args:
            content: Raw file content

        Returns:
            CurveSeries with one sample per data row, in row order

        Raises:
            ParseError: On malformed content; NumericParseError and EmptyParseError
                        are the specific cases.
        """
        records = _split_records(content, self.skip_header)
        if not records:
            raise EmptyParseError()

        mode = self.parsing_mode
        if mode is ParsingMode.AUTO:
            mode = resolve_parsing_mode(records[0])
            logger.debug(f"Parsing mode resolved to {mode.value}")
        step = 1 if mode is ParsingMode.SINGLE else 2

        wavelengths = np.empty(len(records), dtype=float)
        reflectances = np.empty(len(records), dtype=float)
        for record_idx, record in enumerate(records):
            row = record_idx + 1
            wavelengths[record_idx] = self._number_or_raise(row, record[0])
            replicates = [self._number_or_raise(row, record[idx])
                          for idx in range(1, len(record), step)]
            reflectances[record_idx] = reduce_replicates(replicates)

        series = CurveSeries(wavelengths, reflectances)
        if not series.is_sorted():
            logger.warning("Wavelengths are not in increasing order; points are analysed in file order")
        return series

    def try_parse(self, content: str) -> Union[CurveSeries, ParseError]:
        """Like parse(), but return the error instead of raising it."""
        try:
            return self.parse(content)
        except ParseError as e:
            logger.debug(f"Parsing failed: {e}")
            return e


def parse_curve(content: str, skip_header: bool = False,
                parsing_mode: Union[str, ParsingMode] = ParsingMode.AUTO) -> CurveSeries:
    """Shortcut for CurveParser(skip_header, parsing_mode).parse(content)."""
    return CurveParser(skip_header, parsing_mode).parse(content)


def load_curve_file(file_path: Union[str, Path], parser: Optional[CurveParser] = None) -> CurveSeries:
    """
    Load a single reflectance file.

    Args:
        file_path: Path to the CSV file
        parser: Parser to use; defaults to CurveParser() (no header, auto layout)

    Returns:
        CurveSeries read from the file
    """
    parser = parser or CurveParser()
    path = Path(file_path)
    content = path.read_text(encoding='utf-8')
    try:
        series = parser.parse(content)
    except ParseError as e:
        logger.error(f"Error loading data from {path}: {e}")
        raise
    logger.info(f"Successfully loaded {len(series)} points from {path}")
    return series
