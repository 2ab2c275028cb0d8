from __future__ import annotations

import io
import warnings
from typing import List, Tuple, Union

import pandas as pd

from prompt_analyzer.domain.errors import BatchParseError
from prompt_analyzer.domain.models import BatchRow

REQUIRED_COLUMNS = ("prompt", "keywords")

BATCH_TEMPLATE_FILENAME = "batch-analysis-template.csv"

BATCH_TEMPLATE_CSV = (
    "prompt,keywords\n"
    '"Write a creative story about AI","AI,story,creative,technology"\n'
    '"Explain quantum computing","quantum,computing,physics,science"\n'
    '"Create a marketing plan","marketing,plan,strategy,business"\n'
    '"Describe the future of work","future,work,remote,automation"\n'
    '"Write a poem about nature","poem,nature,environment,beauty"\n'
)


def _cell(value) -> str:
    if pd.isna(value):
        return ""
    return str(value).strip()


def split_keywords(raw: str) -> Tuple[str, ...]:
    """Comma-separated cell -> ordered keywords, blanks dropped, duplicates removed."""
    parts = [k.strip() for k in (raw or "").split(",")]
    seen = set()
    return tuple(k for k in parts if k and not (k in seen or seen.add(k)))


def parse_batch_csv(data: Union[str, bytes], max_rows: int = 50) -> List[BatchRow]:
    """
    Parses a two-column upload (prompt, keywords) into rows.

    Rows with an empty prompt or no keywords are skipped here, not at run time.
    Raises BatchParseError for unreadable tables, missing columns, zero valid rows
    or more than max_rows valid rows.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise BatchParseError("CSV file must be UTF-8 encoded") from e

    text = (data or "").strip()
    if not text:
        raise BatchParseError("CSV file is empty")

    try:
        with warnings.catch_warnings():
            # fields past the header row (unquoted keyword lists) are dropped, columns stay aligned
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                index_col=False,
                keep_default_na=False,
                skipinitialspace=True,
                skip_blank_lines=True,
            )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise BatchParseError(f"Failed to parse CSV file: {e}") from e

    df.columns = [str(c).strip().strip('"').strip() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise BatchParseError('CSV must contain "prompt" and "keywords" columns')

    rows: List[BatchRow] = []
    for prompt_raw, keywords_raw in zip(df["prompt"], df["keywords"]):
        prompt = _cell(prompt_raw)
        keywords = split_keywords(_cell(keywords_raw))
        if prompt and keywords:
            rows.append(BatchRow(prompt=prompt, keywords=keywords))

    if not rows:
        raise BatchParseError("No valid rows found in CSV file")
    if len(rows) > max_rows:
        raise BatchParseError(f"Maximum {max_rows} rows allowed per batch")

    return rows
