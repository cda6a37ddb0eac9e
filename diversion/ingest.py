"""Turn already-structured tables into weight records.

Columns are found by keyword so exports with slightly different headers
("Material", "Waste Type", "Quantity (kg)", "Disposal Route") load without a
mapping step. Text extraction from PDFs or spreadsheets happens upstream.
"""

import logging

import pandas as pd

from .errors import InvalidInputError
from .records import DispositionClass, WeightRecord, group_records

logger = logging.getLogger(__name__)

LABEL_KEYWORDS = ["material", "label", "waste", "category", "name"]
KG_KEYWORDS = ["kg", "weight", "quantity"]
CLASS_KEYWORDS = ["disposition", "class", "route", "destination", "stream"]

# Route spellings seen in hauler exports
ROUTE_ALIASES = {
    "recycle": DispositionClass.RECYCLING,
    "recycled": DispositionClass.RECYCLING,
    "composting": DispositionClass.COMPOST,
    "composted": DispositionClass.COMPOST,
    "organics": DispositionClass.COMPOST,
    "donation": DispositionClass.REUSE,
    "reused": DispositionClass.REUSE,
    "disposal": DispositionClass.LANDFILL,
    "landfilled": DispositionClass.LANDFILL,
}


def _find_col(df, keywords, exclude=()):
    for c in df.columns:
        if c in exclude:
            continue
        lc = str(c).lower()
        if any(k in lc for k in keywords):
            return c
    return None


def parse_route(value):
    key = str(value).strip().lower()
    if key in ROUTE_ALIASES:
        return ROUTE_ALIASES[key]
    return DispositionClass.parse(key)


def records_from_frame(df, disposition_class=None):
    """Build records from a DataFrame.

    When ``disposition_class`` is given every row gets that class (one sheet
    per stream); otherwise a route/class column is required.
    """
    kg_col = _find_col(df, KG_KEYWORDS)
    if kg_col is None:
        raise InvalidInputError(f"No weight column found in {list(df.columns)}")
    class_col = None
    if disposition_class is None:
        class_col = _find_col(df, CLASS_KEYWORDS, exclude=(kg_col,))
        if class_col is None:
            raise InvalidInputError(f"No disposition column found in {list(df.columns)}")
    label_col = _find_col(df, LABEL_KEYWORDS, exclude=(kg_col, class_col))
    if label_col is None:
        raise InvalidInputError(f"No material/label column found in {list(df.columns)}")

    weights = pd.to_numeric(df[kg_col], errors="coerce")
    blank = int(weights.isna().sum())
    if blank:
        logger.warning("%d row(s) with missing weight in column %r treated as 0 kg", blank, kg_col)
    weights = weights.fillna(0.0).astype(float)

    fixed = DispositionClass.parse(disposition_class) if disposition_class is not None else None
    records = []
    for label, kg, route in zip(df[label_col], weights, df[class_col] if class_col is not None else [None] * len(df)):
        cls = fixed if fixed is not None else parse_route(route)
        records.append(WeightRecord(str(label).strip(), kg, cls))
    return records


def frame_by_class(df):
    return group_records(records_from_frame(df))


def records_to_frame(records):
    rows = [{"material": r.label, "kg": r.kilograms, "disposition": r.disposition_class.value} for r in records]
    return pd.DataFrame(rows, columns=["material", "kg", "disposition"])
