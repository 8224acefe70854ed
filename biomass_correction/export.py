"""Single-year summary of corrected group biomass."""

from pathlib import Path

import pandas as pd

from .errors import MissingReferenceYearError
from .logging_utils import get_logger

logger = get_logger('export')

SUMMARY_COLUMNS = ['Year', 'Group', 'Biomass_total']


def select_reference_year(group_biomass: pd.DataFrame, year: int) -> pd.DataFrame:
    """
    Cross-section of total biomass per group for one year.

    Raises:
        MissingReferenceYearError: If any group has no data for ``year``
    """
    table = group_biomass[group_biomass['Year'] == int(year)]
    if table.empty:
        raise MissingReferenceYearError(year, group_biomass['Year'].unique())
    lacking = set(group_biomass['Group']) - set(table['Group'])
    if lacking:
        raise MissingReferenceYearError(year, table['Year'].unique(), groups=lacking)
    return table[SUMMARY_COLUMNS].sort_values('Group').reset_index(drop=True)


def write_summary(table: pd.DataFrame, path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(path, index=False)
    logger.info(f"Wrote {len(table)} group totals to {path}")
    return path
