"""
Readers for the input tables.

All readers return pandas objects with the column names the rest of the
workflow uses (Species, Group, Year, Biomass_*), so downstream code never
sees the layout of the source files.
"""

from typing import Dict, List, Optional

import pandas as pd

from .logging_utils import get_logger

logger = get_logger('loaders')


def biomass_long_format(wide: pd.DataFrame, year_column: str = 'Year') -> pd.DataFrame:
    """
    Reshape a Year x species biomass table to one row per species and year.

    Missing values are dropped, so each species keeps only its assessed years.
    """
    if year_column not in wide.columns:
        raise ValueError(f"Biomass table has no '{year_column}' column")
    long = wide.melt(id_vars=year_column, var_name='Species', value_name='Biomass_SA')
    long = long.rename(columns={year_column: 'Year'})
    long = long.dropna(subset=['Biomass_SA'])
    long['Year'] = long['Year'].astype(int)
    long['Biomass_SA'] = long['Biomass_SA'].astype(float)
    long['Species'] = long['Species'].astype(str).str.strip()
    return long.sort_values(['Species', 'Year']).reset_index(drop=True)


def read_biomass_series(path, sep: str = ',', year_column: str = 'Year') -> pd.DataFrame:
    """Read the assessed biomass time series (metric tons)."""
    wide = pd.read_csv(path, sep=sep)
    long = biomass_long_format(wide, year_column)
    logger.info(
        f"Loaded {len(long)} biomass observations for {long['Species'].nunique()} species from {path}"
    )
    return long


def read_spatial_distribution(path, sep: str = ',', cell_column: str = 'b') -> pd.DataFrame:
    """Read per-cell relative densities, indexed by cell index."""
    table = pd.read_csv(path, sep=sep)
    if cell_column not in table.columns:
        raise ValueError(f"Spatial table {path} has no '{cell_column}' column")
    table = table.set_index(cell_column)
    table.index = table.index.astype(int)
    logger.info(f"Loaded spatial distribution with {len(table)} cells and {table.shape[1]} columns")
    return table


def read_group_taxonomy(path, sep: str = ',', name_column: str = 'Name') -> List[str]:
    """Read the canonical functional group names."""
    table = pd.read_csv(path, sep=sep)
    if name_column not in table.columns:
        raise ValueError(f"Group table {path} has no '{name_column}' column")
    return table[name_column].dropna().astype(str).str.strip().tolist()


def regional_assessment_long_format(
    table: pd.DataFrame,
    columns: Dict[str, str],
    region: Optional[str] = None,
    metric: Optional[str] = None,
) -> pd.DataFrame:
    """
    Filter an independent regional assessment to one region and one metric.

    Args:
        table: Raw assessment records
        columns: Mapping with keys year_column, name_column, region_column,
            metric_column and value_column naming the source columns
        region: Region id to keep (all regions when None)
        metric: Biomass time-series metric to keep (all when None)

    Returns:
        pd.DataFrame: Columns Year, Name, Biomass
    """
    if region is not None:
        table = table[table[columns['region_column']].astype(str) == str(region)]
    if metric is not None:
        table = table[table[columns['metric_column']].astype(str) == str(metric)]

    out = pd.DataFrame({
        'Year': table[columns['year_column']].astype(int),
        'Name': table[columns['name_column']].astype(str).str.strip(),
        'Biomass': pd.to_numeric(table[columns['value_column']], errors='coerce'),
    })
    return out.dropna(subset=['Biomass']).reset_index(drop=True)


def read_regional_assessment(path, columns: Dict[str, str], region: Optional[str] = None,
                             metric: Optional[str] = None, sep: str = ',') -> pd.DataFrame:
    """Read and filter the independent regional biomass series."""
    table = pd.read_csv(path, sep=sep)
    missing = [c for key, c in columns.items() if key.endswith('_column') and c not in table.columns
               and not (key == 'region_column' and region is None)
               and not (key == 'metric_column' and metric is None)]
    if missing:
        raise ValueError(f"Assessment table {path} is missing columns: {missing}")
    out = regional_assessment_long_format(table, columns, region, metric)
    logger.info(f"Loaded {len(out)} independent assessment records from {path}")
    return out
