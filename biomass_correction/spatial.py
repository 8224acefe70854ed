"""
Group aggregation and spatial redistribution.

Species series are summed into the ecosystem model's functional groups and
each group is extended from the assessed region (AK) into the unassessed
neighbouring region (BC) with a fixed BC/AK density ratio. The ratio comes
from one life stage/season snapshot of the spatial distribution, so it is
constant across years.
"""

from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

from .errors import IncompleteGroupError, SpatialDataError, UnmappedGroupError
from .logging_utils import get_logger

logger = get_logger('spatial')

REGIONS = ('AK', 'BC')


def assign_groups(
    corrected: pd.DataFrame,
    species_to_group: Dict[str, str],
    taxonomy: Optional[Iterable[str]] = None,
) -> Tuple[pd.DataFrame, Dict[str, UnmappedGroupError]]:
    """
    Attach a functional group to each species row.

    Species without a mapping, or mapped to a group that is not in the
    taxonomy, are left out and reported.

    Returns:
        Tuple of the mapped frame (with a Group column) and the unmapped species
    """
    known_groups = set(taxonomy) if taxonomy is not None else None
    failures = {}
    for species in corrected['Species'].unique():
        group = species_to_group.get(species)
        if group is None:
            failures[species] = UnmappedGroupError(species)
        elif known_groups is not None and group not in known_groups:
            failures[species] = UnmappedGroupError(species, f"group '{group}' is not in the group list")

    for species, error in failures.items():
        logger.warning(f"Excluded from aggregation: {error}")

    mapped = corrected[~corrected['Species'].isin(failures)].copy()
    mapped['Group'] = mapped['Species'].map(species_to_group)
    return mapped, failures


def incomplete_group_years(mapped: pd.DataFrame) -> Dict[str, IncompleteGroupError]:
    """Group-years in which at least one of the group's species has no row."""
    failures = {}
    for group, data in mapped.groupby('Group'):
        members = set(data['Species'])
        missing = {}
        for year, species in data.groupby('Year')['Species']:
            absent = members - set(species)
            if absent:
                missing[year] = absent
        if missing:
            failures[group] = IncompleteGroupError(group, missing)
    return failures


def aggregate_groups(mapped: pd.DataFrame) -> Tuple[pd.DataFrame, Dict[str, IncompleteGroupError]]:
    """
    Sum species biomass within each group and year.

    A group-year is only kept when every species of the group has a row for
    that year, so each sum covers the whole group. Dropped years are reported
    per group.

    Returns:
        Tuple of the group sums and the groups with dropped years
    """
    failures = incomplete_group_years(mapped)
    for error in failures.values():
        logger.warning(str(error))

    dropped = {(group, year) for group, error in failures.items() for year in error.missing}
    keep = pd.Series(
        [(group, year) not in dropped for group, year in zip(mapped['Group'], mapped['Year'])],
        index=mapped.index, dtype=bool,
    )
    complete = mapped[keep]

    sums = (
        complete.groupby(['Group', 'Year'], as_index=False)[['Biomass_SA', 'Biomass_0plus']]
        .sum()
        .sort_values(['Group', 'Year'])
        .reset_index(drop=True)
    )
    return sums, failures


def distribution_column(group: str, stage: str, season: str,
                        template: str = '{group}_{stage}_{season}') -> str:
    return template.format(group=group, stage=stage, season=season)


def regional_proportions(distribution: pd.DataFrame, column: str,
                         bc_first_cell: int) -> Dict[str, float]:
    """
    Sum a density column over the AK and BC cells.

    Cells with index >= bc_first_cell belong to BC, all others to AK.
    """
    if column not in distribution.columns:
        raise SpatialDataError(f"No spatial distribution column '{column}'")
    values = distribution[column].fillna(0.0)
    if (values < 0).any():
        raise SpatialDataError(f"Spatial distribution column '{column}' has negative densities")
    is_bc = distribution.index >= bc_first_cell
    return {'AK': float(values[~is_bc].sum()), 'BC': float(values[is_bc].sum())}


def bc_to_ak_ratio(proportions: Dict[str, float], group: str = '') -> float:
    ak = proportions.get('AK', 0.0)
    if not ak > 0:
        raise SpatialDataError(f"Group '{group}' has no AK density, BC/AK ratio undefined")
    return proportions.get('BC', 0.0) / ak


def regional_ratios(
    groups: Iterable[str],
    distribution: pd.DataFrame,
    spatial_config: dict,
    alternate_distributions: Optional[Dict[str, Tuple[pd.DataFrame, str]]] = None,
) -> Tuple[Dict[str, float], Dict[str, SpatialDataError]]:
    """
    BC/AK ratio for each group.

    Args:
        groups: Group names to compute
        distribution: Per-cell densities, indexed by cell
        spatial_config: The ``spatial`` configuration section (stage, season,
            column_template, bc_first_cell)
        alternate_distributions: group -> (table, column) for groups whose
            distribution comes from an independent dataset

    Returns:
        Tuple of ratios per group and the groups that failed
    """
    alternate_distributions = alternate_distributions or {}
    bc_first_cell = int(spatial_config['bc_first_cell'])
    template = spatial_config.get('column_template', '{group}_{stage}_{season}')

    ratios, failures = {}, {}
    for group in groups:
        if group in alternate_distributions:
            table, column = alternate_distributions[group]
        else:
            table = distribution
            column = distribution_column(group, spatial_config['stage'], spatial_config['season'], template)
        try:
            proportions = regional_proportions(table, column, bc_first_cell)
            ratios[group] = bc_to_ak_ratio(proportions, group)
        except SpatialDataError as e:
            logger.warning(f"{group}: {e}")
            failures[group] = e
            continue
        logger.debug(f"{group}: AK={proportions['AK']:.4g} BC={proportions['BC']:.4g} ratio={ratios[group]:.4g}")
    return ratios, failures


def redistribute(group_biomass: pd.DataFrame, ratios: Dict[str, float]) -> pd.DataFrame:
    """
    Add BC biomass and the AK+BC total to the group series.

    Groups without a ratio are dropped.
    """
    missing = sorted(set(group_biomass['Group']) - set(ratios))
    if missing:
        logger.warning(f"No BC/AK ratio for groups {missing}, dropped from redistribution")

    out = group_biomass[group_biomass['Group'].isin(ratios)].copy()
    out['BC_to_AK_ratio'] = out['Group'].map(ratios)
    out['Biomass_BC'] = out['Biomass_0plus'] * out['BC_to_AK_ratio']
    out['Biomass_total'] = out['Biomass_0plus'] + out['Biomass_BC']
    return out.reset_index(drop=True)
