"""
Comparison of extrapolated BC biomass with independent BC assessments.

No statistics are computed: the two series are lined up by group and year
and plotted for inspection.
"""

from pathlib import Path
from typing import Dict, List, Tuple

import matplotlib.pyplot as plt
import pandas as pd

from .errors import UnmappedGroupError
from .logging_utils import get_logger

logger = get_logger('validation')


def map_assessment_groups(
    assessment: pd.DataFrame,
    name_to_group: Dict[str, str],
) -> Tuple[pd.DataFrame, Dict[str, UnmappedGroupError]]:
    """Sum independent assessment records into groups, reporting unmapped names."""
    failures = {
        name: UnmappedGroupError(name, "no group for independent assessment record")
        for name in assessment['Name'].unique() if name not in name_to_group
    }
    for error in failures.values():
        logger.warning(f"Excluded from validation: {error}")

    mapped = assessment[~assessment['Name'].isin(failures)].copy()
    mapped['Group'] = mapped['Name'].map(name_to_group)
    grouped = (
        mapped.groupby(['Group', 'Year'], as_index=False)['Biomass'].sum()
        .rename(columns={'Biomass': 'Biomass_BC_assessed'})
    )
    return grouped, failures


def compare_regional(
    group_biomass: pd.DataFrame,
    assessment: pd.DataFrame,
    name_to_group: Dict[str, str],
) -> Tuple[pd.DataFrame, Dict[str, UnmappedGroupError]]:
    """
    Line up extrapolated and independently assessed BC biomass.

    Only groups and years present in both tables are kept.

    Returns:
        Tuple of a frame with columns Group, Year, Biomass_BC and
        Biomass_BC_assessed, and the unmapped assessment names
    """
    assessed, failures = map_assessment_groups(assessment, name_to_group)
    comparison = pd.merge(
        group_biomass[['Group', 'Year', 'Biomass_BC']],
        assessed,
        on=['Group', 'Year'],
        how='inner',
    )
    comparison = comparison.sort_values(['Group', 'Year']).reset_index(drop=True)
    logger.info(f"Validation: {comparison['Group'].nunique()} groups with independent BC data")
    return comparison, failures


def plot_comparison(comparison: pd.DataFrame, output_dir) -> List[Path]:
    """Save one figure per group, extrapolated vs independent BC biomass."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for group, data in comparison.groupby('Group'):
        plt.figure(figsize=(10, 5))
        plt.plot(data['Year'], data['Biomass_BC'], label="Extrapolated BC biomass", color='green', marker='o')
        plt.plot(data['Year'], data['Biomass_BC_assessed'], label="Assessed BC biomass", color='blue', marker='s')
        plt.title(f"{group}: BC biomass")
        plt.xlabel("Year")
        plt.ylabel("Biomass (tonnes)")
        plt.grid(True)
        plt.legend()
        plt.tight_layout()
        path = output_dir / f"{group}_bc_validation.png"
        plt.savefig(path)
        plt.close()
        paths.append(path)
    return paths


def plot_corrected_biomass(group_biomass: pd.DataFrame, output_dir) -> List[Path]:
    """Save one figure per group with assessed, 0+ and AK+BC biomass."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths = []
    for group, data in group_biomass.groupby('Group'):
        plt.figure(figsize=(10, 5))
        plt.plot(data['Year'], data['Biomass_SA'], label="Assessed biomass", color='grey', marker='.')
        plt.plot(data['Year'], data['Biomass_0plus'], label="Biomass ages 0+", color='green', marker='o')
        if 'Biomass_total' in data:
            plt.plot(data['Year'], data['Biomass_total'], label="Biomass AK + BC", color='red', marker='s')
        plt.title(f"{group}: corrected biomass")
        plt.xlabel("Year")
        plt.ylabel("Biomass (tonnes)")
        plt.grid(True)
        plt.legend()
        plt.tight_layout()
        path = output_dir / f"{group}_biomass.png"
        plt.savefig(path)
        plt.close()
        paths.append(path)
    return paths
