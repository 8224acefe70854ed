"""
End-to-end biomass correction: load -> decompose -> aggregate ->
redistribute -> validate -> export.

``process`` works on in-memory tables and has no side effects, so the same
inputs always give the same outputs. ``run_pipeline`` adds file reading,
the summary CSV and optional figures around it.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .age_structure import decompose_all
from .config import get_config_value
from .export import select_reference_year, write_summary
from .loaders import (read_biomass_series, read_group_taxonomy, read_regional_assessment,
                      read_spatial_distribution)
from .logging_utils import get_logger, log_pipeline_end, log_pipeline_start, log_section
from .parameters import SpeciesParameters, build_species_parameters, read_parameter_table
from .spatial import aggregate_groups, assign_groups, redistribute, regional_ratios
from .validation import compare_regional, plot_comparison, plot_corrected_biomass

logger = get_logger('pipeline')

PIPELINE_NAME = 'biomass correction'


@dataclass
class PipelineInputs:
    biomass: pd.DataFrame
    parameters: Dict[str, SpeciesParameters]
    distribution: pd.DataFrame
    taxonomy: Optional[List[str]] = None
    alternate_distributions: Dict[str, Tuple[pd.DataFrame, str]] = field(default_factory=dict)
    assessment: Optional[pd.DataFrame] = None


@dataclass
class PipelineResult:
    corrected: pd.DataFrame
    group_biomass: pd.DataFrame
    summary: pd.DataFrame
    comparison: Optional[pd.DataFrame] = None
    failures: Dict[str, Dict[str, Exception]] = field(default_factory=dict)


def load_inputs(config: dict) -> PipelineInputs:
    """Read every input table named in the ``data`` section."""
    data = config['data']
    sep = data.get('sep', ',')

    biomass = read_biomass_series(data['biomass_file'], sep=sep)
    parameters = build_species_parameters(
        read_parameter_table(data['parameters_file'], sep=sep),
        recruitment_age_days=config['recruitment']['age_days'],
        overrides=config['recruitment'].get('overrides'),
    )
    distribution = read_spatial_distribution(data['spatial_file'], sep=sep,
                                             cell_column=data.get('cell_column', 'b'))

    taxonomy = None
    if data.get('groups_file'):
        taxonomy = read_group_taxonomy(data['groups_file'], sep=sep,
                                       name_column=data.get('group_name_column', 'Name'))

    alternate = {}
    for group, source in (config['spatial'].get('alternate') or {}).items():
        table = read_spatial_distribution(source['file'], sep=source.get('sep', sep),
                                          cell_column=source.get('cell_column', data.get('cell_column', 'b')))
        alternate[group] = (table, source['column'])
        logger.info(f"{group}: using alternate spatial distribution {source['file']}")

    assessment = None
    if data.get('assessment_file'):
        section = config.get('assessment', {})
        columns = {key: value for key, value in section.items() if key.endswith('_column')}
        assessment = read_regional_assessment(data['assessment_file'], columns,
                                              region=section.get('region'),
                                              metric=section.get('metric'), sep=sep)

    return PipelineInputs(biomass=biomass, parameters=parameters, distribution=distribution,
                          taxonomy=taxonomy, alternate_distributions=alternate,
                          assessment=assessment)


def process(inputs: PipelineInputs, config: dict) -> PipelineResult:
    """
    Run the correction steps on loaded inputs.

    Raises:
        MissingReferenceYearError: If the reference year has no group biomass
    """
    failures = {}

    log_section(logger, 'Age decomposition')
    report = decompose_all(inputs.parameters, inputs.biomass,
                           policy=get_config_value(config, 'decomposition.end_of_series', 'exclude'))
    failures['decomposition'] = report.failures

    log_section(logger, 'Group aggregation')
    mapped, failures['grouping'] = assign_groups(
        report.results, config['groups'].get('species_to_group') or {}, inputs.taxonomy
    )
    group_biomass, failures['aggregation'] = aggregate_groups(mapped)

    log_section(logger, 'Spatial redistribution')
    ratios, failures['spatial'] = regional_ratios(
        group_biomass['Group'].unique(), inputs.distribution, config['spatial'],
        inputs.alternate_distributions,
    )
    group_biomass = redistribute(group_biomass, ratios)

    comparison = None
    if inputs.assessment is not None:
        log_section(logger, 'Validation')
        comparison, failures['validation'] = compare_regional(
            group_biomass, inputs.assessment, config['groups'].get('assessment_to_group') or {}
        )

    log_section(logger, 'Export')
    summary = select_reference_year(group_biomass, config['output']['reference_year'])

    return PipelineResult(corrected=report.results, group_biomass=group_biomass,
                          summary=summary, comparison=comparison, failures=failures)


def report_failures(failures: Dict[str, Dict[str, Exception]]) -> int:
    """Log collected per-item failures, returning how many there were."""
    count = 0
    for step, items in failures.items():
        for name, error in items.items():
            logger.warning(f"[{step}] {name}: {error}")
            count += 1
    return count


def run_pipeline(config: dict) -> PipelineResult:
    """Load inputs, correct, and write the summary table (and figures if configured)."""
    start_time = time.time()
    log_pipeline_start(logger, PIPELINE_NAME, config)
    success = False
    try:
        result = process(load_inputs(config), config)

        write_summary(result.summary, config['output']['summary_file'])
        figures_dir = config['output'].get('figures_dir')
        if figures_dir:
            plot_corrected_biomass(result.group_biomass, figures_dir)
            if result.comparison is not None and not result.comparison.empty:
                plot_comparison(result.comparison, Path(figures_dir) / 'validation')

        n_failed = report_failures(result.failures)
        if n_failed:
            logger.warning(f"{n_failed} species/groups were excluded, see warnings above")
        success = True
        return result
    finally:
        log_pipeline_end(logger, PIPELINE_NAME, success, time.time() - start_time)
