"""
Biomass correction for ecosystem model initial conditions.

Adds the biomass of age classes younger than a stock assessment's minimum
age, extends assessed (AK) biomass into the unassessed BC region with a
spatial BC/AK ratio, and exports one year of group totals.
"""

from .age_structure import (AgeProfile, build_age_profile, decompose_all, decompose_species,
                            reconstruct_young_numbers)
from .errors import (BiomassCorrectionError, IncompleteGroupError, InsufficientHistoryError,
                     MissingParameterError, MissingReferenceYearError, SpatialDataError,
                     UnmappedGroupError)
from .parameters import SpeciesParameters
from .pipeline import PipelineResult, process, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "AgeProfile",
    "build_age_profile",
    "decompose_all",
    "decompose_species",
    "reconstruct_young_numbers",
    "BiomassCorrectionError",
    "IncompleteGroupError",
    "InsufficientHistoryError",
    "MissingParameterError",
    "MissingReferenceYearError",
    "SpatialDataError",
    "UnmappedGroupError",
    "SpeciesParameters",
    "PipelineResult",
    "process",
    "run_pipeline",
]
