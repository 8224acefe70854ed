"""
Age decomposition of assessed biomass.

Stock assessments report biomass for ages Minage..Maxage only. For the
ecosystem model's initial conditions the younger age classes are added back:

1. A stable age structure under constant natural mortality M gives the
   relative numbers at age, proportion(age) ~ exp(-(age + 1) * M), normalised
   over ages 0..Maxage.
2. Length at age follows von Bertalanffy growth, with age 0 evaluated at the
   recruitment age. Weight at age follows the length-weight relationship.
3. Total numbers in a year are the assessed biomass divided by the mean
   weight of the assessed ages; numbers at Minage follow from the proportions.
4. A cohort aged j in year y is the Minage cohort (Minage - j) years later,
   so its numbers are read from that later year and inflated by the natural
   mortality incurred in between.

The age structure ignores fishing mortality and age-specific M, so the
youngest classes are under-counted.

Reconstruction reads future years, so the whole series has to be available
and is indexed by absolute year: a gap in the series counts as missing
history just like the end of the series does.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .errors import BiomassCorrectionError, InsufficientHistoryError
from .logging_utils import get_logger
from .parameters import SpeciesParameters

logger = get_logger('age_structure')

GRAMS_PER_TONNE = 1_000_000
CORRECTED_COLUMNS = ['Species', 'Year', 'Biomass_SA', 'Biomass_0plus']


@dataclass
class AgeProfile:
    """Relative numbers, length and weight for ages 0..Maxage of one species."""
    ages: np.ndarray
    proportion: np.ndarray
    length: np.ndarray
    weight: np.ndarray

    @property
    def weighted_mass(self) -> np.ndarray:
        return self.proportion * self.weight

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            'Age': self.ages,
            'Proportion': self.proportion,
            'Length': self.length,
            'Weight': self.weight,
            'Weighted_mass': self.weighted_mass,
        })


@dataclass
class DecompositionReport:
    """Corrected series for every species that succeeded, plus the failures."""
    results: pd.DataFrame
    failures: Dict[str, Exception] = field(default_factory=dict)


# ------------------------------
# Age profile
# ------------------------------

def survivorship_proportions(M: float, maxage: int) -> np.ndarray:
    """Stable age structure under constant mortality, summing to 1 over ages 0..maxage."""
    ages = np.arange(0, maxage + 1)
    survivors = np.exp(-(ages + 1) * M)
    return survivors / survivors.sum()


def von_bertalanffy_length(ages: np.ndarray, k: float, linf: float,
                           recruitment_age: float) -> np.ndarray:
    """Length at age; age 0 is evaluated at the recruitment age (years)."""
    t = np.asarray(ages, dtype=float).copy()
    t[t == 0] = recruitment_age
    return linf * (1 - np.exp(-k * t))


def length_to_weight(length: np.ndarray, a: float, b: float) -> np.ndarray:
    return a * np.power(length, b)


def build_age_profile(params: SpeciesParameters) -> AgeProfile:
    ages = np.arange(0, params.maxage + 1)
    proportion = survivorship_proportions(params.M, params.maxage)
    length = von_bertalanffy_length(ages, params.k, params.linf, params.recruitment_age)
    weight = length_to_weight(length, params.a, params.b)
    return AgeProfile(ages=ages, proportion=proportion, length=length, weight=weight)


# ------------------------------
# Numbers at age
# ------------------------------

def numbers_at_minage(profile: AgeProfile, minage: int, biomass) -> np.ndarray:
    """
    Numbers at the minimum assessed age implied by assessed biomass.

    Args:
        profile: Age profile of the species
        minage: Minimum assessed age
        biomass: Assessed biomass in metric tons (scalar or array)

    Returns:
        np.ndarray: Numbers at Minage for each biomass value
    """
    assessed_mass = profile.weighted_mass[minage:].sum()
    n_total = np.asarray(biomass, dtype=float) * GRAMS_PER_TONNE / assessed_mass
    return n_total * profile.proportion[minage]


def reconstruct_young_numbers(
    params: SpeciesParameters,
    series: pd.DataFrame,
    policy: str = 'exclude',
    profile: Optional[AgeProfile] = None,
) -> pd.DataFrame:
    """
    Back-calculate numbers at ages 0..Minage-1 for every assessed year.

    Args:
        params: Species parameters (Minage > 0)
        series: One species' assessed biomass with columns Year, Biomass_SA
        policy: What to do when a cohort's Minage year is not in the series:
            'exclude' leaves the year as NaN, 'clamp' uses the nearest earlier
            assessed year instead, 'raise' raises InsufficientHistoryError
        profile: Precomputed age profile (built from params if omitted)

    Returns:
        pd.DataFrame: Numbers indexed by Year, one column per young age

    Raises:
        InsufficientHistoryError: If policy is 'raise' and history is missing
    """
    if profile is None:
        profile = build_age_profile(params)
    minage, M = params.minage, params.M

    years = series['Year'].to_numpy(dtype=int)
    n_minage = pd.Series(
        numbers_at_minage(profile, minage, series['Biomass_SA'].to_numpy(dtype=float)),
        index=years,
    )

    young = np.zeros((len(years), minage))
    incomplete = []
    for i, year in enumerate(years):
        for j in range(minage):
            lag = minage - j
            source_year = year + lag
            if source_year in n_minage.index:
                n_source = n_minage.loc[source_year]
            elif policy == 'clamp':
                n_source = n_minage.loc[n_minage.index[n_minage.index <= source_year].max()]
            else:
                incomplete.append(year)
                young[i, :] = np.nan
                break
            young[i, j] = n_source * np.exp(M * lag)

    if incomplete and policy == 'raise':
        raise InsufficientHistoryError(params.species, incomplete)

    return pd.DataFrame(young, index=pd.Index(years, name='Year'),
                        columns=[f'age{j}' for j in range(minage)])


def back_calculate_young(params: SpeciesParameters, series: pd.DataFrame,
                         policy: str = 'exclude') -> pd.DataFrame:
    """
    Add the biomass of unassessed young ages to one species' assessed series.

    Returns:
        pd.DataFrame: Columns Species, Year, Biomass_SA, Biomass_0plus (tons)
    """
    series = series.sort_values('Year')
    profile = build_age_profile(params)
    young = reconstruct_young_numbers(params, series, policy, profile)

    young_biomass = young.to_numpy() @ profile.weight[:params.minage] / GRAMS_PER_TONNE
    out = pd.DataFrame({
        'Species': params.species,
        'Year': series['Year'].to_numpy(dtype=int),
        'Biomass_SA': series['Biomass_SA'].to_numpy(dtype=float),
    })
    out['Biomass_0plus'] = out['Biomass_SA'] + young_biomass

    dropped = out.loc[out['Biomass_0plus'].isna(), 'Year'].tolist()
    if dropped:
        logger.warning(
            f"{params.species}: no future Minage years for {dropped}, excluded from corrected series"
        )
        out = out.dropna(subset=['Biomass_0plus'])
    return out.reset_index(drop=True)


# ------------------------------
# Species batch
# ------------------------------

def pass_through(series: pd.DataFrame, species: str) -> pd.DataFrame:
    """Corrected series for a species whose assessment already covers all ages."""
    out = pd.DataFrame({
        'Species': species,
        'Year': series['Year'].to_numpy(dtype=int),
        'Biomass_SA': series['Biomass_SA'].to_numpy(dtype=float),
    })
    out['Biomass_0plus'] = out['Biomass_SA']
    return out.sort_values('Year').reset_index(drop=True)


def decompose_species(params: SpeciesParameters, series: pd.DataFrame,
                      policy: str = 'exclude') -> pd.DataFrame:
    """Correct one species, passing it through unchanged when Minage is 0 or missing."""
    params.check_ages()
    if not params.needs_correction:
        logger.debug(f"{params.species}: Minage is {params.minage}, no young ages to add")
        return pass_through(series, params.species)
    params.validate()
    return back_calculate_young(params, series, policy)


def decompose_all(parameters: Dict[str, SpeciesParameters], biomass: pd.DataFrame,
                  policy: str = 'exclude') -> DecompositionReport:
    """
    Correct every species in a long biomass table.

    Species are processed independently and combined at the end; a failing
    species is recorded in the report and left out of the results.

    Args:
        parameters: Species parameters keyed by species name
        biomass: Long biomass table with columns Species, Year, Biomass_SA
        policy: End-of-series policy passed to reconstruct_young_numbers

    Returns:
        DecompositionReport: Concatenated corrected series and failures
    """
    frames: List[pd.DataFrame] = []
    failures: Dict[str, Exception] = {}

    for species, series in biomass.groupby('Species', sort=True):
        params = parameters.get(species)
        if params is None:
            logger.warning(f"{species}: no parameter row, biomass passed through uncorrected")
            frames.append(pass_through(series, species))
            continue
        try:
            frames.append(decompose_species(params, series, policy))
        except (BiomassCorrectionError, ValueError) as e:
            logger.warning(f"{species}: age decomposition failed: {e}")
            failures[species] = e

    if frames:
        results = pd.concat(frames, ignore_index=True)
    else:
        results = pd.DataFrame(columns=CORRECTED_COLUMNS)
    logger.info(
        f"Age decomposition: {results['Species'].nunique()} species corrected, {len(failures)} failed"
    )
    return DecompositionReport(results=results, failures=failures)
