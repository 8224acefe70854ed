"""
Species life-history parameters used by the age decomposition.

Natural mortality, assessed age range, von Bertalanffy growth and the
length-weight relationship are all taken as given inputs; nothing here is
estimated.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import pandas as pd

from .errors import MissingParameterError
from .logging_utils import get_logger

logger = get_logger('parameters')

DAYS_PER_YEAR = 365.0

# parameter table column -> SpeciesParameters field
PARAMETER_COLUMNS = {
    'M': 'M',
    'Minage': 'minage',
    'Maxage': 'maxage',
    'k': 'k',
    'Linf': 'linf',
    'a': 'a',
    'b': 'b',
}


def _is_missing(value) -> bool:
    return value is None or bool(pd.isna(value))


@dataclass(frozen=True)
class SpeciesParameters:
    """
    Life-history parameters for one assessed species.

    Lengths from the growth model must be in the unit the a/b coefficients
    expect, so that ``a * L**b`` is a weight in grams.
    """
    species: str
    M: Optional[float]
    minage: Optional[int]
    maxage: Optional[int]
    k: Optional[float]
    linf: Optional[float]
    a: Optional[float]
    b: Optional[float]
    recruitment_age: float = 0.0  # years

    @property
    def needs_correction(self) -> bool:
        """True when the assessment leaves out ages below Minage."""
        return not _is_missing(self.minage) and self.minage > 0

    def check_ages(self) -> None:
        """
        Reject negative or fractional Minage/Maxage.

        Raises:
            ValueError: If a present age bound is negative or not a whole number
        """
        for column, value in (('Minage', self.minage), ('Maxage', self.maxage)):
            if _is_missing(value):
                continue
            if not float(value).is_integer():
                raise ValueError(f"Species '{self.species}': {column} must be a whole number of years, got {value}")
            if value < 0:
                raise ValueError(f"Species '{self.species}': {column} must be >= 0, got {value}")

    def missing_fields(self) -> List[str]:
        return [column for column, field in PARAMETER_COLUMNS.items()
                if _is_missing(getattr(self, field))]

    def validate(self) -> None:
        """
        Check the parameters are complete and consistent.

        Raises:
            MissingParameterError: If any required parameter is missing
            ValueError: If M <= 0, an age bound is negative or fractional, or Maxage < Minage
        """
        missing = self.missing_fields()
        if missing:
            raise MissingParameterError(self.species, missing)
        self.check_ages()
        if self.M <= 0:
            raise ValueError(f"Species '{self.species}': M must be positive, got {self.M}")
        if self.maxage < self.minage:
            raise ValueError(
                f"Species '{self.species}': Maxage ({self.maxage}) is below Minage ({self.minage})"
            )
        if self.recruitment_age < 0:
            raise ValueError(f"Species '{self.species}': recruitment age must be >= 0")


def read_parameter_table(path, sep: str = ',') -> pd.DataFrame:
    """Read the species parameter table, one row per species."""
    table = pd.read_csv(path, sep=sep)
    if 'Species' not in table.columns:
        raise ValueError(f"Parameter table {path} has no 'Species' column")
    table['Species'] = table['Species'].astype(str).str.strip()
    logger.info(f"Loaded parameters for {len(table)} species from {path}")
    return table


def _as_int(value):
    """Whole ages as int; fractional ages are kept so check_ages can reject them."""
    if _is_missing(value):
        return None
    value = float(value)
    return int(value) if value.is_integer() else value


def _as_float(value) -> Optional[float]:
    if _is_missing(value):
        return None
    return float(value)


def build_species_parameters(
    table: pd.DataFrame,
    recruitment_age_days: float,
    overrides: Optional[Dict[str, float]] = None,
) -> Dict[str, SpeciesParameters]:
    """
    Turn the parameter table into SpeciesParameters records.

    Recruitment age precedence: a ``recruitment_age`` column (years) in the
    table, then a per-species override in days, then the default in days.
    Records are not validated here so one bad row does not block the rest.

    Args:
        table: Parameter table as returned by read_parameter_table
        recruitment_age_days: Default recruitment age in days
        overrides: Optional species -> recruitment age in days

    Returns:
        Dict[str, SpeciesParameters]: Parameters keyed by species name
    """
    overrides = overrides or {}
    records = {}
    for row in table.to_dict('records'):
        species = row['Species']
        values = {field: row.get(column) for column, field in PARAMETER_COLUMNS.items()}

        recruitment_age = _as_float(row.get('recruitment_age'))
        if recruitment_age is None:
            days = overrides.get(species, recruitment_age_days)
            recruitment_age = float(days) / DAYS_PER_YEAR

        records[species] = SpeciesParameters(
            species=species,
            M=_as_float(values['M']),
            minage=_as_int(values['minage']),
            maxage=_as_int(values['maxage']),
            k=_as_float(values['k']),
            linf=_as_float(values['linf']),
            a=_as_float(values['a']),
            b=_as_float(values['b']),
            recruitment_age=recruitment_age,
        )
    return records
