"""
Error types raised by the biomass correction workflow.

Per-species and per-group errors are collected by the batch steps and
reported at the end of a run; only configuration problems and a missing
reference year abort the whole pipeline.
"""


class BiomassCorrectionError(Exception):
    """Base class for all workflow errors."""


class MissingParameterError(BiomassCorrectionError):
    """A species needs age correction but lacks one or more parameters."""

    def __init__(self, species, missing):
        self.species = species
        self.missing = list(missing)
        super().__init__(
            f"Species '{species}' is missing required parameters: {', '.join(self.missing)}"
        )


class InsufficientHistoryError(BiomassCorrectionError):
    """Young-age reconstruction needs assessed years that are not in the series."""

    def __init__(self, species, years):
        self.species = species
        self.years = sorted(int(y) for y in years)
        super().__init__(
            f"Species '{species}' lacks future assessment years needed to "
            f"back-calculate young ages for: {self.years}"
        )


class UnmappedGroupError(BiomassCorrectionError):
    """A species or assessment record has no functional group."""

    def __init__(self, name, detail="no group mapping"):
        self.name = name
        super().__init__(f"'{name}': {detail}")


class MissingReferenceYearError(BiomassCorrectionError):
    """The requested export year is absent from the group biomass table."""

    def __init__(self, year, available=(), groups=()):
        self.year = year
        self.available = sorted(int(y) for y in available)
        self.groups = sorted(groups)
        if self.groups:
            message = f"Reference year {year} missing for groups: {', '.join(self.groups)}"
        else:
            span = f"{self.available[0]}-{self.available[-1]}" if self.available else "none"
            message = f"Reference year {year} not in data (available years: {span})"
        super().__init__(message)


class SpatialDataError(BiomassCorrectionError):
    """A group's spatial distribution cannot provide a BC/AK ratio."""


class IncompleteGroupError(BiomassCorrectionError):
    """Some years of a group lack one or more of the group's species."""

    def __init__(self, group, missing):
        self.group = group
        # year -> species with no row in that year
        self.missing = {int(year): sorted(species) for year, species in missing.items()}
        detail = '; '.join(f"{year}: {', '.join(species)}" for year, species in sorted(self.missing.items()))
        super().__init__(f"Group '{group}' dropped for years missing member species ({detail})")
