import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from biomass_correction.config import DEFAULT_CONFIG_PATH, _read_yaml, merge_config
from biomass_correction.parameters import SpeciesParameters


@pytest.fixture
def species_x():
    """The worked example: M=0.2, ages 3-10 assessed, recruitment at half a year."""
    return SpeciesParameters(
        species="SpeciesX", M=0.2, minage=3, maxage=10,
        k=0.3, linf=50.0, a=0.01, b=3.0, recruitment_age=0.5,
    )


@pytest.fixture
def constant_series():
    years = np.arange(1990, 1996)
    return pd.DataFrame({"Year": years, "Biomass_SA": np.full(len(years), 1000.0)})


@pytest.fixture
def varying_series():
    return pd.DataFrame({
        "Year": [1990, 1991, 1992, 1993, 1994, 1995],
        "Biomass_SA": [1000.0, 1200.0, 900.0, 1100.0, 950.0, 1300.0],
    })


@pytest.fixture
def spatial_table():
    # cells 0-3 AK, 4-5 BC when bc_first_cell is 4
    return pd.DataFrame(
        {
            "Cod_A_S1": [0.2, 0.2, 0.2, 0.2, 0.1, 0.1],
            "Flatfish_shallow_A_S1": [0.4, 0.4, 0.0, 0.0, 0.2, 0.0],
            "Halibut_A_S1": [0.0, 0.0, 0.0, 0.0, 1.0, 1.0],
        },
        index=pd.Index(range(6), name="b"),
    )


@pytest.fixture
def base_config():
    overrides = {
        "recruitment": {"age_days": 182.5},
        "groups": {
            "species_to_group": {
                "SpeciesX": "Cod",
                "Sole": "Flatfish_shallow",
                "Flounder": "Flatfish_shallow",
            },
            "assessment_to_group": {"Pacific cod": "Cod"},
        },
        "spatial": {"bc_first_cell": 4},
        "output": {"reference_year": 1990},
    }
    return merge_config(_read_yaml(DEFAULT_CONFIG_PATH), overrides)
