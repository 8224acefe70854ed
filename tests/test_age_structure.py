import numpy as np
import pandas as pd
import pytest

from biomass_correction.age_structure import (GRAMS_PER_TONNE, back_calculate_young,
                                              build_age_profile, decompose_all,
                                              decompose_species, numbers_at_minage,
                                              reconstruct_young_numbers,
                                              survivorship_proportions,
                                              von_bertalanffy_length)
from biomass_correction.errors import InsufficientHistoryError, MissingParameterError
from biomass_correction.parameters import SpeciesParameters


class TestAgeProfile:
    def test_proportions_sum_to_one(self, species_x):
        profile = build_age_profile(species_x)
        assert len(profile.proportion) == 11
        assert profile.proportion.sum() == pytest.approx(1.0)

    def test_proportions_follow_exponential_decay(self):
        p = survivorship_proportions(0.2, 10)
        np.testing.assert_allclose(p[1:] / p[:-1], np.exp(-0.2))

    def test_zero_mortality_gives_uniform_proportions(self):
        p = survivorship_proportions(0.0, 7)
        np.testing.assert_allclose(p, np.full(8, 1 / 8))

    def test_age_zero_length_uses_recruitment_age(self, species_x):
        profile = build_age_profile(species_x)
        assert profile.length[0] == pytest.approx(50 * (1 - np.exp(-0.3 * 0.5)))
        assert profile.length[4] == pytest.approx(50 * (1 - np.exp(-0.3 * 4)))

    def test_weight_is_non_decreasing_with_age(self, species_x):
        profile = build_age_profile(species_x)
        assert np.all(np.diff(profile.weight) >= 0)
        np.testing.assert_allclose(profile.weight, 0.01 * profile.length ** 3)

    def test_zero_recruitment_age_gives_zero_length(self):
        length = von_bertalanffy_length(np.arange(3), k=0.5, linf=30.0, recruitment_age=0.0)
        assert length[0] == 0.0

    def test_profile_frame(self, species_x):
        frame = build_age_profile(species_x).to_frame()
        assert list(frame.columns) == ["Age", "Proportion", "Length", "Weight", "Weighted_mass"]
        assert frame["Age"].tolist() == list(range(11))


class TestYoungNumbers:
    def test_numbers_at_minage(self, species_x):
        profile = build_age_profile(species_x)
        assessed = (profile.proportion[3:] * profile.weight[3:]).sum()
        expected = 1000 * GRAMS_PER_TONNE / assessed * profile.proportion[3]
        assert float(numbers_at_minage(profile, 3, 1000.0)) == pytest.approx(expected)

    def test_cohort_read_from_future_years(self, species_x, varying_series):
        profile = build_age_profile(species_x)
        n_minage = dict(zip(
            varying_series["Year"],
            numbers_at_minage(profile, 3, varying_series["Biomass_SA"].to_numpy()),
        ))
        young = reconstruct_young_numbers(species_x, varying_series)

        assert young.loc[1990, "age0"] == pytest.approx(n_minage[1993] * np.exp(0.2 * 3))
        assert young.loc[1990, "age1"] == pytest.approx(n_minage[1992] * np.exp(0.2 * 2))
        assert young.loc[1990, "age2"] == pytest.approx(n_minage[1991] * np.exp(0.2 * 1))
        assert young.loc[1992, "age0"] == pytest.approx(n_minage[1995] * np.exp(0.6))

    def test_years_without_history_are_nan(self, species_x, constant_series):
        young = reconstruct_young_numbers(species_x, constant_series)
        assert young.loc[[1993, 1994, 1995]].isna().all().all()
        assert young.loc[[1990, 1991, 1992]].notna().all().all()

    def test_raise_policy(self, species_x, constant_series):
        with pytest.raises(InsufficientHistoryError) as excinfo:
            reconstruct_young_numbers(species_x, constant_series, policy="raise")
        assert excinfo.value.years == [1993, 1994, 1995]

    def test_gap_in_series_counts_as_missing_history(self):
        params = SpeciesParameters("Gappy", M=0.3, minage=1, maxage=5, k=0.4,
                                   linf=40.0, a=0.01, b=3.0, recruitment_age=0.2)
        series = pd.DataFrame({"Year": [1990, 1991, 1993, 1994],
                               "Biomass_SA": [10.0, 10.0, 10.0, 10.0]})
        young = reconstruct_young_numbers(params, series)
        assert np.isnan(young.loc[1991, "age0"])
        assert np.isnan(young.loc[1994, "age0"])
        assert young.loc[1990, "age0"] > 0

    def test_clamp_uses_latest_available_year(self, species_x, varying_series):
        profile = build_age_profile(species_x)
        young = reconstruct_young_numbers(species_x, varying_series, policy="clamp")
        n_1995 = float(numbers_at_minage(profile, 3, 1300.0))
        assert young.loc[1995, "age0"] == pytest.approx(n_1995 * np.exp(0.6))
        assert young.notna().all().all()


class TestBackCalculation:
    def test_worked_example(self, species_x, constant_series):
        out = back_calculate_young(species_x, constant_series)
        row = out[out["Year"] == 1990].iloc[0]
        assert row["Biomass_SA"] == 1000.0
        assert row["Biomass_0plus"] > 1000.0

    def test_constant_biomass_matches_stable_age_structure(self, species_x, constant_series):
        # With flat biomass the reconstructed young ages are exactly the
        # stable-structure share of the unassessed ages.
        profile = build_age_profile(species_x)
        expected = 1000.0 * profile.weighted_mass.sum() / profile.weighted_mass[3:].sum()
        out = back_calculate_young(species_x, constant_series)
        np.testing.assert_allclose(out["Biomass_0plus"], expected)

    def test_exclude_drops_end_years(self, species_x, constant_series):
        out = back_calculate_young(species_x, constant_series)
        assert out["Year"].tolist() == [1990, 1991, 1992]

    def test_clamp_keeps_all_years(self, species_x, constant_series):
        out = back_calculate_young(species_x, constant_series, policy="clamp")
        assert out["Year"].tolist() == list(range(1990, 1996))

    def test_young_biomass_non_negative(self, species_x, varying_series):
        out = back_calculate_young(species_x, varying_series)
        assert (out["Biomass_0plus"] >= out["Biomass_SA"]).all()


class TestDecomposeSpecies:
    def test_minage_zero_is_no_op(self, constant_series):
        params = SpeciesParameters("Herring", M=0.3, minage=0, maxage=8, k=0.4,
                                   linf=30.0, a=0.01, b=3.0, recruitment_age=0.1)
        out = decompose_species(params, constant_series)
        pd.testing.assert_series_equal(out["Biomass_0plus"], out["Biomass_SA"], check_names=False)
        assert len(out) == len(constant_series)

    def test_missing_minage_passes_through(self, constant_series):
        params = SpeciesParameters("Skate", M=None, minage=None, maxage=None, k=None,
                                   linf=None, a=None, b=None)
        out = decompose_species(params, constant_series)
        assert (out["Biomass_0plus"] == out["Biomass_SA"]).all()

    def test_missing_parameters_raise(self, constant_series):
        params = SpeciesParameters("Rockfish", M=0.1, minage=2, maxage=30, k=None,
                                   linf=45.0, a=0.01, b=None)
        with pytest.raises(MissingParameterError) as excinfo:
            decompose_species(params, constant_series)
        assert excinfo.value.missing == ["k", "b"]


class TestDecomposeAll:
    def _biomass(self, *species):
        frames = [pd.DataFrame({"Species": s, "Year": range(1990, 1996), "Biomass_SA": 1000.0})
                  for s in species]
        return pd.concat(frames, ignore_index=True)

    def test_failures_do_not_stop_other_species(self, species_x):
        broken = SpeciesParameters("Broken", M=0.2, minage=2, maxage=10, k=0.3,
                                   linf=None, a=0.01, b=3.0)
        report = decompose_all({"SpeciesX": species_x, "Broken": broken},
                               self._biomass("SpeciesX", "Broken"))
        assert set(report.results["Species"]) == {"SpeciesX"}
        assert isinstance(report.failures["Broken"], MissingParameterError)

    def test_insufficient_history_is_collected(self, species_x):
        report = decompose_all({"SpeciesX": species_x}, self._biomass("SpeciesX"), policy="raise")
        assert report.results.empty
        assert isinstance(report.failures["SpeciesX"], InsufficientHistoryError)

    def test_species_without_parameters_pass_through(self, species_x):
        report = decompose_all({"SpeciesX": species_x}, self._biomass("SpeciesX", "Unknown"))
        unknown = report.results[report.results["Species"] == "Unknown"]
        assert len(unknown) == 6
        assert (unknown["Biomass_0plus"] == unknown["Biomass_SA"]).all()
        assert report.failures == {}


class TestAgeRangeChecks:
    @pytest.mark.parametrize("minage, maxage", [(-2, 10), (2.5, 10), (0, 8.5), (0, -1)])
    def test_bad_age_bounds_rejected_before_pass_through(self, constant_series, minage, maxage):
        params = SpeciesParameters("Odd", M=0.2, minage=minage, maxage=maxage, k=0.3,
                                   linf=50.0, a=0.01, b=3.0)
        with pytest.raises(ValueError):
            decompose_species(params, constant_series)

    def test_negative_minage_is_collected_as_failure(self, species_x, constant_series):
        negative = SpeciesParameters("Negative", M=0.2, minage=-2, maxage=10, k=0.3,
                                     linf=50.0, a=0.01, b=3.0)
        biomass = pd.concat([constant_series.assign(Species=name) for name in ("SpeciesX", "Negative")],
                            ignore_index=True)
        report = decompose_all({"SpeciesX": species_x, "Negative": negative}, biomass)
        assert set(report.results["Species"]) == {"SpeciesX"}
        assert isinstance(report.failures["Negative"], ValueError)
