"""
적합도 지수 계산 및 추출 테스트

Author: Survey Scale Research Team
Date: 2026-10-19
"""

from types import SimpleNamespace

import numpy as np
import pytest

from scale_cfa.config import DEFAULT_REPORT_STATISTICS
from scale_cfa.exceptions import UnknownStatisticError
from scale_cfa.fit_indices import (FitIndexReport, compute_fit_statistics,
                                   em_saturated_moments, extract_fit_indices,
                                   multivariate_kurtosis_scaling)


@pytest.fixture
def normal_data():
    rng = np.random.default_rng(99)
    cov = np.full((6, 6), 0.5) + 0.5 * np.eye(6)
    return rng.multivariate_normal(np.zeros(6), cov, size=2000)


def _fitted_stub(statistics, variant='one_factor', cohort='full'):
    return SimpleNamespace(variant=variant, cohort=cohort, label=f"{variant}@{cohort}",
                           fit_statistics=statistics)


class TestSaturatedMoments:
    """EM 포화모형 적률 테스트 클래스"""

    def test_complete_data_matches_sample_moments(self, normal_data):
        mu, sigma = em_saturated_moments(normal_data)

        np.testing.assert_allclose(mu, normal_data.mean(axis=0))
        np.testing.assert_allclose(sigma, np.cov(normal_data, rowvar=False, bias=True))

    def test_missing_data_close_to_complete(self, normal_data):
        rng = np.random.default_rng(1)
        with_missing = normal_data.copy()
        with_missing[rng.random(with_missing.shape) < 0.1] = np.nan

        mu, sigma = em_saturated_moments(with_missing)
        _, full_sigma = em_saturated_moments(normal_data)

        np.testing.assert_allclose(sigma, sigma.T)
        assert np.all(np.linalg.eigvalsh(sigma) > 0)
        np.testing.assert_allclose(sigma, full_sigma, atol=0.1)
        np.testing.assert_allclose(mu, 0.0, atol=0.1)


class TestFitStatistics:
    """적합도 지수 계산 테스트 클래스"""

    def test_saturated_model_fits_perfectly(self, normal_data):
        _, sample_cov = em_saturated_moments(normal_data)
        stats = compute_fit_statistics(normal_data, sample_cov, n_params=21)

        assert stats['df'] == 0
        assert stats['chisq'] == pytest.approx(0.0, abs=1e-6)
        assert stats['cfi'] == 1.0
        assert stats['rmsea'] == 0.0
        assert stats['srmr'] == pytest.approx(0.0, abs=1e-12)

    def test_complete_data_chisq_equals_ml_discrepancy(self, normal_data):
        """완전 자료에서 chisq = N * F_ML"""
        n = len(normal_data)
        _, sample_cov = em_saturated_moments(normal_data)
        diagonal = np.diag(np.diag(sample_cov))

        stats = compute_fit_statistics(normal_data, diagonal, n_params=6, robust=False)

        expected = n * (np.linalg.slogdet(diagonal)[1] - np.linalg.slogdet(sample_cov)[1])
        assert stats['chisq'] == pytest.approx(expected, rel=1e-8)
        assert stats['baseline.chisq'] == pytest.approx(expected, rel=1e-8)
        assert stats['df'] == 15
        assert stats['cfi'] == pytest.approx(0.0, abs=1e-12)

    def test_ecvi_definition(self, normal_data):
        n = len(normal_data)
        _, sample_cov = em_saturated_moments(normal_data)
        stats = compute_fit_statistics(normal_data, np.diag(np.diag(sample_cov)), n_params=6)

        assert stats['ecvi'] == pytest.approx(stats['chisq'] / n + 2 * 6 / n)

    def test_robust_statistics_present(self, normal_data):
        _, sample_cov = em_saturated_moments(normal_data)
        stats = compute_fit_statistics(normal_data, sample_cov, n_params=21, robust=True)

        for name in ('scaling.factor', 'chisq.scaled', 'pvalue.scaled', 'cfi.scaled', 'rmsea.scaled'):
            assert name in stats

    def test_non_robust_statistics_absent(self, normal_data):
        _, sample_cov = em_saturated_moments(normal_data)
        stats = compute_fit_statistics(normal_data, sample_cov, n_params=21, robust=False)

        assert 'chisq.scaled' not in stats

    def test_kurtosis_scaling_near_one_for_normal_data(self, normal_data):
        mu, sigma = em_saturated_moments(normal_data)
        assert multivariate_kurtosis_scaling(normal_data, mu, sigma) == pytest.approx(1.0, abs=0.05)


class TestExtractFitIndices:
    """적합도 지수 추출 테스트 클래스"""

    @pytest.fixture
    def robust_statistics(self):
        return {
            'chisq': 80.0, 'df': 77.0, 'cfi': 0.97, 'srmr': 0.04, 'ecvi': 2.1,
            'chisq.scaled': 78.5, 'pvalue.scaled': 0.43, 'rmsea.scaled': 0.012,
        }

    def test_default_statistics(self, robust_statistics):
        report = extract_fit_indices(_fitted_stub(robust_statistics))

        assert report.statistics() == DEFAULT_REPORT_STATISTICS
        assert report.label == 'one_factor@full'
        assert report['cfi'] == 0.97

    def test_requested_order_preserved(self, robust_statistics):
        report = extract_fit_indices(_fitted_stub(robust_statistics), ['srmr', 'cfi'])
        assert report.statistics() == ['srmr', 'cfi']

    def test_unknown_statistic(self, robust_statistics):
        with pytest.raises(UnknownStatisticError) as exc_info:
            extract_fit_indices(_fitted_stub(robust_statistics), ['cfi', 'gfi_adjusted'])

        assert exc_info.value.statistic == 'gfi_adjusted'
        assert exc_info.value.variant == 'one_factor'

    def test_robust_statistic_on_non_robust_fit(self):
        plain = {'chisq': 80.0, 'df': 77.0, 'cfi': 0.97}
        with pytest.raises(UnknownStatisticError):
            extract_fit_indices(_fitted_stub(plain), ['cfi', 'chisq.scaled'])


class TestFitIndexReport:
    """적합도 지수 보고서 테스트 클래스"""

    def test_rounding_keeps_full_precision(self):
        report = FitIndexReport.from_mapping('m@full', {'cfi': 0.951234567, 'srmr': 0.0412345})

        assert report.rounded(4) == {'cfi': 0.9512, 'srmr': 0.0412}
        assert report['cfi'] == 0.951234567

    def test_report_is_immutable(self):
        report = FitIndexReport.from_mapping('m@full', {'cfi': 0.95})
        with pytest.raises(AttributeError):
            report.label = 'other'
