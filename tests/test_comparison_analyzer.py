"""
비교 테이블 및 신뢰도 계산 테스트

Author: Survey Scale Research Team
Date: 2026-10-19
"""

import numpy as np
import pandas as pd
import pytest

from scale_cfa.comparison_analyzer import (best_label_per_statistic, compare_fit_reports,
                                           format_comparison_table, interpret_fit_value,
                                           render_comparison_table)
from scale_cfa.fit_indices import FitIndexReport
from scale_cfa.reliability_calculator import (average_variance_extracted, composite_reliability,
                                              cronbach_alpha)


class TestCompareFitReports:
    """비교 테이블 조립 테스트 클래스"""

    def test_two_cohort_layout(self):
        table = compare_fit_reports({'male': {'cfi': 0.95}, 'female': {'cfi': 0.80}})

        assert list(table.index) == ['cfi']
        assert list(table.columns) == ['male', 'female']
        assert table.loc['cfi', 'male'] == 0.95
        assert table.loc['cfi', 'female'] == 0.80

    def test_column_order_follows_input(self):
        table = compare_fit_reports([('b', {'cfi': 0.9, 'srmr': 0.05}),
                                     ('a', {'srmr': 0.06, 'cfi': 0.8})])

        assert list(table.columns) == ['b', 'a']
        assert list(table.index) == ['cfi', 'srmr']
        assert table.loc['srmr', 'a'] == 0.06

    def test_accepts_fit_index_reports(self):
        reports = {
            'one_factor': FitIndexReport.from_mapping('one_factor@full', {'cfi': 0.91, 'srmr': 0.06}),
            'two_factor': FitIndexReport.from_mapping('two_factor@full', {'cfi': 0.97, 'srmr': 0.04}),
        }
        table = compare_fit_reports(reports)

        assert table.shape == (2, 2)
        assert table.index.name == 'statistic'

    def test_requires_two_reports(self):
        with pytest.raises(ValueError):
            compare_fit_reports({'male': {'cfi': 0.95}})

    def test_mismatched_statistics(self):
        with pytest.raises(ValueError):
            compare_fit_reports({'male': {'cfi': 0.95}, 'female': {'srmr': 0.05}})

    def test_duplicate_labels(self):
        with pytest.raises(ValueError):
            compare_fit_reports([('male', {'cfi': 0.95}), ('male', {'cfi': 0.90})])


class TestFormatting:
    """서식 및 해석 테스트 클래스"""

    @pytest.fixture
    def table(self):
        return compare_fit_reports({
            'one_factor': {'cfi': 0.912345, 'rmsea.scaled': 0.0712, 'df': 77.0},
            'two_factor': {'cfi': 0.971111, 'rmsea.scaled': 0.0401, 'df': 76.0},
        })

    def test_format_rounds_without_modifying(self, table):
        formatted = format_comparison_table(table, decimals=2)

        assert formatted.loc['cfi', 'one_factor'] == 0.91
        assert table.loc['cfi', 'one_factor'] == 0.912345

    def test_best_label(self, table):
        best = best_label_per_statistic(table)

        assert best == {'cfi': 'two_factor', 'rmsea.scaled': 'two_factor'}

    def test_render_contains_title_and_labels(self, table):
        text = render_comparison_table("Comparison: model_variants", table)

        assert "Comparison: model_variants" in text
        assert "one_factor" in text and "two_factor" in text

    @pytest.mark.parametrize("statistic,value,expected", [
        ('cfi', 0.96, 'Excellent'),
        ('cfi', 0.91, 'Good'),
        ('cfi', 0.85, 'Poor'),
        ('srmr', 0.03, 'Excellent'),
        ('rmsea.scaled', 0.09, 'Poor'),
        ('ecvi', 1.2, 'N/A'),
        ('cfi', np.nan, 'N/A'),
    ])
    def test_interpret_fit_value(self, statistic, value, expected):
        assert interpret_fit_value(statistic, value) == expected


class TestReliability:
    """신뢰도 지표 테스트 클래스"""

    def test_cronbach_alpha_parallel_items(self):
        rng = np.random.default_rng(0)
        factor = rng.normal(size=5000)
        items = pd.DataFrame({f"item{i}": factor + rng.normal(scale=1.0, size=5000)
                              for i in range(1, 5)})

        # 평행 문항 4개, 신뢰도 0.5 → alpha = 4*0.5 / (1 + 3*0.5) = 0.8
        assert cronbach_alpha(items) == pytest.approx(0.8, abs=0.02)

    def test_cronbach_alpha_single_item(self):
        assert np.isnan(cronbach_alpha(pd.DataFrame({'item1': [1.0, 2.0, 3.0]})))

    def test_composite_reliability_and_ave(self):
        loadings = [0.8, 0.8, 0.8]

        assert composite_reliability(loadings) == pytest.approx(5.76 / (5.76 + 1.08))
        assert average_variance_extracted(loadings) == pytest.approx(0.64)
