"""
모델 스펙 테스트

Author: Survey Scale Research Team
Date: 2026-10-19
"""

import pytest

from scale_cfa.config import CFAAnalysisConfig
from scale_cfa.model_spec import (LatentFactor, ModelSpecification, second_order_spec,
                                  single_factor_spec, two_factor_spec)


@pytest.fixture
def items():
    return [f"item{i}" for i in range(1, 15)]


class TestDegreesOfFreedom:
    """자유모수/자유도 계산 테스트 클래스"""

    def test_single_factor_df(self, items):
        """단일요인 14문항: 105 - 28 = 77"""
        spec = single_factor_spec(items)

        assert spec.count_free_parameters() == 28
        assert spec.degrees_of_freedom() == 77
        assert spec.identification_problems() == []

    def test_single_factor_with_all_residual_covariances(self, items):
        """모든 잔차 공분산 추가 시 자유도 음수"""
        spec = single_factor_spec(items, residual_covariances=True)

        assert len(spec.residual_covariances) == 91
        assert spec.degrees_of_freedom() == -14
        assert spec.identification_problems()

    def test_orthogonal_two_factor_df(self):
        """직교 2요인: 요인 공분산이 자유모수에서 빠짐"""
        config = CFAAnalysisConfig()
        orthogonal = two_factor_spec(config.factor_items)
        oblique = two_factor_spec(config.factor_items, orthogonal=False)

        assert orthogonal.degrees_of_freedom() == 77
        assert oblique.degrees_of_freedom() == 76

    def test_second_order_df(self):
        """2차 요인 (부하량 1 고정)"""
        config = CFAAnalysisConfig()
        spec = second_order_spec(config.factor_items)

        # 부하량 12 + 잔차 14 + 교란 2 + 2차 요인분산 1
        assert spec.count_free_parameters() == 29
        assert spec.degrees_of_freedom() == 76
        assert spec.identification_problems() == []

    def test_reduced_two_factor_df(self):
        """6문항 2요인"""
        config = CFAAnalysisConfig()
        spec = two_factor_spec(config.reduced_factor_items)

        assert spec.degrees_of_freedom() == 21 - 12
        assert spec.identification_problems() == []


class TestSemopyRendering:
    """semopy 스펙 문자열 생성 테스트 클래스"""

    def test_single_factor_string(self):
        spec = single_factor_spec(['item1', 'item2', 'item3'], factor_name='F')
        assert "F =~ item1 + item2 + item3" in spec.to_semopy()

    def test_two_factor_orthogonal_string(self):
        spec = two_factor_spec({'F1': ['item1', 'item2', 'item3'],
                                'F2': ['item4', 'item5', 'item6']})
        desc = spec.to_semopy()

        assert "F1 =~ item1 + item2 + item3" in desc
        assert "F2 =~ item4 + item5 + item6" in desc
        assert "F1 ~~ 0*F2" in desc

    def test_second_order_string(self):
        spec = second_order_spec({'F1': ['item1', 'item2', 'item3'],
                                  'F2': ['item4', 'item5', 'item6']})
        assert "G =~ 1*F1 + 1*F2" in spec.to_semopy()

    def test_residual_covariance_lines(self):
        spec = single_factor_spec(['item1', 'item2', 'item3'], residual_covariances=True)
        desc = spec.to_semopy()

        assert "item1 ~~ item2 + item3" in desc
        assert "item2 ~~ item3" in desc


class TestValidation:
    """스펙 검증 테스트 클래스"""

    def test_cross_loading_rejected(self):
        """교차부하 금지"""
        with pytest.raises(ValueError):
            ModelSpecification(
                name='bad',
                factors=(LatentFactor('F1', ('item1', 'item2', 'item3')),
                         LatentFactor('F2', ('item3', 'item4', 'item5'))),
            )

    def test_unknown_residual_covariance_rejected(self):
        with pytest.raises(ValueError):
            ModelSpecification(
                name='bad',
                factors=(LatentFactor('F', ('item1', 'item2', 'item3')),),
                residual_covariances=(('item1', 'item9'),),
            )

    def test_two_factor_requires_two_factors(self):
        with pytest.raises(ValueError):
            two_factor_spec({'F1': ['item1', 'item2', 'item3']})

    def test_empty_factor_rejected(self):
        with pytest.raises(ValueError):
            LatentFactor('F', ())

    def test_two_indicator_single_factor_flagged(self):
        """지표 2개인 단일요인은 식별 불가"""
        spec = single_factor_spec(['item1', 'item2'])
        assert spec.identification_problems()

    def test_spec_is_immutable(self, items):
        spec = single_factor_spec(items)
        with pytest.raises(AttributeError):
            spec.name = 'other'

    def test_observed_variables_order(self):
        config = CFAAnalysisConfig()
        spec = two_factor_spec(config.factor_items)

        assert spec.observed_variables() == config.factor_items['F1'] + config.factor_items['F2']
