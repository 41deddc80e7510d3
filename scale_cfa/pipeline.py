"""
CFA 비교 분석 파이프라인

로딩 → 집단 구성 → 모델 적합 → 적합도 지수 추출 → 비교 테이블의 과정을
(모델 × 집단) 분기 테이블로 실행합니다.
한 분기의 식별/추출 실패는 기록만 하고 나머지 분기는 계속 진행합니다.
"""

import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .comparison_analyzer import compare_fit_reports
from .config import CFAAnalysisConfig, get_default_config
from .data_loader import CohortBuilder, SurveyDataLoader
from .exceptions import (ModelSpecificationError, UnidentifiedModelError,
                         UnknownStatisticError)
from .factor_analyzer import CFAModelFitter, FittedModel
from .fit_indices import FitIndexReport, extract_fit_indices
from .model_spec import (ModelSpecification, second_order_spec, single_factor_spec,
                         two_factor_spec)
from .reliability_calculator import reliability_table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisBranch:
    """하나의 (모델, 집단) 적합 단위"""

    label: str
    spec: ModelSpecification
    cohort: str


@dataclass(frozen=True)
class ComparisonPlan:
    """비교 테이블 하나를 구성하는 분기 목록"""

    name: str
    branches: Tuple[AnalysisBranch, ...]


@dataclass
class BranchFailure:
    """실패한 분기 기록"""

    comparison: str
    variant: str
    cohort: str
    error_type: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class PipelineResult:
    """파이프라인 실행 결과"""

    tables: 'OrderedDict[str, pd.DataFrame]' = field(default_factory=OrderedDict)
    reports: Dict[str, Dict[str, FitIndexReport]] = field(default_factory=dict)
    fitted: 'OrderedDict[str, FittedModel]' = field(default_factory=OrderedDict)
    reliability: 'OrderedDict[str, pd.DataFrame]' = field(default_factory=OrderedDict)
    failures: List[BranchFailure] = field(default_factory=list)
    cohort_sizes: Dict[str, int] = field(default_factory=dict)


def default_comparison_plans(config: CFAAnalysisConfig) -> List[ComparisonPlan]:
    """
    기본 비교 계획

    - model_variants: 전체 표본, 14문항 (단일요인, 단일요인+잔차공분산, 2요인, 2차요인)
    - sex: 성별 집단, 6문항 2요인
    - age: 연령 집단, 6문항 2요인
    """
    items = config.item_columns
    variants = (
        single_factor_spec(items, name='one_factor'),
        single_factor_spec(items, name='one_factor_residual_cov', residual_covariances=True),
        two_factor_spec(config.factor_items, name='two_factor'),
        second_order_spec(config.factor_items, name='second_order'),
    )
    reduced = two_factor_spec(config.reduced_factor_items, name='two_factor_reduced')

    sex_cohorts = list(config.sex_mapping.values())
    age_cohorts = [config.age_labels['lower'], config.age_labels['upper']]

    return [
        ComparisonPlan('model_variants',
                       tuple(AnalysisBranch(spec.name, spec, 'full') for spec in variants)),
        ComparisonPlan('sex',
                       tuple(AnalysisBranch(cohort, reduced, cohort) for cohort in sex_cohorts)),
        ComparisonPlan('age',
                       tuple(AnalysisBranch(cohort, reduced, cohort) for cohort in age_cohorts)),
    ]


class CFAPipeline:
    """CFA 비교 분석 파이프라인 클래스"""

    def __init__(self, config: Optional[CFAAnalysisConfig] = None,
                 plans: Optional[List[ComparisonPlan]] = None):
        """
        파이프라인 초기화

        Args:
            config (Optional[CFAAnalysisConfig]): 분석 설정
            plans (Optional[List[ComparisonPlan]]): 비교 계획 (기본값: default_comparison_plans)
        """
        self.config = config if config is not None else get_default_config()
        self.plans = plans if plans is not None else default_comparison_plans(self.config)
        self.loader = SurveyDataLoader(self.config)
        self.cohort_builder = CohortBuilder(self.config)
        self.fitter = CFAModelFitter(self.config)

    def run(self, table: Optional[pd.DataFrame] = None) -> PipelineResult:
        """
        전체 비교 분석 실행

        Args:
            table (Optional[pd.DataFrame]): 응답 테이블 (없으면 설정의 input_path에서 로딩)

        Returns:
            PipelineResult: 비교 테이블, 적합 모델, 실패 기록
        """
        if table is None:
            table = self.loader.load()

        cohorts = self.cohort_builder.build(table)
        result = PipelineResult(cohort_sizes={name: len(df) for name, df in cohorts.items()})

        for plan in self.plans:
            logger.info(f"비교 분석 시작: {plan.name} ({len(plan.branches)}개 분기)")
            reports = OrderedDict()

            for branch in plan.branches:
                report = self._run_branch(plan.name, branch, cohorts, result)
                if report is not None:
                    reports[branch.label] = report

            result.reports[plan.name] = dict(reports)
            if len(reports) < 2:
                logger.warning(f"{plan.name}: 성공한 분기가 {len(reports)}개뿐이라 비교 테이블을 만들지 않습니다")
                continue

            result.tables[plan.name] = compare_fit_reports(reports)

        logger.info(f"파이프라인 완료: 테이블 {len(result.tables)}개, 실패 분기 {len(result.failures)}개")
        return result

    def _run_branch(self, comparison: str, branch: AnalysisBranch,
                    cohorts: Dict[str, pd.DataFrame],
                    result: PipelineResult) -> Optional[FitIndexReport]:
        """분기 하나를 적합하고 보고서를 반환 (모델 정의/식별/추출 실패 시 None)"""
        try:
            if branch.cohort not in cohorts:
                raise ModelSpecificationError(f"알 수 없는 집단: {branch.cohort}")
            data = cohorts[branch.cohort]
            fitted = self.fitter.fit(branch.spec, data, branch.cohort)
            report = extract_fit_indices(fitted, self.config.report_statistics)
        except (ModelSpecificationError, UnidentifiedModelError, UnknownStatisticError) as e:
            logger.error(f"[{comparison}] {branch.spec.name} / {branch.cohort} 실패: {e}")
            result.failures.append(BranchFailure(
                comparison=comparison,
                variant=branch.spec.name,
                cohort=branch.cohort,
                error_type=type(e).__name__,
                message=str(e),
            ))
            return None

        result.fitted[fitted.label] = fitted
        result.reliability[fitted.label] = reliability_table(fitted, data)
        return report


def run_cfa_pipeline(config: Optional[CFAAnalysisConfig] = None,
                     table: Optional[pd.DataFrame] = None) -> PipelineResult:
    """
    CFA 비교 분석을 실행하는 편의 함수

    Args:
        config (Optional[CFAAnalysisConfig]): 분석 설정
        table (Optional[pd.DataFrame]): 응답 테이블

    Returns:
        PipelineResult: 실행 결과
    """
    return CFAPipeline(config).run(table)
