"""
Survey Scale CFA 패키지

semopy를 이용하여 14문항 설문 척도의 확인적 요인분석(CFA) 모델을 적합하고
모델 구조(단일요인, 2요인, 2차요인)와 집단(성별, 연령)별 적합도를 비교합니다.

Author: Survey Scale Research Team
Date: 2026-10-19
"""

from .config import (CFAAnalysisConfig, create_custom_config, get_default_config,
                     setup_logging)
from .exceptions import (CFAAnalysisError, DataLoadError, ModelSpecificationError,
                         UnidentifiedModelError, UnknownStatisticError)
from .data_loader import (CohortBuilder, SurveyDataLoader, build_cohorts, load_survey_data,
                          project_columns, recode_category)
from .model_spec import (LatentFactor, ModelSpecification, second_order_spec,
                         single_factor_spec, two_factor_spec)
from .factor_analyzer import CFAModelFitter, FittedModel, fit_cfa_model
from .fit_indices import (FitIndexReport, SUPPORTED_STATISTICS, compute_fit_statistics,
                          extract_fit_indices)
from .comparison_analyzer import (compare_fit_reports, format_comparison_table,
                                  render_comparison_table)
from .reliability_calculator import reliability_table
from .results_exporter import CFAResultsExporter
from .pipeline import (AnalysisBranch, BranchFailure, CFAPipeline, ComparisonPlan,
                       PipelineResult, default_comparison_plans, run_cfa_pipeline)
from .simulation import simulate_factor_responses, simulate_survey_table

__version__ = "1.0.0"
__author__ = "Survey Scale Research Team"

__all__ = [
    # Configuration
    'CFAAnalysisConfig',
    'create_custom_config',
    'get_default_config',
    'setup_logging',

    # Errors
    'CFAAnalysisError',
    'DataLoadError',
    'ModelSpecificationError',
    'UnidentifiedModelError',
    'UnknownStatisticError',

    # Data loading
    'SurveyDataLoader',
    'CohortBuilder',
    'load_survey_data',
    'build_cohorts',
    'recode_category',
    'project_columns',

    # Model specification
    'LatentFactor',
    'ModelSpecification',
    'single_factor_spec',
    'two_factor_spec',
    'second_order_spec',

    # Fitting and fit indices
    'CFAModelFitter',
    'FittedModel',
    'fit_cfa_model',
    'FitIndexReport',
    'SUPPORTED_STATISTICS',
    'compute_fit_statistics',
    'extract_fit_indices',

    # Comparison and reporting
    'compare_fit_reports',
    'format_comparison_table',
    'render_comparison_table',
    'reliability_table',
    'CFAResultsExporter',

    # Pipeline
    'AnalysisBranch',
    'BranchFailure',
    'CFAPipeline',
    'ComparisonPlan',
    'PipelineResult',
    'default_comparison_plans',
    'run_cfa_pipeline',

    # Simulation
    'simulate_factor_responses',
    'simulate_survey_table',
]
