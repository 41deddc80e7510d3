"""
CFA Model Fitting Module using semopy

이 모듈은 semopy를 사용하여 확인적 요인분석(CFA)을 수행합니다.
- 완전정보 최대우도(FIML)로 결측 문항 처리
- 강건(sandwich) 표준오차
- 적합 전/후 식별 검사
- 불변(immutable) 적합 결과 객체 반환
"""

import logging
import warnings
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

import numpy as np
import pandas as pd

# semopy 임포트
try:
    from semopy import Model
except ImportError as e:
    logging.error("semopy 라이브러리를 찾을 수 없습니다. pip install semopy로 설치해주세요.")
    raise e

from .config import CFAAnalysisConfig, get_default_config
from .exceptions import ModelSpecificationError, UnidentifiedModelError
from .fit_indices import compute_fit_statistics, em_saturated_moments
from .model_spec import ModelSpecification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FittedModel:
    """적합된 CFA 모델 (생성 후 변경 불가)"""

    variant: str
    cohort: str
    spec: ModelSpecification
    converged: bool
    n_observations: int
    n_parameters: int
    objective_value: float
    robust: bool
    fit_statistics: Mapping[str, float]
    _estimates: pd.DataFrame = field(repr=False, compare=False)
    _model: Any = field(repr=False, compare=False)

    @property
    def label(self) -> str:
        return f"{self.variant}@{self.cohort}"

    @property
    def model(self) -> Any:
        """경로 다이어그램 생성용 semopy 모델"""
        return self._model

    def parameter_estimates(self) -> pd.DataFrame:
        """전체 모수 추정치 (복사본)"""
        return self._estimates.copy()

    def factor_loadings(self) -> pd.DataFrame:
        """
        요인부하량 테이블

        Returns:
            pd.DataFrame: Factor, Item, Loading, Std_Loading, SE, Z_value, P_value
        """
        est = self._estimates
        loadings = est[est['op'] == '~'].copy()

        formatted = pd.DataFrame({
            'Factor': loadings['rval'].values,
            'Item': loadings['lval'].values,
            'Loading': pd.to_numeric(loadings['Estimate'], errors='coerce').values,
        })
        if 'Est. Std' in loadings.columns:
            formatted['Std_Loading'] = pd.to_numeric(loadings['Est. Std'], errors='coerce').values
        if 'Std. Err' in loadings.columns:
            formatted['SE'] = pd.to_numeric(loadings['Std. Err'], errors='coerce').values
        if 'z-value' in loadings.columns:
            formatted['Z_value'] = pd.to_numeric(loadings['z-value'], errors='coerce').values
        if 'p-value' in loadings.columns:
            formatted['P_value'] = pd.to_numeric(loadings['p-value'], errors='coerce').values
            formatted['Significant'] = formatted['P_value'] < 0.05

        return formatted


class CFAModelFitter:
    """semopy를 사용한 CFA 모델 적합 클래스"""

    def __init__(self, config: Optional[CFAAnalysisConfig] = None):
        """
        CFA Model Fitter 초기화

        Args:
            config (Optional[CFAAnalysisConfig]): 분석 설정
        """
        self.config = config if config is not None else get_default_config()

    def fit(self, spec: ModelSpecification, data: pd.DataFrame,
            cohort: str = 'full') -> FittedModel:
        """
        모델을 적합하고 결과 객체를 반환

        Args:
            spec (ModelSpecification): 모델 스펙
            data (pd.DataFrame): 집단 자료
            cohort (str): 집단 이름 (오류 메시지용)

        Returns:
            FittedModel: 적합된 모델
        """
        logger.info(f"모델 적합 시작: {spec.name} / 집단 {cohort}")

        self._check_identification(spec, cohort)
        clean_data = self._prepare_data(spec, data, cohort)

        model_desc = spec.to_semopy()
        model = Model(model_desc)

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                result = model.fit(clean_data, obj=self.config.objective,
                                   solver=self.config.optimizer)
        except (np.linalg.LinAlgError, ValueError, ZeroDivisionError) as e:
            raise UnidentifiedModelError(f"추정 중 수치 오류: {e}", spec.name, cohort) from e

        success = bool(getattr(result, 'success', True))
        objective_value = float(getattr(result, 'fun', np.nan))
        n_iterations = getattr(result, 'n_it', None)
        logger.info(f"  반복 횟수: {n_iterations}, 목적함수 값: {objective_value:.4f}, 수렴 여부: {success}")

        if not success:
            message = getattr(result, 'message', '')
            raise UnidentifiedModelError(f"최적화가 수렴하지 않았습니다: {message}", spec.name, cohort)
        if not np.isfinite(objective_value):
            raise UnidentifiedModelError("목적함수 값이 유한하지 않습니다", spec.name, cohort)

        implied_cov = self._implied_covariance(model, spec, cohort)
        n_params = len(model.param_vals)

        try:
            estimates = model.inspect(std_est=True, se_robust=self.config.robust)
        except np.linalg.LinAlgError as e:
            raise UnidentifiedModelError(f"정보행렬이 특이(singular)합니다: {e}", spec.name, cohort) from e

        observed = clean_data[spec.observed_variables()].to_numpy(dtype=float)
        try:
            fit_statistics = compute_fit_statistics(observed, implied_cov, n_params,
                                                    robust=self.config.robust)
        except np.linalg.LinAlgError as e:
            raise UnidentifiedModelError(
                f"표본 공분산 또는 내재 공분산 행렬이 특이(singular)합니다: {e}", spec.name, cohort
            ) from e

        fitted = FittedModel(
            variant=spec.name,
            cohort=cohort,
            spec=spec,
            converged=success,
            n_observations=len(clean_data),
            n_parameters=n_params,
            objective_value=objective_value,
            robust=self.config.robust,
            fit_statistics=MappingProxyType(dict(fit_statistics)),
            _estimates=estimates,
            _model=model,
        )

        logger.info(f"모델 적합 완료: {fitted.label} "
                    f"(N={fitted.n_observations}, df={fit_statistics['df']:.0f}, "
                    f"CFI={fit_statistics['cfi']:.4f})")
        return fitted

    def _prepare_data(self, spec: ModelSpecification, data: pd.DataFrame,
                      cohort: str) -> pd.DataFrame:
        """
        분석용 데이터 전처리

        Args:
            spec (ModelSpecification): 모델 스펙
            data (pd.DataFrame): 집단 자료
            cohort (str): 집단 이름

        Returns:
            pd.DataFrame: 모델 관측변수만 포함된 데이터
        """
        observed = spec.observed_variables()
        missing_columns = [col for col in observed if col not in data.columns]
        if missing_columns:
            raise ModelSpecificationError(
                f"모델 {spec.name}의 문항이 집단 {cohort} 자료에 없습니다: {missing_columns}"
            )

        clean_data = data[observed].apply(pd.to_numeric, errors='coerce')

        # 모든 문항이 결측인 응답자는 우도에 기여하지 않음
        empty_rows = clean_data.isna().all(axis=1)
        if empty_rows.any():
            logger.info(f"모든 문항이 결측인 응답자 {int(empty_rows.sum())}명 제외")
            clean_data = clean_data[~empty_rows]

        if self.config.objective != 'FIML' and clean_data.isna().any().any():
            clean_data = clean_data.dropna()
            logger.info(f"결측치 제거 후 샘플 수: {len(clean_data)}")

        if len(clean_data) <= len(observed):
            raise UnidentifiedModelError(
                f"표본 크기({len(clean_data)})가 문항 수({len(observed)})보다 작거나 같습니다",
                spec.name, cohort
            )

        zero_var_cols = [col for col in observed if not clean_data[col].var() > 0]
        if zero_var_cols:
            raise UnidentifiedModelError(f"분산이 0인 문항: {zero_var_cols}", spec.name, cohort)

        if self.config.objective == 'FIML':
            # semopy FIML 목적함수는 평균 0인 자료를 가정함
            try:
                mu, _ = em_saturated_moments(clean_data.to_numpy(dtype=float))
            except np.linalg.LinAlgError as e:
                raise UnidentifiedModelError(f"표본 공분산 행렬이 특이(singular)합니다: {e}",
                                             spec.name, cohort) from e
            clean_data = clean_data - mu

        logger.info(f"전처리 완료: {clean_data.shape}")
        return clean_data.reset_index(drop=True)

    def _check_identification(self, spec: ModelSpecification, cohort: str) -> None:
        problems = spec.identification_problems()
        if problems:
            for problem in problems:
                logger.error(f"{spec.name}: {problem}")
            raise UnidentifiedModelError("; ".join(problems), spec.name, cohort)

    def _implied_covariance(self, model: Model, spec: ModelSpecification,
                            cohort: str) -> np.ndarray:
        """모델 내재 공분산 행렬 (스펙의 관측변수 순서로 재정렬)"""
        sigma = np.asarray(model.calc_sigma()[0], dtype=float)
        observed_order = list(model.vars['observed'])
        order = [observed_order.index(var) for var in spec.observed_variables()]
        sigma = sigma[np.ix_(order, order)]

        if not np.all(np.isfinite(sigma)):
            raise UnidentifiedModelError("내재 공분산 행렬에 유한하지 않은 값이 있습니다", spec.name, cohort)
        eigenvalues = np.linalg.eigvalsh((sigma + sigma.T) / 2)
        if eigenvalues.min() <= 0:
            raise UnidentifiedModelError(
                f"내재 공분산 행렬이 양정치가 아닙니다 (최소 고유값 {eigenvalues.min():.3e})",
                spec.name, cohort
            )
        return sigma


def fit_cfa_model(spec: ModelSpecification, data: pd.DataFrame, cohort: str = 'full',
                  config: Optional[CFAAnalysisConfig] = None) -> FittedModel:
    """
    CFA 모델을 적합하는 편의 함수

    Args:
        spec (ModelSpecification): 모델 스펙
        data (pd.DataFrame): 집단 자료
        cohort (str): 집단 이름
        config (Optional[CFAAnalysisConfig]): 분석 설정

    Returns:
        FittedModel: 적합된 모델
    """
    return CFAModelFitter(config).fit(spec, data, cohort)
