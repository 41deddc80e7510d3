"""
Fit Indices Module

적합된 CFA 모델의 적합도 지수를 계산하고 추출합니다.

결측 자료를 고려하기 위해 포화모형 평균/공분산은 EM 알고리즘으로 추정하고,
카이제곱은 응답자별(결측 패턴별) 로그우도 차이로 계산합니다.
완전 자료에서는 일반적인 ML 카이제곱 N*F_ML과 일치합니다.

강건(robust) 보정은 결측 자료용 다변량 첨도 추정치를 척도 계수로 사용합니다.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from .config import DEFAULT_REPORT_STATISTICS
from .exceptions import UnknownStatisticError

logger = logging.getLogger(__name__)


STANDARD_STATISTICS = (
    'npar', 'ntotal', 'logl', 'chisq', 'df', 'pvalue',
    'baseline.chisq', 'baseline.df', 'cfi', 'tli', 'rmsea', 'srmr', 'ecvi',
    'aic', 'bic',
)

ROBUST_STATISTICS = (
    'scaling.factor', 'chisq.scaled', 'pvalue.scaled', 'cfi.scaled',
    'tli.scaled', 'rmsea.scaled',
)

SUPPORTED_STATISTICS = STANDARD_STATISTICS + ROBUST_STATISTICS


def _missing_patterns(data: np.ndarray) -> List[Tuple[np.ndarray, np.ndarray]]:
    """결측 패턴별 (관측 마스크, 행 인덱스) 목록"""
    mask = ~np.isnan(data)
    patterns, inverse = np.unique(mask, axis=0, return_inverse=True)
    inverse = np.asarray(inverse).reshape(-1)
    groups = []
    for k, pattern in enumerate(patterns):
        if pattern.any():
            groups.append((pattern, np.flatnonzero(inverse == k)))
    return groups


def em_saturated_moments(data: np.ndarray, max_iter: int = 1000,
                         tol: float = 1e-8) -> Tuple[np.ndarray, np.ndarray]:
    """
    EM 알고리즘으로 포화모형의 평균과 공분산 추정

    Args:
        data (np.ndarray): n x p 자료 (결측은 NaN)
        max_iter (int): 최대 반복 횟수
        tol (float): 수렴 기준

    Returns:
        Tuple[np.ndarray, np.ndarray]: (평균 벡터, ML 공분산 행렬)
    """
    data = np.asarray(data, dtype=float)
    n, p = data.shape
    groups = _missing_patterns(data)

    mu = np.nanmean(data, axis=0)
    sigma = np.diag(np.nanvar(data, axis=0))

    if not np.isnan(data).any():
        centered = data - mu
        return mu, centered.T @ centered / n

    for iteration in range(max_iter):
        sum_x = np.zeros(p)
        sum_xx = np.zeros((p, p))

        for observed, rows in groups:
            missing = ~observed
            x_obs = data[np.ix_(rows, observed)]
            x_hat = np.tile(mu, (len(rows), 1))
            x_hat[:, observed] = x_obs
            cond_cov = np.zeros((p, p))

            if missing.any():
                s_oo = sigma[np.ix_(observed, observed)]
                s_mo = sigma[np.ix_(missing, observed)]
                coef = np.linalg.solve(s_oo, s_mo.T).T
                x_hat[:, missing] = mu[missing] + (x_obs - mu[observed]) @ coef.T
                cond_cov[np.ix_(missing, missing)] = (
                    sigma[np.ix_(missing, missing)] - coef @ s_mo.T
                )

            sum_x += x_hat.sum(axis=0)
            sum_xx += x_hat.T @ x_hat + len(rows) * cond_cov

        n_used = sum(len(rows) for _, rows in groups)
        new_mu = sum_x / n_used
        new_sigma = sum_xx / n_used - np.outer(new_mu, new_mu)

        delta = max(np.max(np.abs(new_mu - mu)), np.max(np.abs(new_sigma - sigma)))
        mu, sigma = new_mu, new_sigma
        if delta < tol:
            logger.debug(f"EM 수렴: {iteration + 1}회 반복")
            break
    else:
        logger.warning(f"EM 알고리즘이 {max_iter}회 내에 수렴하지 않았습니다")

    return mu, sigma


def casewise_loglik(data: np.ndarray, mu: np.ndarray, sigma: np.ndarray) -> float:
    """
    관측된 변수만 사용하는 다변량 정규 로그우도 (FIML)

    Args:
        data (np.ndarray): n x p 자료 (결측은 NaN)
        mu (np.ndarray): 평균 벡터
        sigma (np.ndarray): 공분산 행렬

    Returns:
        float: 전체 로그우도
    """
    data = np.asarray(data, dtype=float)
    loglik = 0.0
    for observed, rows in _missing_patterns(data):
        sub_sigma = sigma[np.ix_(observed, observed)]
        sign, logdet = np.linalg.slogdet(sub_sigma)
        if sign <= 0:
            raise np.linalg.LinAlgError("공분산 행렬이 양정치가 아닙니다")
        diff = data[np.ix_(rows, observed)] - mu[observed]
        maha = np.einsum('ij,ij->i', diff @ np.linalg.inv(sub_sigma), diff)
        k = observed.sum()
        loglik += -0.5 * (len(rows) * (k * np.log(2 * np.pi) + logdet) + maha.sum())
    return float(loglik)


def multivariate_kurtosis_scaling(data: np.ndarray, mu: np.ndarray,
                                  sigma: np.ndarray) -> float:
    """
    결측 자료용 상대 다변량 첨도 (Mardia 유형)

    응답자별 관측변수 p_i에 대해 d_i^4 / (p_i (p_i + 2))의 평균을 구합니다.
    다변량 정규분포에서 1이며, 타원분포 가정 하의 카이제곱 척도 계수로 사용합니다.

    Args:
        data (np.ndarray): n x p 자료 (결측은 NaN)
        mu (np.ndarray): 포화모형 평균
        sigma (np.ndarray): 포화모형 공분산

    Returns:
        float: 척도 계수 (1 + kappa)
    """
    data = np.asarray(data, dtype=float)
    total = 0.0
    n = 0
    for observed, rows in _missing_patterns(data):
        diff = data[np.ix_(rows, observed)] - mu[observed]
        inv = np.linalg.inv(sigma[np.ix_(observed, observed)])
        d2 = np.einsum('ij,ij->i', diff @ inv, diff)
        k = observed.sum()
        total += np.sum(d2 ** 2) / (k * (k + 2))
        n += len(rows)
    return float(total / n)


def srmr(sample_cov: np.ndarray, implied_cov: np.ndarray) -> float:
    """표준화 잔차 평균제곱근 (하삼각 + 대각 원소 기준)"""
    sd = np.sqrt(np.diag(sample_cov))
    residual = (sample_cov - implied_cov) / np.outer(sd, sd)
    lower = residual[np.tril_indices_from(residual)]
    return float(np.sqrt(np.mean(lower ** 2)))


def _cfi(chisq: float, df: float, base_chisq: float, base_df: float) -> float:
    d_model = max(chisq - df, 0.0)
    d_base = max(base_chisq - base_df, chisq - df, 0.0)
    if d_base == 0:
        return 1.0
    return 1.0 - d_model / d_base


def _tli(chisq: float, df: float, base_chisq: float, base_df: float) -> float:
    if df == 0:
        return 1.0
    base_ratio = base_chisq / base_df
    if base_ratio == 1:
        return 1.0
    return (base_ratio - chisq / df) / (base_ratio - 1.0)


def _rmsea(chisq: float, df: float, n: int) -> float:
    if df == 0:
        return 0.0
    return float(np.sqrt(max(chisq / (n * df) - 1.0 / n, 0.0)))


def compute_fit_statistics(data: np.ndarray, implied_cov: np.ndarray,
                           n_params: int, robust: bool = True) -> 'OrderedDict[str, float]':
    """
    적합도 지수 계산

    Args:
        data (np.ndarray): n x p 분석 자료 (모델 관측변수 순서, 결측은 NaN)
        implied_cov (np.ndarray): 모델 내재 공분산 행렬
        n_params (int): 자유모수 수
        robust (bool): 척도 보정 지수 포함 여부

    Returns:
        OrderedDict[str, float]: {지수명: 값} (전체 정밀도)
    """
    data = np.asarray(data, dtype=float)
    n, p = data.shape

    mu, sample_cov = em_saturated_moments(data)
    base_cov = np.diag(np.diag(sample_cov))

    ll_sat = casewise_loglik(data, mu, sample_cov)
    ll_model = casewise_loglik(data, mu, implied_cov)
    ll_base = casewise_loglik(data, mu, base_cov)

    df = p * (p + 1) // 2 - n_params
    base_df = p * (p - 1) // 2
    chisq = max(-2.0 * (ll_model - ll_sat), 0.0)
    base_chisq = max(-2.0 * (ll_base - ll_sat), 0.0)

    result = OrderedDict()
    result['npar'] = float(n_params)
    result['ntotal'] = float(n)
    result['logl'] = ll_model
    result['chisq'] = chisq
    result['df'] = float(df)
    result['pvalue'] = float(stats.chi2.sf(chisq, df)) if df > 0 else np.nan
    result['baseline.chisq'] = base_chisq
    result['baseline.df'] = float(base_df)
    result['cfi'] = _cfi(chisq, df, base_chisq, base_df)
    result['tli'] = _tli(chisq, df, base_chisq, base_df)
    result['rmsea'] = _rmsea(chisq, df, n)
    result['srmr'] = srmr(sample_cov, implied_cov)
    result['ecvi'] = chisq / n + 2.0 * n_params / n
    result['aic'] = -2.0 * ll_model + 2.0 * n_params
    result['bic'] = -2.0 * ll_model + n_params * np.log(n)

    if robust:
        scaling = multivariate_kurtosis_scaling(data, mu, sample_cov)
        chisq_scaled = chisq / scaling
        base_scaled = base_chisq / scaling
        result['scaling.factor'] = scaling
        result['chisq.scaled'] = chisq_scaled
        result['pvalue.scaled'] = float(stats.chi2.sf(chisq_scaled, df)) if df > 0 else np.nan
        result['cfi.scaled'] = _cfi(chisq_scaled, df, base_scaled, base_df)
        result['tli.scaled'] = _tli(chisq_scaled, df, base_scaled, base_df)
        result['rmsea.scaled'] = _rmsea(chisq_scaled, df, n)

    return result


@dataclass(frozen=True)
class FitIndexReport:
    """적합도 지수 보고서 (지수명 → 값, 요청 순서 유지)"""

    label: str
    values: Tuple[Tuple[str, float], ...]

    def as_dict(self) -> 'OrderedDict[str, float]':
        return OrderedDict(self.values)

    def statistics(self) -> List[str]:
        return [name for name, _ in self.values]

    def __getitem__(self, name: str) -> float:
        return self.as_dict()[name]

    def rounded(self, decimals: int = 4) -> 'OrderedDict[str, float]':
        """출력용 반올림 값"""
        return OrderedDict((name, round(value, decimals)) for name, value in self.values)

    @classmethod
    def from_mapping(cls, label: str, values: Mapping[str, float]) -> 'FitIndexReport':
        return cls(label=label, values=tuple((k, float(v)) for k, v in values.items()))


def extract_fit_indices(fitted, statistics: Optional[Iterable[str]] = None) -> FitIndexReport:
    """
    적합된 모델에서 적합도 지수 추출

    Args:
        fitted (FittedModel): 적합된 모델
        statistics (Optional[Iterable[str]]): 요청 지수 목록 (기본값: 보고서 기본 지수)

    Returns:
        FitIndexReport: 적합도 지수 보고서
    """
    requested: Sequence[str] = list(statistics) if statistics is not None else list(DEFAULT_REPORT_STATISTICS)
    available = fitted.fit_statistics

    values = []
    for name in requested:
        if name not in SUPPORTED_STATISTICS:
            raise UnknownStatisticError(name, fitted.variant)
        if name not in available:
            raise UnknownStatisticError(name, fitted.variant,
                                        reason="강건 보정 없이 추정된 모델에서는 제공되지 않는 지수")
        values.append((name, float(available[name])))

    return FitIndexReport(label=fitted.label, values=tuple(values))
