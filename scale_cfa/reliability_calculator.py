"""
신뢰도 및 수렴타당도 계산 모듈

적합된 CFA 모델과 문항 자료로부터 요인별로 다음을 계산합니다:
- Cronbach's Alpha (크론바흐 알파)
- Composite Reliability (CR, 합성신뢰도)
- Average Variance Extracted (AVE, 평균분산추출)
"""

import logging
from typing import Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def cronbach_alpha(items: pd.DataFrame) -> float:
    """
    Cronbach's Alpha (결측 응답자는 제외)

    Args:
        items (pd.DataFrame): 한 요인의 문항 자료

    Returns:
        float: 알파 값
    """
    complete = items.dropna()
    k = complete.shape[1]
    if k < 2 or len(complete) < 2:
        return np.nan

    item_variances = complete.var(axis=0, ddof=1).sum()
    total_variance = complete.sum(axis=1).var(ddof=1)
    if total_variance == 0:
        return np.nan
    return float(k / (k - 1) * (1 - item_variances / total_variance))


def composite_reliability(std_loadings: Sequence[float]) -> float:
    """합성신뢰도: (Σλ)² / ((Σλ)² + Σ(1-λ²))"""
    loadings = np.asarray(std_loadings, dtype=float)
    sum_sq = loadings.sum() ** 2
    error = np.sum(1 - loadings ** 2)
    return float(sum_sq / (sum_sq + error))


def average_variance_extracted(std_loadings: Sequence[float]) -> float:
    """평균분산추출: Σλ² / k"""
    loadings = np.asarray(std_loadings, dtype=float)
    return float(np.mean(loadings ** 2))


def reliability_table(fitted, data: pd.DataFrame) -> pd.DataFrame:
    """
    요인별 신뢰도 테이블

    Args:
        fitted (FittedModel): 적합된 모델
        data (pd.DataFrame): 적합에 사용한 집단 자료

    Returns:
        pd.DataFrame: Factor, N_Items, Cronbach_Alpha, CR, AVE
    """
    loadings = fitted.factor_loadings()
    rows = []
    for factor, items in fitted.spec.factor_items().items():
        factor_loadings = loadings[loadings['Factor'] == factor]
        std = factor_loadings['Std_Loading'] if 'Std_Loading' in factor_loadings else factor_loadings['Loading']
        rows.append({
            'Factor': factor,
            'N_Items': len(items),
            'Cronbach_Alpha': cronbach_alpha(data[items]),
            'CR': composite_reliability(std),
            'AVE': average_variance_extracted(std),
        })

    table = pd.DataFrame(rows)
    logger.info(f"신뢰도 계산 완료: {fitted.label}")
    return table
